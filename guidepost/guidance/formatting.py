from __future__ import annotations

import math


def _round_half_up(value: float, ndigits: int = 0) -> float:
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def format_distance(meters: float) -> str:
    """
    Spoken distance phrase:
      < 1 m    -> "Almost there"
      1-10 m   -> one decimal ("1 meter away" at exactly 1.0)
      >= 10 m  -> whole meters, including values that round up to 10
    """
    if meters < 1.0:
        return "Almost there"
    rounded = _round_half_up(meters, 1)
    if rounded < 10.0:
        if rounded == 1.0:
            return "1 meter away"
        return f"{rounded:.1f} meters away"
    return f"{int(_round_half_up(meters))} meters away"
