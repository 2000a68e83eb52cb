from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

DETECTOR_CLASSES: List[str] = [
    "person", "bicycle", "car", "motorbike", "aeroplane", "bus", "train", "truck", "boat",
    "traffic light", "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat",
    "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe", "backpack",
    "umbrella", "handbag", "tie", "suitcase", "frisbee", "skis", "snowboard", "sports ball",
    "kite", "baseball bat", "baseball glove", "skateboard", "surfboard", "tennis racket",
    "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake",
    "chair", "sofa", "pottedplant", "bed", "diningtable", "toilet", "tvmonitor", "laptop",
    "mouse", "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink",
    "refrigerator", "book", "clock", "vase", "scissors", "teddy bear", "hair drier", "toothbrush",
]

NAVIGATION_CLASSES: List[str] = [
    "door", "stairs", "elevator", "elevator_button", "exit", "entrance",
    "handrail", "ramp", "crossing", "sidewalk",
]

# spoken word -> detector class
SYNONYMS: Dict[str, str] = {
    "lift": "elevator",
    "steps": "stairs",
    "staircase": "stairs",
    "button": "elevator_button",
    "table": "diningtable",
    "tv": "tvmonitor",
    "phone": "cell phone",
    "mobile": "cell phone",
    "plant": "pottedplant",
    "couch": "sofa",
}

ORDINALS: Dict[str, int] = {
    "one": 1, "first": 1, "1": 1,
    "two": 2, "second": 2, "2": 2,
    "three": 3, "third": 3, "3": 3,
}


def _contains_word(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def display_name(class_name: str, ordinal: Optional[int] = None) -> str:
    name = class_name.replace("_", " ").title()
    return f"{name} {ordinal}" if ordinal else name


def resolve_target(text: str) -> Optional[str]:
    """
    Map a spoken request to a target display name.

      resolve_target("take me to the second chair") -> "Chair 2"
      resolve_target("find the lift")               -> "Elevator"
    """
    text = text.lower()
    vocabulary = DETECTOR_CLASSES + NAVIGATION_CLASSES + list(SYNONYMS)
    # Longest phrases first so "wine glass" wins over "glass"-like overlaps.
    for phrase in sorted(vocabulary, key=len, reverse=True):
        if not _contains_word(text, phrase):
            continue
        class_name = SYNONYMS.get(phrase, phrase)
        ordinal = next((n for word, n in ORDINALS.items() if _contains_word(text, word)), None)
        return display_name(class_name, ordinal)
    return None


def parse_target_name(name: str) -> Tuple[str, int]:
    """ "Cell Phone 2" -> ("cell phone", 2); no trailing number means ordinal 1."""
    parts = name.strip().split()
    ordinal = 1
    if len(parts) > 1 and parts[-1].isdigit():
        ordinal = max(1, int(parts[-1]))
        parts = parts[:-1]
    class_name = " ".join(parts).lower()
    if class_name.replace(" ", "_") in NAVIGATION_CLASSES:
        class_name = class_name.replace(" ", "_")
    return class_name, ordinal
