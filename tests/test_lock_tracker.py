import pytest

from guidepost.perception.tracking.lock_tracker import LockConfig, LockTracker
from guidepost.utils.types import BoundingBox, Candidate, LockStatus

BOX = BoundingBox(0.4, 0.4, 0.2, 0.2)
RED = (0.5, 0.2, 0.2)


def _locked(color=RED):
    tracker = LockTracker()
    tracker.lock_target("Chair 1", "Chair", BOX, color)
    return tracker


def _lose(tracker, frames):
    for _ in range(frames):
        assert tracker.find_locked_target([]) is None


def test_lock_sets_target_payload():
    tracker = _locked()
    assert tracker.status == LockStatus.LOCKED
    assert tracker.target.class_name == "chair"
    assert tracker.target.display_name == "Chair 1"
    assert tracker.state.predicted_center == pytest.approx((0.5, 0.5))


def test_unlocked_tracker_has_no_target_and_matches_nothing():
    tracker = LockTracker()
    assert tracker.target is None
    assert tracker.find_locked_target([Candidate(BOX, 0, RED)]) is None
    assert tracker.status == LockStatus.UNLOCKED


def test_same_box_is_matched_and_index_returned():
    tracker = _locked()
    assert tracker.find_locked_target([Candidate(BOX, 7, RED)]) == 7
    assert tracker.frames_lost == 0


def test_occlusion_bridged_for_four_frames_then_searching():
    tracker = _locked()
    _lose(tracker, 4)
    assert tracker.status == LockStatus.LOCKED
    assert tracker.frames_lost == 4
    _lose(tracker, 1)
    assert tracker.status == LockStatus.SEARCHING
    assert tracker.target is not None
    assert tracker.state.predicted_center is None


def test_match_after_short_gap_resets_lost_counter():
    tracker = _locked()
    _lose(tracker, 3)
    assert tracker.find_locked_target([Candidate(BOX, 0, RED)]) == 0
    assert tracker.frames_lost == 0


def test_relock_by_color_accepts_close_fingerprint():
    tracker = _locked()
    _lose(tracker, 5)
    far_box = BoundingBox(0.0, 0.0, 0.1, 0.1)
    assert tracker.find_locked_target([Candidate(far_box, 3, (0.59, 0.29, 0.29))]) == 3
    assert tracker.status == LockStatus.LOCKED
    assert tracker.frames_lost == 0
    assert tracker.state.predicted_center == pytest.approx((0.05, 0.05))


def test_relock_rejects_fingerprint_beyond_threshold():
    tracker = _locked()
    _lose(tracker, 5)
    assert tracker.find_locked_target([Candidate(BOX, 0, (0.62, 0.32, 0.32))]) is None
    assert tracker.status == LockStatus.SEARCHING


def test_relock_prefers_closest_color():
    tracker = _locked()
    _lose(tracker, 5)
    candidates = [Candidate(BOX, 0, (0.58, 0.28, 0.28)), Candidate(BOX, 1, (0.52, 0.21, 0.2))]
    assert tracker.find_locked_target(candidates) == 1


def test_search_without_fingerprint_cannot_relock():
    tracker = _locked(color=None)
    _lose(tracker, 5)
    assert tracker.find_locked_target([Candidate(BOX, 0, RED)]) is None
    assert tracker.status == LockStatus.SEARCHING


def test_abandoned_search_unlocks_and_reports_lost():
    tracker = _locked()
    _lose(tracker, 5)
    _lose(tracker, 25)
    assert tracker.status == LockStatus.SEARCHING
    assert tracker.frames_lost == 30
    _lose(tracker, 1)
    assert tracker.status == LockStatus.UNLOCKED
    assert tracker.target is None
    assert tracker.is_target_lost
    assert tracker.frames_lost == 31

    tracker.unlock()
    assert not tracker.is_target_lost
    assert tracker.frames_lost == 0


def test_color_gate_skips_spatially_closer_wrong_color():
    tracker = _locked()
    blue_on_target = Candidate(BOX, 0, (0.1, 0.2, 0.8))
    red_nearby = Candidate(BoundingBox(0.45, 0.4, 0.2, 0.2), 1, (0.52, 0.2, 0.2))
    assert tracker.find_locked_target([blue_on_target, red_nearby]) == 1


def test_color_gate_emptying_candidates_counts_as_lost_frame():
    tracker = _locked()
    assert tracker.find_locked_target([Candidate(BOX, 0, (0.1, 0.2, 0.8))]) is None
    assert tracker.frames_lost == 1
    assert tracker.status == LockStatus.LOCKED


def test_without_fingerprint_any_color_is_scored():
    tracker = _locked(color=None)
    assert tracker.find_locked_target([Candidate(BOX, 4, (0.1, 0.2, 0.8))]) == 4


def test_low_score_candidate_is_rejected():
    tracker = _locked()
    tiny_far = Candidate(BoundingBox(0.0, 0.0, 0.02, 0.02), 0, RED)
    assert tracker.score_candidate(tiny_far.box) < 0.25
    assert tracker.find_locked_target([tiny_far]) is None
    assert tracker.frames_lost == 1


def test_higher_iou_never_scores_lower():
    tracker = _locked()
    scores = [tracker.score_candidate(BOX.translated(dx, 0.0)) for dx in (0.0, 0.02, 0.05, 0.1, 0.15)]
    assert scores == sorted(scores, reverse=True)
    assert scores[0] == pytest.approx(1.0)


def test_velocity_is_smoothed_and_used_for_coasting():
    tracker = _locked()
    moved = BOX.translated(0.05, 0.0)
    assert tracker.find_locked_target([Candidate(moved, 0, RED)]) == 0
    assert tracker.state.velocity[0] == pytest.approx(0.015)

    assert tracker.find_locked_target([]) is None
    # velocity decays to 0.0105 and the stored center advances by it
    assert tracker.state.velocity[0] == pytest.approx(0.0105)
    assert tracker.state.predicted_center[0] == pytest.approx(0.5605)


def test_zero_area_boxes_do_not_divide_by_zero():
    tracker = LockTracker()
    tracker.lock_target("Cup", "cup", BoundingBox(0.5, 0.5, 0.0, 0.0))
    assert tracker.find_locked_target([Candidate(BoundingBox(0.5, 0.5, 0.0, 0.0), 0)]) == 0


def test_custom_lost_limit():
    tracker = LockTracker(LockConfig(max_lost_frames=2))
    tracker.lock_target("Cup", "cup", BOX)
    _lose(tracker, 2)
    assert tracker.is_searching
