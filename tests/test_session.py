from guidepost.guidance.guidance_engine import TURN_RIGHT
from guidepost.guidance.lost_announcer import TARGET_LOST
from guidepost.guidance.targets import resolve_target
from guidepost.runtime.session import NavigationSession
from guidepost.utils.types import BoundingBox, Detection, FramePacket, LockStatus, PoseContext

RED = (0.7, 0.1, 0.1)
BLUE = (0.1, 0.1, 0.7)
LEFT_CHAIR = Detection("chair", 0.9, BoundingBox(0.1, 0.4, 0.2, 0.2), BLUE)
RIGHT_CHAIR = Detection("chair", 0.9, BoundingBox(0.6, 0.4, 0.2, 0.2), RED)


def _frame(ts, *detections, pose=None):
    return FramePacket(detections=list(detections), timestamp=ts, pose=pose)


def test_instances_are_labeled_by_position():
    session = NavigationSession()
    result = session.process_frame(1, _frame(0.0, RIGHT_CHAIR, LEFT_CHAIR))
    assert [item.label for item in result.labeled] == ["Chair 1", "Chair 2"]
    assert result.lock.status == LockStatus.UNLOCKED
    assert result.instruction is None


def test_low_confidence_detections_are_dropped():
    session = NavigationSession()
    weak = Detection("cup", 0.3, BoundingBox(0.4, 0.4, 0.1, 0.1))
    result = session.process_frame(1, _frame(0.0, weak, LEFT_CHAIR))
    assert [item.detection.label for item in result.labeled] == ["chair"]


def test_requested_ordinal_is_locked_and_followed():
    session = NavigationSession()
    session.request_target("Chair 2")
    first = session.process_frame(1, _frame(0.0, LEFT_CHAIR, RIGHT_CHAIR))
    assert first.matched.detection is RIGHT_CHAIR
    assert first.announcement == "Locked onto Chair 2"
    assert first.lock.status == LockStatus.LOCKED

    second = session.process_frame(2, _frame(0.1, LEFT_CHAIR, RIGHT_CHAIR))
    assert second.matched.detection is RIGHT_CHAIR
    assert second.announcement is None


def test_target_waits_until_enough_instances_are_visible():
    session = NavigationSession()
    session.request_target("Chair 2")
    result = session.process_frame(1, _frame(0.0, LEFT_CHAIR))
    assert result.matched is None
    assert result.lock.status == LockStatus.UNLOCKED


def test_lost_target_is_announced_and_relocked_by_color():
    session = NavigationSession()
    session.request_target("Chair 2")
    session.process_frame(1, _frame(0.0, LEFT_CHAIR, RIGHT_CHAIR))

    for i in range(4):
        result = session.process_frame(2 + i, _frame(0.1 * (i + 1), LEFT_CHAIR))
        assert result.lock.status == LockStatus.LOCKED
        assert result.announcement is None

    result = session.process_frame(6, _frame(0.5, LEFT_CHAIR))
    assert result.lock.status == LockStatus.SEARCHING
    assert result.announcement == TARGET_LOST

    assert session.process_frame(7, _frame(1.0, LEFT_CHAIR)).announcement is None
    later = session.process_frame(8, _frame(5.0, LEFT_CHAIR))
    assert later.announcement == "Please turn around to find Chair 2"

    moved = Detection("chair", 0.9, BoundingBox(0.3, 0.1, 0.2, 0.2), (0.72, 0.12, 0.1))
    back = session.process_frame(9, _frame(5.1, LEFT_CHAIR, moved))
    assert back.matched.detection is moved
    assert back.lock.status == LockStatus.LOCKED
    assert back.announcement is None


def test_guidance_uses_matched_box_when_no_screen_point():
    session = NavigationSession()
    session.request_target("Chair 2")
    pose = PoseContext(user_position=(0.0, 0.0, 0.0), target_position=(1.0, 0.0, -3.0), screen_size=(1000.0, 800.0))
    result = session.process_frame(1, _frame(0.0, LEFT_CHAIR, RIGHT_CHAIR, pose=pose))
    assert result.instruction == TURN_RIGHT


def test_clear_target_resets_session():
    session = NavigationSession()
    session.request_target("Chair 1")
    session.process_frame(1, _frame(0.0, LEFT_CHAIR, RIGHT_CHAIR))
    session.clear_target()
    assert session.lock.status == LockStatus.UNLOCKED
    assert session.identity.count_for_class("chair") == 0
    assert session.guidance.centered


def test_sessions_do_not_share_state():
    a = NavigationSession()
    b = NavigationSession()
    a.request_target("Chair 1")
    a.process_frame(1, _frame(0.0, LEFT_CHAIR))
    assert a.lock.is_locked
    assert not b.lock.is_locked
    assert b.identity.count_for_class("chair") == 0


def test_spoken_sofa_request_locks_sofa_detection():
    session = NavigationSession()
    session.request_target(resolve_target("take me to the sofa"))
    sofa = Detection("sofa", 0.9, BoundingBox(0.3, 0.3, 0.4, 0.3), (0.4, 0.3, 0.2))
    result = session.process_frame(1, _frame(0.0, sofa))
    assert result.matched.detection is sofa
    assert result.lock.status == LockStatus.LOCKED
    assert result.lock.target.class_name == "sofa"
