"""
Tests for the view entitlement evaluator: free-tier cap, premium bypass,
subscription expiry boundary, bans, and the concurrent cap guarantee.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.models.user import UserRole
from app.models.video_view import VideoView
from app.services.entitlement import (
    FREE_VIEW_LIMIT,
    AllowResult,
    DenyReason,
    DenyResult,
    EntitlementEvaluator,
)
from app.utils.clock import utcnow


@pytest.fixture
def evaluator():
    return EntitlementEvaluator()


def _stored_count(db, user_id, video_id):
    return db.query(VideoView.view_count).filter(
        VideoView.user_id == user_id, VideoView.video_id == video_id
    ).scalar()


def test_free_limit_constant_is_two():
    assert FREE_VIEW_LIMIT == 2


def test_first_view_creates_record(db, evaluator, student, video):
    result = evaluator.try_consume_view(student.id, video.id)
    assert result == AllowResult(view_count=1, limit=2)
    assert _stored_count(db, student.id, video.id) == 1


def test_third_view_is_denied_with_counts(db, evaluator, student, video):
    assert evaluator.try_consume_view(student.id, video.id).allowed
    assert evaluator.try_consume_view(student.id, video.id).view_count == 2

    result = evaluator.try_consume_view(student.id, video.id)
    assert result == DenyResult(DenyReason.VIEW_LIMIT_REACHED, current_count=2, limit=2)
    assert _stored_count(db, student.id, video.id) == 2


def test_limit_is_per_video_not_global(db, evaluator, student, teacher, make_video):
    videos = [make_video(teacher, title=f"Lesson {i}") for i in range(3)]
    for v in videos:
        assert evaluator.try_consume_view(student.id, v.id).allowed
        assert evaluator.try_consume_view(student.id, v.id).allowed
        assert not evaluator.try_consume_view(student.id, v.id).allowed
    assert [_stored_count(db, student.id, v.id) for v in videos] == [2, 2, 2]


def test_limit_is_per_user(evaluator, make_user, video):
    a, b = make_user(UserRole.STUDENT), make_user(UserRole.STUDENT)
    for _ in range(2):
        assert evaluator.try_consume_view(a.id, video.id).allowed
    assert not evaluator.try_consume_view(a.id, video.id).allowed
    assert evaluator.try_consume_view(b.id, video.id).allowed


def test_last_viewed_at_is_updated(db, evaluator, student, video):
    first = utcnow() - timedelta(hours=2)
    second = utcnow()
    evaluator.try_consume_view(student.id, video.id, now=first)
    evaluator.try_consume_view(student.id, video.id, now=second)
    row = db.query(VideoView).filter(VideoView.user_id == student.id).one()
    assert row.last_viewed_at == second


def test_concurrent_views_never_exceed_limit(db, evaluator, student, video):
    with ThreadPoolExecutor(max_workers=50) as pool:
        results = list(pool.map(lambda _: evaluator.try_consume_view(student.id, video.id), range(50)))

    allowed = [r for r in results if isinstance(r, AllowResult)]
    denied = [r for r in results if isinstance(r, DenyResult)]
    assert len(allowed) == 2
    assert len(denied) == 48
    assert all(r.reason == DenyReason.VIEW_LIMIT_REACHED for r in denied)
    assert sorted(r.view_count for r in allowed) == [1, 2]
    assert _stored_count(db, student.id, video.id) == 2


def test_concurrent_mixed_pairs_allows_match_stored_counts(db, evaluator, make_user, teacher, make_video):
    students = [make_user(UserRole.STUDENT) for _ in range(3)]
    videos = [make_video(teacher, title=f"V{i}") for i in range(2)]
    pairs = [(s.id, v.id) for s in students for v in videos] * 5

    with ThreadPoolExecutor(max_workers=20) as pool:
        results = list(pool.map(lambda p: (p, evaluator.try_consume_view(*p)), pairs))

    for s in students:
        for v in videos:
            allows = sum(1 for p, r in results if p == (s.id, v.id) and r.allowed)
            assert allows == _stored_count(db, s.id, v.id) == FREE_VIEW_LIMIT


def test_premium_always_allowed(db, evaluator, student, video, subscribe):
    subscribe(student)
    for _ in range(1000):
        result = evaluator.try_consume_view(student.id, video.id)
        assert isinstance(result, AllowResult)
        assert result.limit is None
    assert result.view_count == 1000
    assert _stored_count(db, student.id, video.id) == 1000


def test_subscription_boundary_is_inclusive(db, evaluator, student, video, subscribe):
    expires_at = utcnow().replace(microsecond=500000) + timedelta(days=1)
    subscribe(student, expires_at=expires_at)

    for _ in range(3):
        assert evaluator.try_consume_view(student.id, video.id, now=expires_at).allowed
    assert _stored_count(db, student.id, video.id) == 3

    after = expires_at + timedelta(microseconds=1)
    result = evaluator.try_consume_view(student.id, video.id, now=after)
    assert result == DenyResult(DenyReason.VIEW_LIMIT_REACHED, current_count=3, limit=2)


def test_expired_subscription_is_capped_from_fresh_record(evaluator, student, video, subscribe):
    subscribe(student, expires_at=utcnow() - timedelta(days=1))
    assert evaluator.try_consume_view(student.id, video.id).allowed
    assert evaluator.try_consume_view(student.id, video.id).allowed
    assert evaluator.try_consume_view(student.id, video.id).reason == DenyReason.VIEW_LIMIT_REACHED


def test_inactive_subscription_is_not_premium(evaluator, student, video, subscribe):
    subscribe(student, is_active=False)
    evaluator.try_consume_view(student.id, video.id)
    evaluator.try_consume_view(student.id, video.id)
    assert not evaluator.try_consume_view(student.id, video.id).allowed


def test_banned_user_is_unauthenticated(db, evaluator, student, video, ban):
    ban(student)
    result = evaluator.try_consume_view(student.id, video.id)
    assert result == DenyResult(DenyReason.UNAUTHENTICATED)
    assert _stored_count(db, student.id, video.id) is None


def test_missing_user_is_unauthenticated(evaluator, video):
    assert evaluator.try_consume_view(None, video.id).reason == DenyReason.UNAUTHENTICATED
    assert evaluator.try_consume_view("", video.id).reason == DenyReason.UNAUTHENTICATED


def test_unknown_video_is_not_found(db, evaluator, student):
    result = evaluator.try_consume_view(student.id, "does-not-exist")
    assert result == DenyResult(DenyReason.NOT_FOUND)
    assert db.query(VideoView).count() == 0


def test_store_failure_fails_closed(student, video):
    def broken_session():
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    evaluator = EntitlementEvaluator(session_factory=broken_session)
    assert evaluator.try_consume_view(student.id, video.id) == DenyResult(DenyReason.INTERNAL_ERROR)


def test_limit_for_reports_cap(db, evaluator, student, subscribe):
    assert evaluator.limit_for(db, student.id) == 2
    subscribe(student)
    assert evaluator.limit_for(db, student.id) is None
