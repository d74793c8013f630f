"""
Video view counters. upsert_view_count is the only writer of video_views.
All operations are sync (called from worker threads by the playback gateway).
"""
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.video_view import VideoView
from app.repositories.counters import CounterOutcome, conditional_increment


def upsert_view_count(
    db: Session,
    user_id: str,
    video_id: str,
    limit: int | None,
    now: datetime,
) -> CounterOutcome:
    """Record one view unless the pair already reached `limit` (None = uncapped). Caller commits."""
    return conditional_increment(
        db,
        VideoView,
        keys={"user_id": user_id, "video_id": video_id},
        counter="view_count",
        limit=limit,
        touch={"last_viewed_at": now},
    )


def view_counts_for_user(db: Session, user_id: str, video_ids: list[str] | None = None) -> dict[str, int]:
    """video_id -> view_count for one user (display only)."""
    q = db.query(VideoView.video_id, VideoView.view_count).filter(VideoView.user_id == user_id)
    if video_ids is not None:
        if not video_ids:
            return {}
        q = q.filter(VideoView.video_id.in_(video_ids))
    return {video_id: count for video_id, count in q.all()}
