from datetime import datetime
from pydantic import BaseModel


class VideoResponse(BaseModel):
    id: str
    teacher_id: str
    title: str
    description: str | None
    category: str
    has_thumbnail: bool
    created_at: datetime
    # Student view counter for this video and the cap reported by the entitlement evaluator
    view_count: int = 0
    view_limit: int | None = None


class PlaybackGrantResponse(BaseModel):
    url: str
    expires_at: datetime
    view_count: int | None = None
    limit: int | None = None


class PlaybackDenialResponse(BaseModel):
    """Structured denial; the client renders VIEW_LIMIT_REACHED as an upgrade prompt."""
    reason: str
    current_count: int | None = None
    limit: int | None = None


class SignedUrlResponse(BaseModel):
    url: str
    expires_at: datetime
