from datetime import datetime
from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    """Teachers/admins set recipient_id or broadcast. Students may omit both (goes to all teachers)."""
    title: str = Field(..., max_length=255)
    content: str
    recipient_id: str | None = None
    broadcast: bool = False


class MessageResponse(BaseModel):
    id: str
    sender_id: str
    sender_name: str
    recipient_id: str | None
    title: str
    content: str
    is_broadcast: bool
    read_at: datetime | None
    created_at: datetime
