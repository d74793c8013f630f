from datetime import datetime
from pydantic import BaseModel


class BanCreate(BaseModel):
    user_id: str
    reason: str | None = None


class BanResponse(BaseModel):
    id: str
    user_id: str
    user_email: str
    user_full_name: str
    reason: str | None
    banned_by: str | None
    banned_at: datetime
