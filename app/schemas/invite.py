from datetime import datetime
from pydantic import BaseModel


class InviteCodeValidateRequest(BaseModel):
    invite_code: str


class InviteCodeValidateResponse(BaseModel):
    valid: bool


class InviteCodeCreated(BaseModel):
    id: str
    code: str  # shown once


class InviteCodeResponse(BaseModel):
    id: str
    is_active: bool
    created_by: str | None
    created_at: datetime

    class Config:
        from_attributes = True
