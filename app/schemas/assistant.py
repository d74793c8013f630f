from pydantic import BaseModel, Field


class AssistantUsageResponse(BaseModel):
    """Daily study assistant question quota for the current user."""
    limit: int | None = Field(None, description="Questions per day (None = unlimited, premium)")
    used_today: int = Field(..., description="Questions already asked today")
    remaining_today: int | None = Field(None, description="Remaining questions today (None = unlimited)")
