from datetime import datetime
from pydantic import BaseModel, Field


class SubscriptionOut(BaseModel):
    id: str
    is_active: bool
    started_at: datetime
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionStatusResponse(BaseModel):
    is_premium: bool
    expires_at: datetime | None = None
    history: list[SubscriptionOut] = []


class CreateOrderRequest(BaseModel):
    return_url: str | None = None


class CreateOrderResponse(BaseModel):
    order_id: str
    approve_url: str | None


class CaptureRequest(BaseModel):
    order_id: str = Field(..., min_length=1)


class CaptureResponse(BaseModel):
    success: bool
    subscription: SubscriptionOut | None = None
