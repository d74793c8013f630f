"""
Premium subscription: status, PayPal checkout (create order -> approve -> capture).
A successful capture appends a one-month subscription row; nothing is updated in place.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.auth import get_current_user
from app.config import get_settings
from app.database import get_db
from app.models.subscription import Subscription
from app.models.user import User
from app.schemas.subscription import (
    CaptureRequest,
    CaptureResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    SubscriptionOut,
    SubscriptionStatusResponse,
)
from app.services.payments import PaymentError, PaymentProvider, get_payment_provider
from app.services.subscriptions import activate_subscription, active_subscription, subscription_history

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.get("/me", response_model=SubscriptionStatusResponse)
def get_my_subscription(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current premium status and all past subscriptions."""
    current = active_subscription(db, user.id)
    return SubscriptionStatusResponse(
        is_premium=current is not None,
        expires_at=current.expires_at if current else None,
        history=[SubscriptionOut.model_validate(s) for s in subscription_history(db, user.id)],
    )


@router.post("/orders", response_model=CreateOrderResponse)
async def create_order(
    body: CreateOrderRequest,
    user: User = Depends(get_current_user),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """Start checkout for one month of premium. Client redirects to approve_url."""
    settings = get_settings()
    return_url = body.return_url or f"{settings.frontend_url}/dashboard"
    try:
        order = await payments.create_order(settings.subscription_price, settings.subscription_currency, return_url)
    except PaymentError as e:
        logger.exception("Create order failed for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment service temporarily unavailable. Please try again later.",
        ) from e
    return CreateOrderResponse(order_id=order.order_id, approve_url=order.approve_url)


@router.post("/capture", response_model=CaptureResponse)
async def capture_order(
    body: CaptureRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """Capture an approved order; on success the user is premium for one month from now."""
    existing = db.query(Subscription).filter(Subscription.payment_reference == body.order_id).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order already captured.")
    if not await payments.capture(body.order_id):
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Payment was not completed.")
    sub = activate_subscription(db, user.id, payment_reference=body.order_id)
    try:
        db.commit()
    except IntegrityError:
        # Another request recorded this order between the check above and this commit
        db.rollback()
        logger.warning("Order %s captured concurrently; ignoring duplicate for user %s", body.order_id, user.id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order already captured.") from None
    db.refresh(sub)
    logger.info("Subscription activated for user %s until %s", user.id, sub.expires_at.isoformat())
    return CaptureResponse(success=True, subscription=SubscriptionOut.model_validate(sub))
