import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.dependencies.auth import get_current_user
from app.models.user import User
from app.schemas.payment_schemas import CheckoutSessionRequest, CheckoutSessionResponse, WebhookResponse
from app.services.stripe_service import StripeService


logger = logging.getLogger(__name__)

payment_router = APIRouter()


@payment_router.post("/checkout/session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    checkout_data: CheckoutSessionRequest,
    current_user: User = Depends(get_current_user),
):
    """Start a Stripe checkout for a points package."""
    session = await StripeService.create_checkout_session(current_user, checkout_data.price_id)
    return CheckoutSessionResponse(**session)


@payment_router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Handle Stripe webhooks.

    Verifies the ``stripe-signature`` header and credits points for
    ``checkout.session.completed`` at most once per checkout session.
    """
    # Raw body is required for signature verification
    body = await request.body()
    signature = request.headers.get("stripe-signature")

    event_id, processed = await StripeService.process_webhook(body, signature, db)
    logger.info(f"Stripe webhook {event_id} handled (credited: {processed})")
    return WebhookResponse(processed=processed)
