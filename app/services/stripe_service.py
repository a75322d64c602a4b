

import logging
import uuid
from typing import Any, Dict, Optional, Tuple

import stripe
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import NotFound, ServerError, ValidationError
from app.models.points_transaction import PointsTransactionType
from app.models.user import User
from app.services.points_service import PointsService


logger = logging.getLogger(__name__)


class StripeService:
    """
    Stripe checkout and webhook handling for point purchases.

    The Stripe SDK is synchronous, so its network calls run in the
    threadpool.
    """

    @staticmethod
    def _configure() -> None:
        if not settings.stripe_secret_key:
            raise ServerError("Payments are not configured")
        stripe.api_key = settings.stripe_secret_key

    @staticmethod
    def points_for_price(price_id: str) -> int:
        """
        Look up how many points a Stripe price buys.

        Raises:
            ValidationError: If the price id is unknown.
        """
        points = settings.price_points.get(price_id)
        if not points:
            raise ValidationError(f"Unknown price: {price_id}")
        return points

    @staticmethod
    async def create_checkout_session(user: User, price_id: str) -> Dict[str, str]:
        """
        Create a Stripe Checkout Session for a points package.

        Args:
            user: Purchasing user.
            price_id: Stripe price id; must be in STRIPE_PRICE_POINTS.

        Returns:
            dict: {"id": session id, "url": hosted checkout URL}
        """
        points = StripeService.points_for_price(price_id)
        StripeService._configure()

        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": f"{settings.frontend_url}/success/{{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{settings.frontend_url}/pricing",
            # Maps the webhook back to the user
            "client_reference_id": str(user.id),
            "customer_email": user.email,
            "metadata": {"user_id": str(user.id), "price_id": price_id, "points": str(points)},
        }

        try:
            session = await run_in_threadpool(stripe.checkout.Session.create, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout creation failed for user {user.id}: {e}")
            raise ServerError("Unable to start checkout, please try again later") from e

        logger.info(f"Created checkout session {session['id']} for user {user.id} ({points} points)")
        return {"id": session["id"], "url": session.get("url") or ""}

    @staticmethod
    def construct_event(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify the webhook signature and parse the event.

        Raises:
            ValidationError: If the signature is missing or does not verify.
        """
        if not settings.stripe_webhook_secret:
            raise ServerError("Payments are not configured")
        if not signature:
            raise ValidationError("Missing Stripe signature", reason="signature_missing")

        try:
            return stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.error(f"Stripe webhook signature verification failed: {e}")
            raise ValidationError("Invalid Stripe signature", reason="signature_invalid") from e

    @staticmethod
    async def process_webhook(
        payload: bytes,
        signature: Optional[str],
        db: AsyncSession,
    ) -> Tuple[str, bool]:
        """
        Verify and process a Stripe webhook.

        Returns:
            tuple: (event_id, whether points were credited by this call)
        """
        event = StripeService.construct_event(payload, signature)
        event_id = str(event.get("id") or "")
        event_type = str(event.get("type") or "")

        if event_type != "checkout.session.completed":
            logger.info(f"Ignoring Stripe event {event_id}: {event_type}")
            return event_id, False

        session = event.get("data", {}).get("object", {})
        applied = await StripeService.handle_checkout_completed(session, db)
        return event_id, applied

    @staticmethod
    async def handle_checkout_completed(session: Dict[str, Any], db: AsyncSession) -> bool:
        """
        Credit points for a completed checkout, once per session id.

        Returns:
            bool: True if points were credited, False for replays or unpaid sessions.
        """
        session_id = session.get("id")
        if not session_id:
            raise ValidationError("Checkout session id missing")

        if session.get("payment_status") not in (None, "paid", "no_payment_required"):
            logger.info(f"Checkout session {session_id} not paid yet: {session.get('payment_status')}")
            return False

        metadata = session.get("metadata") or {}
        user_id_raw = session.get("client_reference_id") or metadata.get("user_id")
        try:
            user_id = uuid.UUID(str(user_id_raw))
        except ValueError:
            logger.error(f"Checkout session {session_id} has no valid user reference")
            raise ValidationError("Checkout session has no valid user reference")

        if metadata.get("points"):
            try:
                points = int(metadata["points"])
            except (TypeError, ValueError):
                logger.error(f"Checkout session {session_id} has invalid points metadata: {metadata['points']!r}")
                raise ValidationError("Checkout session has invalid points metadata")
        else:
            points = StripeService.points_for_price(str(metadata.get("price_id") or ""))

        try:
            new_balance, applied = await PointsService.credit(
                user_id,
                points,
                db,
                reason="stripe_checkout",
                reference=session_id,
                transaction_type=PointsTransactionType.PURCHASE,
                metadata={
                    "amount_total": session.get("amount_total"),
                    "currency": session.get("currency"),
                    "price_id": metadata.get("price_id"),
                },
            )
        except NotFound:
            logger.error(f"Checkout session {session_id} references unknown user {user_id}")
            raise

        if applied:
            logger.info(f"Added {points} points to user {user_id} for session {session_id}, balance {new_balance}")
        return applied
