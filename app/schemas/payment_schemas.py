from pydantic import Field

from app.schemas.base import CamelModel


class CheckoutSessionRequest(CamelModel):
    """Request model for starting a Stripe checkout."""
    price_id: str = Field(min_length=1)


class CheckoutSessionResponse(CamelModel):
    id: str
    url: str


class WebhookResponse(CamelModel):
    """Response model for webhook processing."""
    received: bool = True
    processed: bool
