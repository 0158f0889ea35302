# backend/goreserve/services/payment_authorization_service.py
"""
Release of held payment authorizations.

The engine never charges or refunds; when a reservation is cancelled it
only asks the payment provider to drop the authorization it holds.
"""

import logging
from typing import Optional, Protocol

import stripe

from ..core.config import settings
from ..core.exceptions import ServiceException

logger = logging.getLogger(__name__)


class PaymentAuthorizationReleaser(Protocol):
    def release(self, payment_intent_id: str, booking_ref: str) -> bool:
        """Release the hold. Returns False when nothing was released."""
        ...


class StripeAuthorizationReleaser:
    """Cancels Stripe PaymentIntents that still hold an authorization."""

    def __init__(self, api_key: Optional[str] = None):
        key = api_key
        if key is None and settings.stripe_secret_key:
            key = settings.stripe_secret_key.get_secret_value()
        self.api_key = key
        self.stripe_configured = bool(key)
        if not self.stripe_configured:
            logger.warning("Stripe secret key not configured - authorization release disabled")

    def release(self, payment_intent_id: str, booking_ref: str) -> bool:
        """
        Cancel a PaymentIntent to release authorization.

        Raises:
            ServiceException: Stripe refused or could not be reached
        """
        if not self.stripe_configured:
            logger.warning(
                f"Skipping authorization release for booking {booking_ref}: Stripe not configured"
            )
            return False
        try:
            intent = stripe.PaymentIntent.cancel(
                payment_intent_id,
                api_key=self.api_key,
                idempotency_key=f"release-{booking_ref}",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error canceling payment intent for {booking_ref}: {str(e)}")
            raise ServiceException(f"Failed to cancel payment intent: {str(e)}")
        logger.info(
            f"Released authorization {payment_intent_id} for booking {booking_ref} "
            f"(status={getattr(intent, 'status', None)})"
        )
        return True
