import logging
from decimal import Decimal, ROUND_HALF_UP

import stripe

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    pass


def to_minor_units(amount) -> int:
    """Major currency units (e.g. dollars) to the integer cents Stripe expects."""
    cents = Decimal(str(amount)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePayments:
    def __init__(self, secret_key: str, currency: str = "usd"):
        if not secret_key:
            raise RuntimeError("STRIPE_SECRET_KEY is not set")
        self.secret_key = secret_key
        self.currency = currency

    def create_intent(self, amount_minor: int) -> str:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_minor,
                currency=self.currency,
                payment_method_types=["card"],
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            logger.error("Stripe error: %s", e)
            raise PaymentError(str(e)) from e
        return intent.client_secret
