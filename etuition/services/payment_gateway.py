"""Stripe pass-through used by the payment routes."""

import logging
from decimal import ROUND_DOWN, Decimal

import stripe

from etuition.core import config
from etuition.core.errors import InvalidArgument, PaymentProcessorError

logger = logging.getLogger(__name__)


def to_minor_units(price: float) -> int:
    """Convert a positive major-unit price (e.g. dollars) to minor units (cents)."""
    if price is None or price <= 0:
        raise InvalidArgument('Price is required')
    amount = int((Decimal(str(price)) * 100).to_integral_value(rounding=ROUND_DOWN))
    if amount <= 0:
        raise InvalidArgument('Price is required')
    return amount


def create_payment_intent(price: float, metadata: dict | None = None) -> str:
    """Create a card payment intent for ``price`` and return its client secret."""
    amount = to_minor_units(price)
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount,
            currency=config.PAYMENT_CURRENCY,
            payment_method_types=['card'],
            metadata=metadata or {},
            api_key=config.STRIPE_SECRET_KEY,
        )
    except stripe.StripeError as exc:
        logger.exception('Stripe rejected payment intent for amount %s', amount)
        raise PaymentProcessorError() from exc

    logger.info('Created payment intent %s for amount %s', intent.id, amount)
    return intent.client_secret
