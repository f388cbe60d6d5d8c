"""
Billing status, checkout and customer portal on top of Stripe.

The Stripe SDK is synchronous, so every call runs in a worker thread.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import stripe
from stripe import StripeError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import BadRequestException, PaymentServiceException
from core.logging import get_logger
from models.models import Subscriber, User, as_utc, utcnow

logger = get_logger("billing")

TIER_TRIAL = "trial"
TIER_PREMIUM = "premium"


@dataclass
class SubscriptionStatus:
    subscribed: bool
    subscription_tier: Optional[str] = None
    trial_end: Optional[datetime] = None
    subscription_end: Optional[datetime] = None


def _require_stripe_key() -> str:
    if not settings.stripe_secret_key:
        raise PaymentServiceException("STRIPE_SECRET_KEY n'est pas configurée")
    return settings.stripe_secret_key


async def _stripe_call(func, **kwargs):
    try:
        return await asyncio.to_thread(func, api_key=_require_stripe_key(), **kwargs)
    except StripeError as e:
        logger.error("Stripe call failed", error=str(e))
        raise PaymentServiceException(f"Erreur du service de paiement : {e}") from e


async def _find_customer_id(email: str) -> Optional[str]:
    customers = await _stripe_call(stripe.Customer.list, email=email, limit=1)
    data = customers["data"]
    return data[0]["id"] if data else None


def _period_end(subscription) -> Optional[datetime]:
    """current_period_end moved onto subscription items in recent API versions."""
    timestamp = subscription.get("current_period_end")
    if timestamp is None:
        items = (subscription.get("items") or {}).get("data") or []
        timestamp = items[0].get("current_period_end") if items else None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc) if timestamp else None


async def get_subscriber(db: AsyncSession, email: str) -> Optional[Subscriber]:
    return (await db.execute(select(Subscriber).where(Subscriber.email == email))).scalar_one_or_none()


async def _upsert_subscriber(db: AsyncSession, user: User, **fields) -> Subscriber:
    subscriber = await get_subscriber(db, user.email)
    if subscriber is None:
        subscriber = Subscriber(email=user.email)
        db.add(subscriber)
    subscriber.user_id = user.id
    for key, value in fields.items():
        setattr(subscriber, key, value)
    subscriber.updated_at = utcnow()
    await db.commit()
    return subscriber


def status_from_row(subscriber: Optional[Subscriber]) -> SubscriptionStatus:
    if subscriber is None:
        return SubscriptionStatus(subscribed=False)
    return SubscriptionStatus(
        subscribed=subscriber.subscribed,
        subscription_tier=subscriber.subscription_tier,
        trial_end=as_utc(subscriber.trial_end),
        subscription_end=as_utc(subscriber.subscription_end),
    )


async def _start_trial(db: AsyncSession, user: User, customer_id: Optional[str]) -> SubscriptionStatus:
    trial_end = utcnow() + timedelta(days=settings.trial_days)
    await _upsert_subscriber(
        db, user,
        stripe_customer_id=customer_id,
        subscribed=True,
        subscription_tier=TIER_TRIAL,
        trial_end=trial_end,
    )
    logger.info("Trial started", user_id=user.id, trial_end=trial_end.isoformat())
    return SubscriptionStatus(subscribed=True, subscription_tier=TIER_TRIAL, trial_end=trial_end)


async def check_subscription(db: AsyncSession, user: User) -> SubscriptionStatus:
    """
    Refresh the user's billing status.

    - no Stripe customer: start a trial on first check, keep it while it runs,
      mark unsubscribed once it has ended
    - Stripe customer with an active subscription: premium until period end
    - Stripe customer without one: trial if still running, else unsubscribed
    """
    now = utcnow()
    customer_id = await _find_customer_id(user.email)
    existing = await get_subscriber(db, user.email)
    trial_end = as_utc(existing.trial_end) if existing else None

    if customer_id is None:
        if existing is None or trial_end is None:
            return await _start_trial(db, user, None)
        if now > trial_end:
            await _upsert_subscriber(db, user, stripe_customer_id=None, subscribed=False, subscription_tier=None)
            logger.info("Trial period ended", user_id=user.id)
            return SubscriptionStatus(subscribed=False)
        return SubscriptionStatus(subscribed=True, subscription_tier=TIER_TRIAL, trial_end=trial_end)

    subscriptions = await _stripe_call(stripe.Subscription.list, customer=customer_id, status="active", limit=1)
    if subscriptions["data"]:
        subscription_end = _period_end(subscriptions["data"][0])
        await _upsert_subscriber(
            db, user,
            stripe_customer_id=customer_id,
            subscribed=True,
            subscription_tier=TIER_PREMIUM,
            subscription_end=subscription_end,
            trial_end=None,
        )
        logger.info("Active subscription found", user_id=user.id, customer_id=customer_id)
        return SubscriptionStatus(subscribed=True, subscription_tier=TIER_PREMIUM, subscription_end=subscription_end)

    if trial_end is not None and now < trial_end:
        return SubscriptionStatus(subscribed=True, subscription_tier=TIER_TRIAL, trial_end=trial_end)

    await _upsert_subscriber(
        db, user,
        stripe_customer_id=customer_id,
        subscribed=False,
        subscription_tier=None,
        subscription_end=None,
    )
    return SubscriptionStatus(subscribed=False)


def _origin(origin: Optional[str]) -> str:
    return (origin or settings.public_base_url).rstrip("/")


async def create_checkout(db: AsyncSession, user: User, origin: Optional[str] = None) -> str:
    """Create a monthly subscription checkout session with a trial and return its URL."""
    customer_id = await _find_customer_id(user.email)
    if customer_id is None:
        customer = await _stripe_call(stripe.Customer.create, email=user.email, name=user.display_name)
        customer_id = customer["id"]
        logger.info("Stripe customer created", user_id=user.id, customer_id=customer_id)

    base = _origin(origin)
    session = await _stripe_call(
        stripe.checkout.Session.create,
        customer=customer_id,
        line_items=[{
            "price_data": {
                "currency": settings.stripe_currency,
                "product": settings.stripe_product_id,
                "unit_amount": settings.stripe_price_cents,
                "recurring": {"interval": "month"},
            },
            "quantity": 1,
        }],
        mode="subscription",
        success_url=f"{base}/success",
        cancel_url=f"{base}/cancel",
        subscription_data={"trial_period_days": settings.trial_days},
    )

    await _upsert_subscriber(db, user, stripe_customer_id=customer_id)
    logger.info("Checkout session created", user_id=user.id, session_id=session["id"])
    return session["url"]


async def create_customer_portal(user: User, origin: Optional[str] = None) -> str:
    customer_id = await _find_customer_id(user.email)
    if customer_id is None:
        raise BadRequestException("Aucun client Stripe n'est associé à ce compte")

    session = await _stripe_call(
        stripe.billing_portal.Session.create,
        customer=customer_id,
        return_url=f"{_origin(origin)}/subscription",
    )
    return session["url"]


async def record_interest(
    db: AsyncSession,
    email: Optional[str],
    name: Optional[str],
    message: str,
    user_id: Optional[int] = None,
) -> bool:
    """
    Keep the interest message on the subscriber row for ``email``.

    Best effort: the notification email is still sent when this fails.
    """
    if not email:
        return False
    try:
        subscriber = await get_subscriber(db, email)
        if subscriber is None:
            subscriber = Subscriber(email=email, subscribed=False)
            db.add(subscriber)
        if user_id is not None:
            subscriber.user_id = user_id
        subscriber.name = name or subscriber.name
        subscriber.message = message
        subscriber.updated_at = utcnow()
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Could not record subscription interest", email=email, error=str(e))
        return False
    return True
