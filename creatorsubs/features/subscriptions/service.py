"""
creatorsubs/features/subscriptions/service.py

Subscription state machine.

Handles:
- Creation with a fail-fast validation chain and promo pricing
- Cancellation, including end-date reconstruction for open-ended records
- Subscriber / creator read views

One record slot exists per (subscriber, creator) pair, keyed
"<subscriber_id>_<creator_id>". Creation writes that slot conditionally:
a plain create when it is empty, a version-checked replace when it holds
a terminal record. Of N concurrent creators for the same pair exactly one
write lands; the rest get AlreadySubscribedError.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from creatorsubs.core.config import BillingPolicy
from creatorsubs.core.errors import (
    AlreadyInactiveError,
    AlreadySubscribedError,
    ConflictError,
    NotAuthorizedError,
    PlanCreatorMismatchError,
    PlanInactiveError,
    PlanNotFoundError,
    PriceOutOfBoundsError,
    SelfSubscriptionForbiddenError,
    SubscriptionNotFoundError,
    ValidationError,
)
from creatorsubs.core.logging import log_event
from creatorsubs.core.store import SUBSCRIPTIONS, RecordConflictError, RecordStore, Where
from creatorsubs.features.plans.service import PlanRegistry
from creatorsubs.features.pricing.service import PromoCalculator
from creatorsubs.features.subscriptions.billing import plan_period_end
from creatorsubs.models.plan import Plan
from creatorsubs.models.subscription import (
    CANCELLABLE_STATUSES,
    EndDateSource,
    SubscriptionStatus,
    UserSubscription,
    subscription_id_for,
)

# Statuses that can still carry an entitlement for the subscriber list
_LISTED_STATUSES = [SubscriptionStatus.ACTIVE.value, SubscriptionStatus.CANCELLED.value]


class SubscriptionService:
    def __init__(
        self,
        store: RecordStore,
        plans: PlanRegistry,
        pricing: PromoCalculator,
        policy: Optional[BillingPolicy] = None,
    ):
        self._store = store
        self._plans = plans
        self._pricing = pricing
        self._policy = policy or BillingPolicy()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_subscription(
        self,
        subscriber_id: str,
        creator_id: str,
        plan_id: str,
        promo_code: Optional[str] = None,
        is_bundle: bool = False,
        bundle_end_date: Optional[datetime] = None,
    ) -> UserSubscription:
        """
        Subscribe subscriber_id to creator_id's plan.

        Validation order (first failure wins, nothing is written):
        plan exists, plan belongs to creator, plan active, price within
        policy band, not subscribing to self, no active subscription for
        the pair, promo valid.

        Bundles are one-time and non-renewing; their end date is supplied by
        the caller (bundle_end_date) and never derived from the plan.

        Raises:
            PlanNotFoundError, PlanCreatorMismatchError, PlanInactiveError,
            PriceOutOfBoundsError, SelfSubscriptionForbiddenError,
            AlreadySubscribedError, InvalidPromoError, PromoExpiredError,
            ValidationError (bundle end date misuse)
        """
        plan = self._plans.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError("Plan not found.")
        if plan.creator_id != creator_id:
            raise PlanCreatorMismatchError("Plan does not belong to the specified creator.")
        if not plan.is_active:
            raise PlanInactiveError("The selected plan is not active.")
        if not self._policy.price_in_bounds(plan.price):
            raise PriceOutOfBoundsError(
                f"Subscription price must be between ${self._policy.paid_price_min} "
                f"and ${self._policy.paid_price_max} for paid plans."
            )
        if subscriber_id == creator_id:
            raise SelfSubscriptionForbiddenError("Cannot subscribe to your own plan.")

        subscription_id = subscription_id_for(subscriber_id, creator_id)
        existing = self._store.get(SUBSCRIPTIONS, subscription_id)
        if existing is not None and existing.get("status") == SubscriptionStatus.ACTIVE.value:
            raise AlreadySubscribedError("User is already actively subscribed to this creator.")

        now = self._store.now()
        quote = self._pricing.apply_promo(plan, promo_code, now)
        window = self._initial_window(plan, now, is_bundle, bundle_end_date)

        document: Dict[str, Any] = {
            "subscriber_id": subscriber_id,
            "creator_id": creator_id,
            "plan_id": plan_id,
            "status": SubscriptionStatus.ACTIVE.value,
            "start_date": now,
            "is_bundle": bool(is_bundle),
            "promo_code": None,
            "promo_discount_percent": None,
            "promo_id": None,
            "final_price": None,
            "created_at": now,
            "updated_at": now,
            **window,
        }
        if quote.applied_promo is not None:
            document.update(
                promo_code=quote.applied_promo.code,
                promo_discount_percent=quote.applied_promo.discount_percent,
                promo_id=quote.applied_promo.promo_id,
                final_price=quote.final_price,
            )

        try:
            if existing is None:
                record = self._store.create(SUBSCRIPTIONS, document, record_id=subscription_id)
            else:
                # Overwrites the terminal record only if nobody wrote it since we read it
                record = self._store.replace(
                    SUBSCRIPTIONS, subscription_id, document, expected_version=existing["version"]
                )
        except RecordConflictError:
            log_event(
                "info",
                "subscription.create.lost_race",
                user_id=subscriber_id,
                event_type="subscription.create",
                error_code=AlreadySubscribedError.code,
                extra={"subscription_id": subscription_id},
            )
            raise AlreadySubscribedError("User is already actively subscribed to this creator.")

        subscription = UserSubscription.model_validate(record)
        log_event(
            "info",
            "subscription.created",
            user_id=subscriber_id,
            event_type="subscription.created",
            extra={
                "subscription_id": subscription.id,
                "creator_id": creator_id,
                "plan_id": plan_id,
                "promo_id": subscription.promo_id,
                "is_bundle": subscription.is_bundle,
            },
        )
        return subscription

    def _initial_window(
        self,
        plan: Plan,
        now: datetime,
        is_bundle: bool,
        bundle_end_date: Optional[datetime],
    ) -> Dict[str, Any]:
        if is_bundle:
            if bundle_end_date is not None and bundle_end_date.tzinfo is None:
                bundle_end_date = bundle_end_date.replace(tzinfo=timezone.utc)
            if bundle_end_date is not None and bundle_end_date <= now:
                raise ValidationError("Bundle end date must be in the future.", code="invalid_bundle_end_date")
            return {
                "end_date": bundle_end_date,
                "next_billing_date": None,
                "is_recurring": False,
                "will_renew": False,
                "end_date_source": EndDateSource.BUNDLE_INPUT.value if bundle_end_date else None,
            }
        if bundle_end_date is not None:
            raise ValidationError("bundle_end_date is only valid for bundle purchases.", code="invalid_bundle_end_date")

        if not plan.is_free and plan.has_billing_interval:
            period_end = plan_period_end(plan, now)
            return {
                "end_date": period_end,
                "next_billing_date": period_end,
                "is_recurring": True,
                "will_renew": True,
                "end_date_source": EndDateSource.PLAN_INTERVAL.value,
            }

        # Free or open-ended: no billing date, recurring flag has no effect
        return {
            "end_date": None,
            "next_billing_date": None,
            "is_recurring": True,
            "will_renew": True,
            "end_date_source": None,
        }

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel_subscription(self, subscription_id: str, caller_id: str) -> UserSubscription:
        """
        Cancel a subscription on behalf of its subscriber.

        A subscription whose end_date has already passed becomes "expired";
        otherwise "cancelled" (still entitled until end_date). Records with
        no end_date get one rebuilt from the plan interval applied to
        start_date; if the plan is gone or has no interval, start_date plus
        the policy's fallback days is used and the fallback is logged.

        Raises:
            SubscriptionNotFoundError, NotAuthorizedError, AlreadyInactiveError
        """
        subscription = self.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError("Subscription not found.")
        if subscription.subscriber_id != caller_id:
            raise NotAuthorizedError("User not authorized to cancel this subscription.")
        if subscription.status not in CANCELLABLE_STATUSES:
            raise AlreadyInactiveError("Subscription is already inactive.")

        now = self._store.now()
        if subscription.end_date is not None and subscription.end_date <= now:
            new_status = SubscriptionStatus.EXPIRED
        else:
            new_status = SubscriptionStatus.CANCELLED

        end_date = subscription.end_date
        end_date_source = subscription.end_date_source
        if end_date is None:
            end_date, end_date_source = self._reconstruct_end_date(subscription)

        changes = {
            "status": new_status.value,
            "next_billing_date": None,
            "end_date": end_date,
            "end_date_source": end_date_source,
            "will_renew": False,
            "updated_at": now,
        }
        try:
            record = self._store.update(
                SUBSCRIPTIONS, subscription_id, changes, expected_version=subscription.version
            )
        except RecordConflictError:
            current = self.get_subscription(subscription_id)
            if current is None or current.status not in CANCELLABLE_STATUSES:
                raise AlreadyInactiveError("Subscription is already inactive.")
            raise ConflictError("Subscription was modified concurrently; retry the cancellation.")

        cancelled = UserSubscription.model_validate(record)
        log_event(
            "info",
            "subscription.cancelled",
            user_id=caller_id,
            event_type="subscription.cancelled",
            extra={
                "subscription_id": subscription_id,
                "status": cancelled.status,
                "end_date": cancelled.end_date,
                "end_date_source": cancelled.end_date_source,
            },
        )
        return cancelled

    def _reconstruct_end_date(self, subscription: UserSubscription):
        plan = self._plans.get_plan(subscription.plan_id)
        end_date = plan_period_end(plan, subscription.start_date)
        if end_date is not None:
            return end_date, EndDateSource.PLAN_INTERVAL.value

        fallback_days = self._policy.cancel_fallback_days
        log_event(
            "warning",
            "subscription.cancel.end_date_fallback",
            user_id=subscription.subscriber_id,
            event_type="subscription.cancel.end_date_fallback",
            extra={
                "subscription_id": subscription.id,
                "plan_id": subscription.plan_id,
                "plan_found": plan is not None,
                "fallback_days": fallback_days,
            },
        )
        return subscription.start_date + timedelta(days=fallback_days), EndDateSource.FALLBACK.value

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_subscription(self, subscription_id: str) -> Optional[UserSubscription]:
        record = self._store.get(SUBSCRIPTIONS, subscription_id)
        return UserSubscription.model_validate(record) if record else None

    def get_latest_subscription_to_creator(self, subscriber_id: str, creator_id: str) -> Optional[UserSubscription]:
        """Most recent subscription of any status for the pair."""
        records = self._store.query(
            SUBSCRIPTIONS,
            [Where("subscriber_id", "==", subscriber_id), Where("creator_id", "==", creator_id)],
            order_by="created_at",
            descending=True,
            limit=1,
        )
        return UserSubscription.model_validate(records[0]) if records else None

    def get_active_subscription_to_creator(self, subscriber_id: str, creator_id: str) -> Optional[UserSubscription]:
        records = self._store.query(
            SUBSCRIPTIONS,
            [
                Where("subscriber_id", "==", subscriber_id),
                Where("creator_id", "==", creator_id),
                Where("status", "==", SubscriptionStatus.ACTIVE.value),
            ],
            order_by="created_at",
            descending=True,
            limit=1,
        )
        return UserSubscription.model_validate(records[0]) if records else None

    def get_subscriptions_by_subscriber(
        self,
        subscriber_id: str,
        status: Optional[str] = None,
    ) -> List[UserSubscription]:
        filters = [Where("subscriber_id", "==", subscriber_id)]
        if status:
            filters.append(Where("status", "==", SubscriptionStatus(status).value))
        records = self._store.query(SUBSCRIPTIONS, filters, order_by="created_at", descending=True)
        return [UserSubscription.model_validate(r) for r in records]

    def get_subscribers_for_creator(
        self,
        creator_id: str,
        plan_id: Optional[str] = None,
        status: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[UserSubscription]:
        """
        Subscribers currently entitled to creator_id's content.

        Returns active subscriptions plus cancelled ones whose end_date is
        still in the future, newest first.
        """
        filters = [Where("creator_id", "==", creator_id)]
        if plan_id:
            filters.append(Where("plan_id", "==", plan_id))
        filters.append(Where("status", "in", _LISTED_STATUSES))
        if status:
            filters.append(Where("status", "==", SubscriptionStatus(status).value))

        records = self._store.query(SUBSCRIPTIONS, filters, order_by="created_at", descending=True)
        reference = now or self._store.now()
        subscriptions = [UserSubscription.model_validate(r) for r in records]
        return [s for s in subscriptions if s.is_entitled(reference)]
