"""
creatorsubs/features/container.py

Wires the engine components around one injected record store.
"""

from dataclasses import dataclass
from typing import Optional

from creatorsubs.core.config import BillingPolicy
from creatorsubs.core.store import RecordStore
from creatorsubs.features.defaults.service import DefaultPlanSelector
from creatorsubs.features.plans.service import PlanRegistry
from creatorsubs.features.pricing.service import PromoCalculator
from creatorsubs.features.promos.service import PromoCodeRegistry
from creatorsubs.features.subscriptions.service import SubscriptionService


@dataclass
class ServiceContainer:
    store: RecordStore
    policy: BillingPolicy
    plans: PlanRegistry
    promos: PromoCodeRegistry
    pricing: PromoCalculator
    subscriptions: SubscriptionService
    defaults: DefaultPlanSelector

    @classmethod
    def build(cls, store: RecordStore, policy: Optional[BillingPolicy] = None) -> "ServiceContainer":
        policy = policy or BillingPolicy.from_settings()
        plans = PlanRegistry(store)
        promos = PromoCodeRegistry(store, plans)
        pricing = PromoCalculator(promos, policy)
        return cls(
            store=store,
            policy=policy,
            plans=plans,
            promos=promos,
            pricing=pricing,
            subscriptions=SubscriptionService(store, plans, pricing, policy),
            defaults=DefaultPlanSelector(store, plans),
        )
