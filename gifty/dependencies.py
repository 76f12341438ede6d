from fastapi import Depends
from sqlalchemy.orm import Session

from gifty.core.settings import Settings, get_settings
from gifty.database import get_db
from gifty.processors.base import PaymentProcessor
from gifty.processors.stripe_checkout import StripeCheckoutProcessor
from gifty.services.fulfillment import FulfillmentOrchestrator
from gifty.services.notifier import GiftNotifier
from gifty.services.record_store import RecordStore
from gifty.services.resolver import GiftRecordResolver


def get_payment_processor(settings: Settings = Depends(get_settings)) -> PaymentProcessor:
    return StripeCheckoutProcessor.from_settings(settings)


def get_notifier(settings: Settings = Depends(get_settings)) -> GiftNotifier:
    return GiftNotifier.from_settings(settings)


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_orchestrator(
    store: RecordStore = Depends(get_record_store),
    processor: PaymentProcessor = Depends(get_payment_processor),
    notifier: GiftNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> FulfillmentOrchestrator:
    resolver = GiftRecordResolver(store, processor)
    return FulfillmentOrchestrator(store, resolver, notifier, settings.public_base_url)
