"""
Shared pytest fixtures for all test modules.

Uses an in-memory SQLite database (StaticPool) so every test
function gets a clean, isolated database, with no disk I/O and no state leakage.
The payment processor is an AsyncMock and emails go to an in-memory backend,
so nothing leaves the process.
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from typing import Optional

from gifty.database import Base, get_db
from gifty.dependencies import get_notifier, get_payment_processor
from gifty.processors.base import PaymentSession
from gifty.services.fulfillment import FulfillmentOrchestrator
from gifty.services.notifier import GiftNotifier, InMemoryEmailBackend
from gifty.services.record_store import RecordStore
from gifty.services.resolver import GiftRecordResolver
from gifty import models


PUBLIC_BASE_URL = "https://gifty.test"

# ---------------------------------------------------------------------------
# In-memory database engine shared across all fixtures in a test session.
# StaticPool forces all SQLAlchemy connections to reuse the same underlying
# sqlite3 connection, which is required for in-memory SQLite.
# ---------------------------------------------------------------------------
TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE)


@pytest.fixture(autouse=True)
def reset_db():
    """Drop and recreate all tables before each test for full isolation."""
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)
    yield
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db(reset_db):
    """Yield a SQLAlchemy session backed by the in-memory test database."""
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def processor():
    """Payment processor that knows no sessions until a test says otherwise."""
    m = AsyncMock()
    m.processor_name = "fake"
    m.retrieve_session = AsyncMock(return_value=None)
    return m


@pytest.fixture
def mailbox():
    return InMemoryEmailBackend()


@pytest.fixture
def notifier(mailbox):
    return GiftNotifier(mailbox)


@pytest.fixture
def orchestrator(db, processor, notifier):
    store = RecordStore(db)
    return FulfillmentOrchestrator(store, GiftRecordResolver(store, processor), notifier, PUBLIC_BASE_URL)


@pytest.fixture
def client(db, processor, notifier):
    """
    FastAPI TestClient with the DB, processor and email dependencies overridden.
    The TestClient is NOT used as a context manager so the lifespan hook
    (which touches the on-disk DB) is skipped.
    """
    from gifty.main import app
    from gifty.core.settings import get_settings

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_processor] = lambda: processor
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_settings] = lambda: get_settings().model_copy(
        update={"public_base_url": PUBLIC_BASE_URL}
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers (not fixtures) so any test file can import and call them directly.
# ---------------------------------------------------------------------------
def make_business(db, name: str = "Sunset Tacos", slug: str = "sunset-tacos") -> models.Business:
    business = models.Business(name=name, slug=slug)
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


def make_gift(
    db,
    code: str = "GIF-AB12CD34",
    business: Optional[models.Business] = None,
    amount_cents: int = 2500,
    currency: str = "USD",
    buyer_email: Optional[str] = "buyer@example.com",
    recipient_email: Optional[str] = None,
    stripe_checkout_id: Optional[str] = "cs_test_123",
    stripe_payment_intent_id: Optional[str] = None,
    status: str = "issued",
    created_at: Optional[datetime] = None,   # defaults to 1 minute ago
) -> models.GiftCard:
    if created_at is None:
        created_at = datetime.utcnow() - timedelta(minutes=1)
    gift = models.GiftCard(
        code=code,
        business_id=business.id if business else None,
        business_slug=business.slug if business else None,
        amount_cents=amount_cents,
        currency=currency,
        buyer_email=buyer_email,
        recipient_email=recipient_email,
        stripe_checkout_id=stripe_checkout_id,
        stripe_payment_intent_id=stripe_payment_intent_id,
        status=status,
        created_at=created_at,
    )
    db.add(gift)
    db.commit()
    db.refresh(gift)
    return gift


def make_session(
    session_id: str = "cs_test_123",
    status: str = "complete",
    amount_total: Optional[int] = 2500,
    currency: Optional[str] = "usd",
    customer_details_email: Optional[str] = "buyer@example.com",
    payment_intent_id: Optional[str] = "pi_test_123",
    metadata: Optional[dict] = None,
    **kwargs,
) -> PaymentSession:
    return PaymentSession(
        id=session_id,
        status=status,
        payment_status="paid" if status == "complete" else "unpaid",
        payment_intent_id=payment_intent_id,
        amount_total=amount_total,
        currency=currency,
        customer_details_email=customer_details_email,
        metadata=metadata or {},
        **kwargs,
    )
