"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings before any ybs import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_ybs.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import itertools
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from ybs.config.settings import Settings
from ybs.database import create_session_maker, unit_of_work_factory
from ybs.models import AccountStatus, Base, User
from ybs.services.activation import ActivationAttemptRegistry
from ybs.utils.codes import generate_referral_code

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        bcrypt_rounds=4,
        admin_api_token=ADMIN_TOKEN,
        environment="test",
    )


@pytest.fixture
async def engine(test_settings):
    """Async engine with all tables created."""
    engine = create_async_engine(test_settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session maker bound to the test engine."""
    return create_session_maker(engine)


@pytest.fixture
def uow_factory(session_maker):
    """Unit of work factory over the test database."""
    return unit_of_work_factory(session_maker)


@pytest.fixture
def mock_redis_client():
    """Dict-backed Redis double supporting setex/get."""
    store: dict[str, str] = {}

    async def setex(key, ttl, value):
        store[key] = value
        return True

    async def get(key):
        return store.get(key)

    client = AsyncMock()
    client.store = store
    client.setex = AsyncMock(side_effect=setex)
    client.get = AsyncMock(side_effect=get)
    return client


@pytest.fixture
def attempt_registry(mock_redis_client):
    """Activation attempt registry over the Redis double."""
    return ActivationAttemptRegistry(mock_redis_client, ttl_seconds=3600)


@pytest.fixture
def mock_payment_collector():
    """Payment collector returning a fresh CheckoutRequestID per call."""
    counter = itertools.count(1)

    async def initiate(amount, payout_account, reference):
        return f"ws_CO_TEST_{next(counter)}"

    collector = AsyncMock()
    collector.initiate = AsyncMock(side_effect=initiate)
    return collector


@pytest.fixture
def seed_user(uow_factory):
    """
    Insert a user row directly, bypassing registration.

    Returns:
        Async callable(phone_number, **fields) -> User
    """

    async def _seed(
        phone_number: str,
        active: bool = True,
        available_balance: Decimal = Decimal("0"),
        referral_code: str | None = None,
        referred_by: str | None = None,
    ) -> User:
        async with uow_factory() as uow:
            user = await uow.users.create(
                phone_number=phone_number,
                password_hash="seeded",
                referral_code=referral_code or generate_referral_code(),
                referred_by=referred_by,
                account_status=(
                    AccountStatus.ACTIVE.value
                    if active
                    else AccountStatus.UNVERIFIED.value
                ),
                pending_earnings=Decimal("0"),
                available_balance=available_balance,
                total_earned=Decimal("0"),
                total_withdrawn=Decimal("0"),
            )
            await uow.commit()
        return user

    return _seed


@pytest.fixture
def load_user(uow_factory):
    """Re-read a user from the database in a fresh unit of work."""

    async def _load(user_id: int) -> User:
        async with uow_factory() as uow:
            return await uow.users.get_by_id(user_id)

    return _load


def stk_callback_payload(
    checkout_request_id: str,
    result_code: int = 0,
    amount: int = 600,
    receipt: str = "QKH7XYZ123",
    phone: int = 254712345678,
) -> dict:
    """Build an STK push callback body as the provider posts it."""
    callback = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": (
            "The service request is processed successfully."
            if result_code == 0
            else "Request cancelled by user"
        ),
    }
    if result_code == 0:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": amount},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "TransactionDate", "Value": 20261018102115},
                {"Name": "PhoneNumber", "Value": phone},
            ]
        }
    return {"Body": {"stkCallback": callback}}


@pytest.fixture
def stk_callback():
    """Factory for STK push callback bodies."""
    return stk_callback_payload
