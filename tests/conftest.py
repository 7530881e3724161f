import os

os.environ.setdefault("SKIP_DB_INIT", "true")

import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import sessionmaker

from voucherhub.config import settings
from voucherhub.database import create_db_engine, create_tables
from voucherhub.models.voucher_code import VoucherType
from voucherhub.services.code_pool_service import CodePoolService
from voucherhub.services.settings_service import SettingsService


class FakeClock:
    """Callable clock the tests can move forward"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'vouchers.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def config():
    return settings.model_copy(update={
        "BUSINESS_TIMEZONE": "UTC",
        "DEFAULT_CLAIM_ENABLED": True,
        "DEFAULT_DAILY_LIMIT": 1000,
        "ALLOW_FABRICATED_CODES_ON_EXHAUSTION": False,
        "CODE_SELECTION_POLICY": "random",
        "MAX_RESERVATION_ATTEMPTS": 5,
    })


@pytest.fixture
def seed(session_factory, config):
    """Write pool codes / settings in a session that is closed right away."""

    def _seed(digital=(), physical=(), discount_amount=None, **store_settings):
        session = session_factory()
        try:
            pool = CodePoolService(session, config=config)
            if digital:
                pool.upload_codes(list(digital), VoucherType.DIGITAL, discount_amount=discount_amount)
            if physical:
                pool.upload_codes(list(physical), VoucherType.PHYSICAL)
            for key, value in store_settings.items():
                SettingsService(session, config=config).set_setting(key, value)
        finally:
            session.close()

    return _seed
