"""Shared fixtures: isolated settings, in-memory and on-disk storage, engines."""

from datetime import datetime, timezone

import pytest

from finance_ledger.audit import AuditLogger
from finance_ledger.config import LoggingSettings, PlanningSettings, Settings, StorageSettings
from finance_ledger.models.account import Account, AccountType
from finance_ledger.orchestrator import FinanceEngine
from finance_ledger.services.storage import EncryptedFileStorage, InMemoryStorage


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_account(
    name: str,
    account_type: AccountType = AccountType.CHECKING,
    value: float = 0.0,
    account_id: str = None,
    updated_at: datetime = None,
) -> Account:
    return Account(
        id=account_id,
        name=name,
        type=account_type,
        current_value=value,
        created_at=updated_at,
        updated_at=updated_at,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a temporary directory, independent of the environment."""
    return Settings(
        storage=StorageSettings(data_dir=tmp_path / "config", max_history_entries=1000),
        planning=PlanningSettings(),
        logging=LoggingSettings(level="WARNING", json_output=False),
    )


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger("finance_ledger.tests")


@pytest.fixture
def audit_events(audit_logger):
    """Live list of every audit event the engine logs."""
    return audit_logger.record_events()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def engine(settings, memory_storage, audit_logger) -> FinanceEngine:
    return FinanceEngine(settings=settings, storage=memory_storage, audit_logger=audit_logger)


@pytest.fixture
def file_storage(settings) -> EncryptedFileStorage:
    return EncryptedFileStorage(settings.storage)


@pytest.fixture
def file_engine(settings, file_storage, audit_logger) -> FinanceEngine:
    return FinanceEngine(settings=settings, storage=file_storage, audit_logger=audit_logger)
