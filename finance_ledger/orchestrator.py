"""
Finance Engine

The single entry point for every ledger and planning operation.

Every operation follows the same cycle, under one lock:
1. LOAD the whole decrypted state from storage
2. MUTATE that private in-memory copy through the ledger components
3. PERSIST the whole state back (read-only operations skip this)

DESIGN DECISION: The engine enforces the error boundaries:
- Expected domain failures (LedgerError) come back as `success=False`
  results and are audited at WARNING. They never raise past the engine.
- Storage failures (missing key, undecryptable file, failed write) DO
  raise. They signal key loss, corruption or a full disk, and the caller
  has to decide what to do.
- A failed persist discards the mutation: the next operation reloads from
  disk and never sees it. Nothing is retried.

Audit events of an operation are only logged once its state is safely
persisted, so the audit trail never describes a change that was lost.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterator, Optional, Union
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from finance_ledger.audit import AuditLogger, configure_logging, create_correlation_id
from finance_ledger.config import Settings, get_settings
from finance_ledger.exceptions import (
    ApartmentNotFoundError,
    InvalidInputError,
    LedgerError,
)
from finance_ledger.ledger import AccountRegistry, ConsolidationEngine, HistoryLedger
from finance_ledger.models.account import (
    ACCOUNT_TYPES,
    Account,
    AccountType,
    AccountTypeInfo,
    as_utc_datetime,
    ensure_utc,
    new_id,
    utc_now,
)
from finance_ledger.models.apartment import (
    AmortizationBreakdown,
    Apartment,
    GoalType,
    MonthlyCashFlow,
    SuggestedRent,
)
from finance_ledger.models.audit import AuditEvent, AuditEventBuilder
from finance_ledger.models.history import (
    AccountCreatedEntry,
    AccountsMergedEntry,
    BalancePoint,
    BalanceUpdateEntry,
    CategoryHistoryPoint,
    HistoryEntry,
    NetWorthPoint,
)
from finance_ledger.models.planning import AdvancedSettings, AllocationReport, Demographics
from finance_ledger.models.results import (
    AccountResult,
    ApartmentResult,
    BalanceUpdateResult,
    DataResult,
    IngestionResult,
    MergeResult,
    OperationResult,
    ProjectionResult,
    UnmergeResult,
)
from finance_ledger.models.state import FinanceState, default_state
from finance_ledger.planning import (
    AllocationEngine,
    ApartmentAnalyzer,
    RetirementProjector,
    amortization_breakdown,
)
from finance_ledger.planning.apartment import payment_number
from finance_ledger.queries import HistoryViews
from finance_ledger.services.ocr import AccountIngestor, ParsedAccount
from finance_ledger.services.storage import (
    DecryptionError,
    EncryptedFileStorage,
    PersistenceError,
    StateStorageInterface,
)
from finance_ledger.validation import ApartmentValidator, RetirementInputValidator

_history_entry_adapter = TypeAdapter(HistoryEntry)


@dataclass
class _Session:
    """The loaded state of one operation plus the components bound to it."""

    state: FinanceState
    registry: AccountRegistry
    ledger: HistoryLedger
    correlation_id: UUID
    events: list[AuditEvent] = field(default_factory=list)

    def record(self, event: AuditEvent) -> None:
        self.events.append(event)

    def history_views(self) -> HistoryViews:
        merges = [e for e in self.ledger if isinstance(e, AccountsMergedEntry)]
        return HistoryViews(self.registry, self.ledger.balance_updates(), merges)


def _coerce(model_cls, value):
    """Validate a dict into `model_cls`; bad input is a domain failure."""
    if isinstance(value, model_cls):
        return value
    try:
        return model_cls.model_validate(value)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {model_cls.__name__}: {e.errors()[0]['msg']}") from e


def _merge_updates(model_cls, current, updates):
    """Shallow-merge `updates` over `current` and re-validate."""
    if isinstance(updates, model_cls):
        return updates
    merged = current.model_dump()
    partial = _coerce_partial(model_cls, updates)
    merged.update(partial)
    return _coerce(model_cls, merged)


def _coerce_partial(model_cls, updates: dict) -> dict:
    """Map camelCase or snake_case keys onto field names."""
    aliases = {f.alias: name for name, f in model_cls.model_fields.items() if f.alias}
    return {aliases.get(key, key): value for key, value in updates.items()}


class FinanceEngine:
    """
    Facade over storage, the ledger core and the planning components.

    Usage:
        engine = FinanceEngine()                        # settings from the environment
        engine = FinanceEngine(settings, InMemoryStorage())   # tests

        result = engine.save_account({"name": "Checking", "type": "checking"})
        report = engine.get_recommendations()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[StateStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings()
        configure_logging(self._settings.logging)

        self._audit_logger = audit_logger or AuditLogger()
        self._storage = storage or EncryptedFileStorage(self._settings.storage)
        self._lock = threading.RLock()

        self._allocation = AllocationEngine(self._settings.planning)
        self._apartment_analyzer = ApartmentAnalyzer(self._settings.planning)
        self._apartment_validator = ApartmentValidator()
        self._retirement_validator = RetirementInputValidator()

        if getattr(self._storage, "key_generated", False):
            self._audit_logger.log(AuditEventBuilder.encryption_key_generated(
                str(getattr(self._storage, "key_path", ""))
            ))

    @property
    def settings(self) -> Settings:
        return self._settings

    # =========================================================================
    # LOAD / PERSIST CYCLE
    # =========================================================================

    def _load(self, correlation_id: UUID) -> FinanceState:
        try:
            return self._storage.load()
        except DecryptionError as e:
            data_path = str(getattr(self._storage, "data_path", ""))
            self._audit_logger.log(AuditEventBuilder.decryption_failed(
                data_path=data_path,
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            if not self._settings.storage.substitute_default_on_decrypt_failure:
                raise

            # Move the unreadable file aside first so the next save cannot overwrite it
            quarantined = self._storage.quarantine()
            self._audit_logger.log(AuditEventBuilder.default_state_substituted(
                data_path=data_path,
                quarantined_path=str(quarantined) if quarantined else None,
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            return default_state()

    def _persist(self, session: _Session, operation: str) -> None:
        try:
            self._storage.save(session.state)
        except PersistenceError as e:
            self._audit_logger.log(AuditEventBuilder.persistence_failed(
                operation=operation,
                error_message=str(e),
                correlation_id=session.correlation_id,
            ))
            raise

    @contextmanager
    def _session(self, operation: str, write: bool = True) -> Iterator[_Session]:
        """
        Run one operation's load → mutate → persist cycle under the lock.

        A LedgerError raised inside the block is audited and re-raised;
        nothing is persisted in that case.
        """
        correlation_id = create_correlation_id()
        with self._lock:
            state = self._load(correlation_id)
            session = _Session(
                state=state,
                registry=AccountRegistry(state.accounts),
                ledger=HistoryLedger(state.history, self._settings.storage.max_history_entries),
                correlation_id=correlation_id,
            )
            try:
                yield session
            except LedgerError as e:
                self._audit_logger.log_rejected(
                    operation=operation,
                    reason=str(e),
                    entity_id=getattr(e, "account_id", None) or getattr(e, "apartment_id", None),
                    correlation_id=correlation_id,
                )
                raise

            if not write:
                return

            if session.ledger.evicted_count:
                session.record(AuditEventBuilder.history_evicted(
                    evicted=session.ledger.evicted_count,
                    max_entries=session.ledger.max_entries,
                    correlation_id=correlation_id,
                ))
            self._persist(session, operation)

        for event in session.events:
            self._audit_logger.log(event)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def get_accounts(self) -> list[Account]:
        with self._session("get_accounts", write=False) as session:
            return session.registry.all()

    def get_account(self, account_id: str) -> AccountResult:
        try:
            with self._session("get_account", write=False) as session:
                return AccountResult(success=True, account=session.registry.require(account_id))
        except LedgerError as e:
            return AccountResult.failure(str(e))

    def get_account_types(self) -> dict[AccountType, AccountTypeInfo]:
        return dict(ACCOUNT_TYPES)

    def save_account(self, account: Union[Account, dict]) -> AccountResult:
        """
        Create or replace an account.

        Previous names only change through merge and unmerge, so an
        update keeps the stored ones (and the original `created_at`).
        """
        try:
            account = _coerce(Account, account)
            with self._session("save_account") as session:
                existing = session.registry.get(account.id) if account.id else None
                if existing is not None:
                    account.previous_names = list(existing.previous_names)
                    account.created_at = existing.created_at
                    if account.balance_as_of is None:
                        account.balance_as_of = existing.balance_as_of

                created = session.registry.upsert(account)
                if created:
                    session.ledger.append(AccountCreatedEntry(
                        account_id=account.id,
                        account_name=account.name,
                        account_type=account.type,
                        initial_balance=account.current_value,
                    ))
                session.record(AuditEventBuilder.account_saved(
                    account_id=account.id,
                    account_name=account.name,
                    created=created,
                    correlation_id=session.correlation_id,
                ))
        except LedgerError as e:
            return AccountResult.failure(str(e))
        return AccountResult(success=True, account=account, created=created)

    def delete_account(self, account_id: str) -> OperationResult:
        try:
            with self._session("delete_account") as session:
                session.registry.delete(account_id)
                session.record(AuditEventBuilder.account_deleted(
                    account_id, correlation_id=session.correlation_id
                ))
        except LedgerError as e:
            return OperationResult.failure(str(e))
        return OperationResult(success=True)

    def update_account_balance(
        self,
        account_id: str,
        balance: float,
        balance_date: Optional[Union[date, datetime]] = None,
        note: Optional[str] = None,
    ) -> BalanceUpdateResult:
        """
        Record a balance for an account.

        A history entry is always written. The account's current value
        only moves when `balance_date` is not older than the balance it
        already shows.
        """
        effective = as_utc_datetime(balance_date) if balance_date is not None else utc_now()
        try:
            with self._session("update_account_balance") as session:
                account = session.registry.require(account_id)
                old_balance = account.current_value

                session.ledger.append(BalanceUpdateEntry(
                    account_id=account.id,
                    account_name=account.name,
                    old_balance=old_balance,
                    new_balance=balance,
                    balance_date=effective,
                    note=note,
                ))

                applied = account.balance_as_of is None or effective >= account.balance_as_of
                if applied:
                    account.current_value = balance
                    account.balance_as_of = effective
                    session.registry.upsert(account)

                session.record(AuditEventBuilder.balance_updated(
                    account_id=account.id,
                    old_balance=old_balance,
                    new_balance=balance,
                    applied=applied,
                    correlation_id=session.correlation_id,
                ))
        except LedgerError as e:
            return BalanceUpdateResult.failure(str(e))
        return BalanceUpdateResult(success=True, account=account, balance_applied=applied)

    def update_account_display_name(self, account_id: str, display_name: Optional[str]) -> AccountResult:
        try:
            with self._session("update_account_display_name") as session:
                account = session.registry.set_display_name(account_id, display_name)
                session.record(AuditEventBuilder.display_name_updated(
                    account_id=account.id,
                    cleared=account.display_name is None,
                    correlation_id=session.correlation_id,
                ))
        except LedgerError as e:
            return AccountResult.failure(str(e))
        return AccountResult(success=True, account=account)

    def get_account_display_name(self, account_id: str) -> DataResult:
        try:
            with self._session("get_account_display_name", write=False) as session:
                account = session.registry.require(account_id)
                return DataResult(success=True, data=AccountRegistry.display_name(account))
        except LedgerError as e:
            return DataResult.failure(str(e))

    # =========================================================================
    # DEMOGRAPHICS / SETTINGS
    # =========================================================================

    def get_demographics(self) -> Demographics:
        with self._session("get_demographics", write=False) as session:
            return session.state.demographics

    def update_demographics(self, updates: Union[Demographics, dict]) -> DataResult:
        """Merge `updates` over the stored demographics."""
        try:
            with self._session("update_demographics") as session:
                session.state.demographics = _merge_updates(
                    Demographics, session.state.demographics, updates
                )
                demographics = session.state.demographics
        except LedgerError as e:
            return DataResult.failure(str(e))
        return DataResult(success=True, data=demographics)

    def get_advanced_settings(self) -> AdvancedSettings:
        with self._session("get_advanced_settings", write=False) as session:
            return session.state.advanced_settings

    def update_advanced_settings(self, updates: Union[AdvancedSettings, dict]) -> DataResult:
        try:
            with self._session("update_advanced_settings") as session:
                session.state.advanced_settings = _merge_updates(
                    AdvancedSettings, session.state.advanced_settings, updates
                )
                advanced = session.state.advanced_settings
        except LedgerError as e:
            return DataResult.failure(str(e))
        return DataResult(success=True, data=advanced)

    # =========================================================================
    # HISTORY
    # =========================================================================

    def add_history_entry(self, entry: Union[HistoryEntry, dict]) -> OperationResult:
        try:
            if isinstance(entry, dict):
                try:
                    entry = _history_entry_adapter.validate_python(entry)
                except ValidationError as e:
                    raise InvalidInputError(f"Invalid history entry: {e.errors()[0]['msg']}") from e
            with self._session("add_history_entry") as session:
                session.ledger.append(entry)
        except LedgerError as e:
            return OperationResult.failure(str(e))
        return OperationResult(success=True)

    def get_history(
        self,
        account_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[HistoryEntry]:
        with self._session("get_history", write=False) as session:
            return session.ledger.query(account_id, ensure_utc(start), ensure_utc(end))

    def get_account_balance_history(self, account_id: str) -> list[BalancePoint]:
        with self._session("get_account_balance_history", write=False) as session:
            views = session.history_views()
            return views.account_balance_history(account_id)

    def get_net_worth_history(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[NetWorthPoint]:
        with self._session("get_net_worth_history", write=False) as session:
            views = session.history_views()
            return views.net_worth_history(ensure_utc(start), ensure_utc(end))

    def get_history_by_category(self) -> list[CategoryHistoryPoint]:
        with self._session("get_history_by_category", write=False) as session:
            views = session.history_views()
            return views.history_by_category()

    # =========================================================================
    # MERGE / UNMERGE
    # =========================================================================

    def merge_accounts(self, account_ids: list[str]) -> MergeResult:
        try:
            with self._session("merge_accounts") as session:
                result = ConsolidationEngine(session.registry, session.ledger).merge(account_ids)
                session.record(AuditEventBuilder.accounts_merged(
                    surviving_account_id=result.surviving_account.id,
                    merged_account_ids=result.merged_account_ids,
                    previous_names=result.previous_names,
                    correlation_id=session.correlation_id,
                ))
        except LedgerError as e:
            return MergeResult.failure(str(e))
        return result

    def unmerge_account(
        self,
        account_id: str,
        manual_balances: Optional[dict[str, float]] = None,
    ) -> UnmergeResult:
        try:
            with self._session("unmerge_account") as session:
                result = ConsolidationEngine(session.registry, session.ledger).unmerge(
                    account_id, manual_balances
                )
                session.record(AuditEventBuilder.accounts_unmerged(
                    source_account_id=account_id,
                    recreated_account_ids=result.recreated_account_ids,
                    manual_balances_used=result.manual_balances_used,
                    correlation_id=session.correlation_id,
                ))
        except LedgerError as e:
            return UnmergeResult.failure(str(e))
        return result

    # =========================================================================
    # PLANNING
    # =========================================================================

    def get_recommendations(self) -> AllocationReport:
        with self._session("get_recommendations", write=False) as session:
            return self._allocation.analyze(session.registry.all(), session.state.demographics)

    def run_retirement_projection(
        self,
        seed: Optional[int] = None,
        simulation_count: Optional[int] = None,
    ) -> ProjectionResult:
        """
        Monte Carlo retirement projection on the stored inputs.

        Runs inline under the engine lock until every path is simulated.
        Invalid inputs return `success=False` with the validation issues.
        """
        try:
            with self._session("run_retirement_projection", write=False) as session:
                advanced = session.state.advanced_settings
                if simulation_count is not None:
                    advanced = _coerce(
                        AdvancedSettings,
                        {**advanced.model_dump(), "simulation_count": simulation_count},
                    )

                totals = AllocationEngine.category_totals(session.registry)
                projector = RetirementProjector(advanced, self._retirement_validator)
                projection = projector.project(
                    demographics=session.state.demographics,
                    starting_portfolio=AllocationEngine.total_assets(totals),
                    balance_history=session.ledger.balance_updates(),
                    seed=seed,
                )
        except InvalidInputError as e:
            return ProjectionResult(success=False, error=str(e), issues=e.issues)
        except LedgerError as e:
            return ProjectionResult.failure(str(e))

        self._audit_logger.log(AuditEventBuilder.projection_completed(
            success_probability=projection.success_probability,
            rating=projection.rating.value,
            simulation_count=projection.simulation_count,
            correlation_id=session.correlation_id,
        ))
        return ProjectionResult(success=True, projection=projection)

    # =========================================================================
    # APARTMENTS
    # =========================================================================

    @staticmethod
    def _find_apartment(state: FinanceState, apartment_id: str) -> Apartment:
        for apartment in state.apartments:
            if apartment.id == apartment_id:
                return apartment
        raise ApartmentNotFoundError(apartment_id)

    def get_apartments(self) -> list[Apartment]:
        with self._session("get_apartments", write=False) as session:
            return list(session.state.apartments)

    def get_apartment(self, apartment_id: str) -> ApartmentResult:
        try:
            with self._session("get_apartment", write=False) as session:
                apartment = self._find_apartment(session.state, apartment_id)
        except LedgerError as e:
            return ApartmentResult.failure(str(e))
        return ApartmentResult(success=True, apartment=apartment)

    def save_apartment(self, apartment: Union[Apartment, dict]) -> ApartmentResult:
        try:
            apartment = _coerce(Apartment, apartment)
            with self._session("save_apartment") as session:
                validation = self._apartment_validator.validate(
                    apartment, (a.id for a in session.registry)
                )
                if not validation.is_valid:
                    raise InvalidInputError(validation.error_message, validation.issues)

                if not apartment.id:
                    apartment.id = new_id()
                apartments = session.state.apartments
                for index, existing in enumerate(apartments):
                    if existing.id == apartment.id:
                        apartments[index] = apartment
                        break
                else:
                    apartments.append(apartment)

                session.record(AuditEventBuilder.apartment_saved(
                    apartment_id=apartment.id,
                    name=apartment.name,
                    correlation_id=session.correlation_id,
                ))
        except LedgerError as e:
            return ApartmentResult.failure(str(e))
        return ApartmentResult(success=True, apartment=apartment)

    def delete_apartment(self, apartment_id: str) -> OperationResult:
        try:
            with self._session("delete_apartment") as session:
                apartment = self._find_apartment(session.state, apartment_id)
                session.state.apartments.remove(apartment)
                session.record(AuditEventBuilder.apartment_deleted(
                    apartment_id, correlation_id=session.correlation_id
                ))
        except LedgerError as e:
            return OperationResult.failure(str(e))
        return OperationResult(success=True)

    def get_mortgage_breakdown(
        self,
        apartment_id: str,
        month: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> DataResult:
        """
        Amortization split for payment number `month`, or for the payment
        falling in `as_of`'s month (default: this month).
        """
        try:
            with self._session("get_mortgage_breakdown", write=False) as session:
                apartment = self._find_apartment(session.state, apartment_id)
                terms = apartment.mortgage
                if terms is None:
                    raise InvalidInputError("Apartment has no mortgage")
                if month is None:
                    month = payment_number(terms, as_of or date.today())
                    if month is None:
                        raise InvalidInputError("Date is outside the mortgage term")
                breakdown: AmortizationBreakdown = amortization_breakdown(terms, month)
        except LedgerError as e:
            return DataResult.failure(str(e))
        return DataResult(success=True, data=breakdown)

    def suggest_rent(
        self,
        apartment_id: str,
        goal: Optional[Union[GoalType, str]] = None,
        as_of: Optional[date] = None,
    ) -> DataResult:
        try:
            with self._session("suggest_rent", write=False) as session:
                apartment = self._find_apartment(session.state, apartment_id)
                try:
                    goal = GoalType(goal) if goal is not None else None
                except ValueError as e:
                    raise InvalidInputError(f"Unknown goal: {goal}") from e
                suggestion: SuggestedRent = self._apartment_analyzer.suggest_rent(
                    apartment, goal, as_of
                )
        except LedgerError as e:
            return DataResult.failure(str(e))
        return DataResult(success=True, data=suggestion)

    def analyze_cash_flow(
        self,
        apartment_id: str,
        start: Union[date, str],
        end: Union[date, str],
    ) -> DataResult:
        try:
            with self._session("analyze_cash_flow", write=False) as session:
                apartment = self._find_apartment(session.state, apartment_id)
                rows: list[MonthlyCashFlow] = self._apartment_analyzer.analyze_cash_flow(
                    apartment, start, end
                )
        except LedgerError as e:
            return DataResult.failure(str(e))
        return DataResult(success=True, data=rows)

    # =========================================================================
    # INGESTION
    # =========================================================================

    def ingest_parsed_accounts(
        self,
        items: list[Union[ParsedAccount, dict[str, Any]]],
        category_type_map: Optional[dict[str, Union[AccountType, str]]] = None,
        as_of: Optional[Union[date, datetime]] = None,
    ) -> IngestionResult:
        """
        Apply `{name, balance, category}` lines from a parsed statement.

        Matched accounts always get a history entry; their balance only
        changes when `as_of` (default: now) is not older than the date of
        their current balance. Unmatched lines create accounts of the mapped type.
        """
        try:
            with self._session("ingest_parsed_accounts") as session:
                ingestor = AccountIngestor(session.registry, session.ledger, category_type_map)
                result = ingestor.ingest(items, as_of if as_of is not None else utc_now())
                session.record(AuditEventBuilder.accounts_ingested(
                    updated=len(result.updated_accounts),
                    created=len(result.created_accounts),
                    stale=len(result.stale_account_ids),
                    skipped=len(result.skipped),
                    correlation_id=session.correlation_id,
                ))
        except LedgerError as e:
            return IngestionResult.failure(str(e))
        return result
