"""
Audit Models for Finance Ledger

Operational audit events: what the engine did, when, and how it went.
They are written to the structured log. The domain history (balance
updates, merges) lives in the ledger itself; these events sit beside it
and also cover things the ledger never records, such as decryption
failures or rejected projections.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_ledger.models.account import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Registry
    ACCOUNT_SAVED = "account_saved"
    ACCOUNT_DELETED = "account_deleted"
    BALANCE_UPDATED = "balance_updated"
    DISPLAY_NAME_UPDATED = "display_name_updated"

    # Consolidation
    ACCOUNTS_MERGED = "accounts_merged"
    ACCOUNTS_UNMERGED = "accounts_unmerged"

    # Ingestion
    ACCOUNTS_INGESTED = "accounts_ingested"

    # Planning
    PROJECTION_COMPLETED = "projection_completed"
    APARTMENT_SAVED = "apartment_saved"
    APARTMENT_DELETED = "apartment_deleted"

    # Ledger housekeeping
    HISTORY_EVICTED = "history_evicted"

    # Storage
    ENCRYPTION_KEY_GENERATED = "encryption_key_generated"
    DECRYPTION_FAILED = "decryption_failed"
    DEFAULT_STATE_SUBSTITUTED = "default_state_substituted"
    PERSISTENCE_FAILED = "persistence_failed"

    # Failures
    OPERATION_REJECTED = "operation_rejected"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'apartment', 'state')"
    )
    entity_id: Optional[str] = None

    # Correlation - all events raised by one engine operation share this
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.accounts_merged(survivor_id, merged_ids, correlation_id)
        event = AuditEventBuilder.decryption_failed(path, error, correlation_id)
    """

    @staticmethod
    def account_saved(
        account_id: str,
        account_name: str,
        created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_SAVED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {'created' if created else 'updated'}: {account_name}",
            details={"created": created},
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Account deleted",
        )

    @staticmethod
    def balance_updated(
        account_id: str,
        old_balance: Optional[float],
        new_balance: float,
        applied: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_UPDATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=(
                "Balance updated" if applied
                else "Balance recorded in history only (older than current balance)"
            ),
            details={
                "old_balance": old_balance,
                "new_balance": new_balance,
                "applied": applied,
            },
        )

    @staticmethod
    def display_name_updated(
        account_id: str,
        cleared: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DISPLAY_NAME_UPDATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description="Display name cleared" if cleared else "Display name set",
        )

    @staticmethod
    def accounts_merged(
        surviving_account_id: str,
        merged_account_ids: list[str],
        previous_names: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_MERGED,
            entity_type="account",
            entity_id=surviving_account_id,
            correlation_id=correlation_id,
            description=f"Merged {len(merged_account_ids)} account(s) into survivor",
            details={
                "merged_account_ids": merged_account_ids,
                "previous_names": previous_names,
            },
        )

    @staticmethod
    def accounts_unmerged(
        source_account_id: str,
        recreated_account_ids: list[str],
        manual_balances_used: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_UNMERGED,
            entity_type="account",
            entity_id=source_account_id,
            correlation_id=correlation_id,
            description=f"Recreated {len(recreated_account_ids)} account(s) from merge",
            details={
                "recreated_account_ids": recreated_account_ids,
                "manual_balances_used": manual_balances_used,
            },
        )

    @staticmethod
    def accounts_ingested(
        updated: int,
        created: int,
        stale: int,
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_INGESTED,
            entity_type="ingestion",
            correlation_id=correlation_id,
            description=f"Ingested parsed balances: {updated} updated, {created} created",
            details={
                "updated": updated,
                "created": created,
                "stale": stale,
                "skipped": skipped,
            },
        )

    @staticmethod
    def projection_completed(
        success_probability: float,
        rating: str,
        simulation_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROJECTION_COMPLETED,
            entity_type="projection",
            correlation_id=correlation_id,
            description=f"Retirement projection: {success_probability:.1f}% ({rating})",
            details={
                "success_probability": success_probability,
                "rating": rating,
                "simulation_count": simulation_count,
            },
        )

    @staticmethod
    def apartment_saved(
        apartment_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.APARTMENT_SAVED,
            entity_type="apartment",
            entity_id=apartment_id,
            correlation_id=correlation_id,
            description=f"Apartment saved: {name}",
        )

    @staticmethod
    def apartment_deleted(
        apartment_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.APARTMENT_DELETED,
            entity_type="apartment",
            entity_id=apartment_id,
            correlation_id=correlation_id,
            description="Apartment deleted",
        )

    @staticmethod
    def history_evicted(
        evicted: int,
        max_entries: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_EVICTED,
            severity=AuditSeverity.DEBUG,
            entity_type="history",
            correlation_id=correlation_id,
            description=f"Evicted {evicted} oldest history entries",
            details={"max_entries": max_entries},
        )

    @staticmethod
    def encryption_key_generated(key_path: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENCRYPTION_KEY_GENERATED,
            entity_type="state",
            description="Generated new encryption key",
            details={"key_path": key_path},
        )

    @staticmethod
    def decryption_failed(
        data_path: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DECRYPTION_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="state",
            correlation_id=correlation_id,
            description="State file could not be decrypted",
            error_message=error_message,
            details={"data_path": data_path},
        )

    @staticmethod
    def default_state_substituted(
        data_path: str,
        quarantined_path: Optional[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULT_STATE_SUBSTITUTED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            correlation_id=correlation_id,
            description="Empty ledger substituted for an unreadable state file",
            error_message=error_message,
            details={
                "data_path": data_path,
                "quarantined_path": quarantined_path,
            },
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            correlation_id=correlation_id,
            description=f"Could not persist state after {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        reason: str,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected",
            error_message=reason,
            details={"operation": operation},
        )
