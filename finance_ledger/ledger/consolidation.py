"""
Merge / Unmerge Engine

Merging folds duplicate accounts into one survivor: the survivor keeps its
balance and type, absorbs the other accounts' names as previous names, and
takes over their history. An `accounts_merged` audit entry records what
was folded in.

Unmerging rebuilds the folded accounts from that audit entry. It is a
best-effort structural inverse, not an exact one:
- recreated accounts get fresh IDs
- they take the survivor's current type (original types are not stored)
- balances come from manual overrides, else the last pre-merge balance
  update for that name, else zero
- it needs the audit entry, which the bounded ledger may have evicted

Both operations mutate the in-memory state handed to them; nothing is
durable until the engine persists it.
"""

from typing import Optional
from uuid import uuid4

from finance_ledger.exceptions import InsufficientAccountsError, MergeHistoryNotFoundError
from finance_ledger.ledger.history import HistoryLedger
from finance_ledger.ledger.registry import AccountRegistry
from finance_ledger.models.account import Account, utc_now
from finance_ledger.models.history import (
    AccountsMergedEntry,
    AccountsUnmergedEntry,
    BalanceUpdateEntry,
)
from finance_ledger.models.results import MergeResult, UnmergeResult


class ConsolidationEngine:

    def __init__(self, registry: AccountRegistry, ledger: HistoryLedger):
        self._registry = registry
        self._ledger = ledger

    # -------------------------------------------------------------------------
    # Merge
    # -------------------------------------------------------------------------

    @staticmethod
    def select_survivor(accounts: list[Account]) -> Account:
        """
        Latest `updated_at` (falling back to `created_at`) wins.

        Ties keep the account encountered first. Accounts with no timestamp
        at all never beat one that has a timestamp.
        """
        survivor = accounts[0]
        for candidate in accounts[1:]:
            current = survivor.last_modified
            challenger = candidate.last_modified
            if challenger is None:
                continue
            if current is None or challenger > current:
                survivor = candidate
        return survivor

    @staticmethod
    def combined_previous_names(survivor: Account, others: list[Account]) -> list[str]:
        names = list(survivor.previous_names)
        for other in others:
            if other.name != survivor.name:
                names.append(other.name)
            names.extend(other.previous_names)
        return list(dict.fromkeys(names))

    def merge(self, account_ids: list[str]) -> MergeResult:
        resolved: list[Account] = []
        seen = set()
        for account_id in account_ids:
            account = self._registry.get(account_id)
            if account is not None and account.id not in seen:
                resolved.append(account)
                seen.add(account.id)

        if len(resolved) < 2:
            raise InsufficientAccountsError("At least 2 valid accounts are required to merge")

        survivor = self.select_survivor(resolved)
        others = [a for a in resolved if a.id != survivor.id]
        other_ids = {a.id for a in others}

        survivor.previous_names = self.combined_previous_names(survivor, others)

        for entry in self._ledger.account_entries():
            if entry.account_id not in other_ids:
                continue
            # Captured once so repeated merges keep the very first name
            if entry.original_account_name is None:
                entry.original_account_name = entry.account_name
            if entry.original_account_id is None:
                entry.original_account_id = entry.account_id
            entry.account_id = survivor.id
            entry.account_name = survivor.name
            entry.transferred_to_account = survivor.id

        merged_ids = [a.id for a in others]
        merged_names = [a.name for a in others]

        self._ledger.append(AccountsMergedEntry(
            surviving_account_id=survivor.id,
            surviving_account_name=survivor.name,
            merged_account_ids=merged_ids,
            merged_account_names=merged_names,
            previous_names=list(survivor.previous_names),
        ))

        self._registry.remove_many(other_ids)
        survivor.updated_at = utc_now()

        return MergeResult(
            success=True,
            surviving_account=survivor,
            merged_count=len(others),
            merged_account_ids=merged_ids,
            merged_account_names=merged_names,
            previous_names=list(survivor.previous_names),
        )

    # -------------------------------------------------------------------------
    # Unmerge
    # -------------------------------------------------------------------------

    def _pre_merge_entries(
        self,
        name: str,
        original_id: Optional[str],
        merge_entry: AccountsMergedEntry,
    ) -> list:
        return [
            entry for entry in self._ledger.account_entries()
            if (
                entry.belongs_to_name(name)
                or (original_id is not None and entry.original_account_id == original_id)
            )
            and not entry.restored_from_merge
            and entry.timestamp < merge_entry.timestamp
        ]

    def resolve_balance(
        self,
        name: str,
        original_id: Optional[str],
        merge_entry: AccountsMergedEntry,
        manual_balances: Optional[dict[str, float]] = None,
    ) -> float:
        """Manual override, else the last pre-merge balance update, else zero."""
        if manual_balances and name in manual_balances:
            return float(manual_balances[name])

        latest: Optional[BalanceUpdateEntry] = None
        for entry in self._pre_merge_entries(name, original_id, merge_entry):
            if not isinstance(entry, BalanceUpdateEntry):
                continue
            if latest is None or entry.timestamp > latest.timestamp:
                latest = entry
        return latest.new_balance if latest is not None else 0.0

    def unmerge(
        self,
        account_id: str,
        manual_balances: Optional[dict[str, float]] = None,
    ) -> UnmergeResult:
        source = self._registry.require(account_id)

        if not source.previous_names:
            raise MergeHistoryNotFoundError("Account has no merged accounts to restore")

        merge_entry = self._ledger.latest_merge_for(source.id)
        if merge_entry is None:
            raise MergeHistoryNotFoundError(
                "Merge record not found in history; it may have aged out of the ledger"
            )

        manual_balances_used = False
        recreated: list[Account] = []

        for name, original_id in zip(merge_entry.merged_account_names, merge_entry.merged_account_ids):
            if manual_balances and name in manual_balances:
                manual_balances_used = True
            balance = self.resolve_balance(name, original_id, merge_entry, manual_balances)

            restored_entries = self._pre_merge_entries(name, original_id, merge_entry)

            account = Account(
                id=uuid4().hex,
                name=name,
                type=source.type,
                current_value=balance,
                notes=f"Restored from merge with {source.name}",
            )
            self._registry.upsert(account)
            recreated.append(account)

            for entry in restored_entries:
                self._ledger.append(entry.model_copy(update={
                    "account_id": account.id,
                    "account_name": name,
                    "transferred_to_account": None,
                    "restored_from_merge": True,
                }))

            self._ledger.append(BalanceUpdateEntry(
                account_id=account.id,
                account_name=name,
                old_balance=None,
                new_balance=balance,
                balance_date=utc_now(),
                note=f"Account recreated by unmerge from {source.name}",
                opened_by_unmerge=True,
            ))

        source.previous_names = []
        source.updated_at = utc_now()

        self._ledger.append(AccountsUnmergedEntry(
            source_account_id=source.id,
            source_account_name=source.name,
            recreated_account_ids=[a.id for a in recreated],
            recreated_account_names=[a.name for a in recreated],
            manual_balances_used=manual_balances_used,
        ))

        return UnmergeResult(
            success=True,
            source_account=source,
            recreated_accounts=recreated,
            recreated_account_ids=[a.id for a in recreated],
            recreated_account_names=[a.name for a in recreated],
            manual_balances_used=manual_balances_used,
        )
