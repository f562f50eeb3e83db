"""
Account Registry

CRUD over the accounts list of a loaded `FinanceState`. The registry
mutates the list it was given; persisting is the engine's job.
"""

from typing import Optional

from finance_ledger.exceptions import AccountNotFoundError
from finance_ledger.models.account import Account, AccountCategory, new_id, utc_now


class AccountRegistry:

    def __init__(self, accounts: list[Account]):
        self._accounts = accounts

    def __iter__(self):
        return iter(self._accounts)

    def __len__(self) -> int:
        return len(self._accounts)

    def all(self) -> list[Account]:
        return list(self._accounts)

    def get(self, account_id: str) -> Optional[Account]:
        for account in self._accounts:
            if account.id == account_id:
                return account
        return None

    def require(self, account_id: str) -> Account:
        account = self.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def upsert(self, account: Account) -> bool:
        """
        Insert or replace an account by ID.

        Assigns an ID and `created_at` when missing and always refreshes
        `updated_at`. Returns True if the account was newly added.
        """
        now = utc_now()
        if not account.id:
            account.id = new_id()
        if account.created_at is None:
            account.created_at = now
        account.updated_at = now

        for index, existing in enumerate(self._accounts):
            if existing.id == account.id:
                self._accounts[index] = account
                return False

        self._accounts.append(account)
        return True

    def delete(self, account_id: str) -> Account:
        account = self.require(account_id)
        self._accounts.remove(account)
        return account

    def remove_many(self, account_ids: set[str]) -> None:
        self._accounts[:] = [a for a in self._accounts if a.id not in account_ids]

    def set_display_name(self, account_id: str, value: Optional[str]) -> Account:
        """Set the display override; blank or whitespace-only clears it."""
        account = self.require(account_id)
        cleaned = (value or "").strip()
        account.display_name = cleaned or None
        self.upsert(account)
        return account

    def by_category(self, category: AccountCategory) -> list[Account]:
        return [a for a in self._accounts if a.category == category]

    @staticmethod
    def display_name(account: Account) -> str:
        """The display override when set and non-blank, else the name."""
        if account.display_name and account.display_name.strip():
            return account.display_name
        return account.name
