"""
Account Models for Finance Ledger

Accounts are the unit of the registry. Each account has a type from a
fixed catalog, and every type maps statically to exactly one category.
Categories drive allocation analysis and net-worth math.

DESIGN DECISION: Persisted JSON uses camelCase keys (`currentValue`,
`previousNames`) while Python code uses snake_case attributes. The alias
generator handles both directions, so older payloads keep loading.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so every comparison is aware-vs-aware."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def as_utc_datetime(value: Union[date, datetime]) -> datetime:
    """Aware UTC datetime for a datetime, or midnight UTC for a plain date."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def new_id() -> str:
    """Random identifier for accounts and apartments."""
    return uuid4().hex


class LedgerModel(BaseModel):
    """Base for every persisted model: camelCase on disk, snake_case in code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountCategory(str, Enum):
    """
    Top-level grouping for accounts.

    LIABILITIES and FUTURE_INCOME are not investable assets and are left
    out of the total-assets denominator.
    """
    CASH = "cash"
    INVESTMENTS = "investments"
    RETIREMENT = "retirement"
    REAL_ESTATE = "real_estate"
    LIABILITIES = "liabilities"
    FUTURE_INCOME = "future_income"


ASSET_CATEGORIES = (
    AccountCategory.CASH,
    AccountCategory.INVESTMENTS,
    AccountCategory.RETIREMENT,
    AccountCategory.REAL_ESTATE,
)

# The five keys reported in allocation views
ALLOCATION_CATEGORIES = ASSET_CATEGORIES + (AccountCategory.FUTURE_INCOME,)


class AccountType(str, Enum):
    """Supported account types."""
    SAVINGS = "savings"
    CHECKING = "checking"
    STOCKS = "stocks"
    MUTUAL_FUNDS = "mutual_funds"
    ETF = "etf"
    RETIREMENT_401K = "401k"
    IRA = "ira"
    ROTH_IRA = "roth_ira"
    HOME = "home"
    INVESTMENT_PROPERTY = "investment_property"
    CREDIT_CARD = "credit_card"
    MORTGAGE = "mortgage"
    LOAN = "loan"
    PENSION = "pension"
    SOCIAL_SECURITY = "social_security"


class AccountTypeInfo(BaseModel):
    """Catalog entry describing an account type."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    category: AccountCategory


ACCOUNT_TYPES: dict[AccountType, AccountTypeInfo] = {
    AccountType.SAVINGS: AccountTypeInfo(
        name="Savings Account",
        description="A standard bank savings account for storing cash with minimal interest",
        category=AccountCategory.CASH,
    ),
    AccountType.CHECKING: AccountTypeInfo(
        name="Checking Account",
        description="A bank account for daily transactions and bill payments",
        category=AccountCategory.CASH,
    ),
    AccountType.STOCKS: AccountTypeInfo(
        name="Stocks",
        description="Individual company stocks or equity investments",
        category=AccountCategory.INVESTMENTS,
    ),
    AccountType.MUTUAL_FUNDS: AccountTypeInfo(
        name="Mutual Funds",
        description="Pooled investment funds managed by professionals",
        category=AccountCategory.INVESTMENTS,
    ),
    AccountType.ETF: AccountTypeInfo(
        name="ETF (Exchange Traded Fund)",
        description="Index funds that trade like stocks on exchanges",
        category=AccountCategory.INVESTMENTS,
    ),
    AccountType.RETIREMENT_401K: AccountTypeInfo(
        name="401(k) Retirement",
        description="Employer-sponsored retirement account with tax benefits",
        category=AccountCategory.RETIREMENT,
    ),
    AccountType.IRA: AccountTypeInfo(
        name="IRA (Individual Retirement Account)",
        description="Personal retirement savings account with tax advantages",
        category=AccountCategory.RETIREMENT,
    ),
    AccountType.ROTH_IRA: AccountTypeInfo(
        name="Roth IRA",
        description="Retirement account with tax-free withdrawals in retirement",
        category=AccountCategory.RETIREMENT,
    ),
    AccountType.HOME: AccountTypeInfo(
        name="Primary Residence",
        description="The home you live in - real estate equity",
        category=AccountCategory.REAL_ESTATE,
    ),
    AccountType.INVESTMENT_PROPERTY: AccountTypeInfo(
        name="Investment Property",
        description="Real estate owned for rental income or appreciation",
        category=AccountCategory.REAL_ESTATE,
    ),
    AccountType.CREDIT_CARD: AccountTypeInfo(
        name="Credit Card",
        description="Revolving credit balance owed (stored as a positive amount)",
        category=AccountCategory.LIABILITIES,
    ),
    AccountType.MORTGAGE: AccountTypeInfo(
        name="Mortgage",
        description="Outstanding mortgage principal (stored as a positive amount)",
        category=AccountCategory.LIABILITIES,
    ),
    AccountType.LOAN: AccountTypeInfo(
        name="Loan",
        description="Auto, student or personal loan balance (stored as a positive amount)",
        category=AccountCategory.LIABILITIES,
    ),
    AccountType.PENSION: AccountTypeInfo(
        name="Pension (Future)",
        description="Expected pension payments starting at a future date",
        category=AccountCategory.FUTURE_INCOME,
    ),
    AccountType.SOCIAL_SECURITY: AccountTypeInfo(
        name="Social Security (Future)",
        description="Expected Social Security benefits at retirement age",
        category=AccountCategory.FUTURE_INCOME,
    ),
}


def category_for(account_type: AccountType) -> AccountCategory:
    """Static type → category mapping."""
    return ACCOUNT_TYPES[account_type].category


# =============================================================================
# CORE ACCOUNT MODEL
# =============================================================================

class Account(LedgerModel):
    """
    A single tracked account.

    `id`, `created_at` and `updated_at` are assigned by the registry when
    missing. Liability balances are stored as positive numbers.
    """

    id: Optional[str] = Field(
        default=None,
        description="Unique account ID (assigned on first save)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Account name as it appears at the institution"
    )
    type: AccountType = Field(
        ...,
        description="Account type from the catalog"
    )
    current_value: float = Field(
        default=0.0,
        description="Current balance"
    )
    display_name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="User-chosen label that overrides the name when non-blank"
    )
    previous_names: list[str] = Field(
        default_factory=list,
        description="Names absorbed through merges, in insertion order"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    balance_as_of: Optional[datetime] = Field(
        default=None,
        description="Balance date of the most recently applied balance"
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("previous_names")
    @classmethod
    def dedupe_previous_names(cls, v: list[str]) -> list[str]:
        """Previous names behave as an ordered set."""
        return list(dict.fromkeys(name for name in v if name))

    @field_validator("balance_as_of", "created_at", "updated_at")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def category(self) -> AccountCategory:
        return category_for(self.type)

    @property
    def last_modified(self) -> Optional[datetime]:
        """`updated_at`, falling back to `created_at`."""
        return self.updated_at or self.created_at
