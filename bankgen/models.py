"""Entities, output rows and the decision tables that drive generation."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .dates import format_date, format_timestamp
from .patterns.distribution import STANDARD_AMOUNTS, AmountDistribution


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"
    LOAN = "loan"
    MORTGAGE = "mortgage"
    INVESTMENT = "investment"
    BUSINESS = "business"
    MERCHANT = "merchant"
    PAYROLL = "payroll"


class CustomerSegment(str, Enum):
    REGULAR = "regular"
    PREMIUM = "premium"
    PRIVATE = "private"
    BUSINESS = "business"
    CORPORATE = "corporate"


class BusinessType(str, Enum):
    EMPLOYER = "employer"
    MERCHANT = "merchant"
    UTILITY = "utility"
    GOVERNMENT = "government"
    GENERAL = "general"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PURCHASE = "purchase"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    BILL_PAYMENT = "bill_payment"
    SALARY = "salary"
    INTEREST_CREDIT = "interest_credit"
    INTEREST_DEBIT = "interest_debit"
    FEE = "fee"
    REFUND = "refund"
    CASHBACK = "cashback"
    LOAN_PAYMENT = "loan_payment"
    PAYROLL_BATCH = "payroll_batch"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REVERSED = "reversed"
    DECLINED = "declined"


class TransactionChannel(str, Enum):
    ONLINE = "online"
    ATM = "atm"
    BRANCH = "branch"
    POS = "pos"
    ACH = "ach"
    WIRE = "wire"
    INTERNAL = "internal"


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    ACCOUNT_LOCKED = "account_locked"
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    SESSION_TIMEOUT = "session_timeout"
    BALANCE_INQUIRY = "balance_inquiry"
    TRANSACTION_INITIATED = "transaction_initiated"
    TRANSACTION_COMPLETED = "transaction_completed"
    TRANSACTION_FAILED = "transaction_failed"
    TRANSACTION_DECLINED = "transaction_declined"


class AuditOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    DENIED = "denied"
    ERROR = "error"


class AuditChannel(str, Enum):
    ONLINE = "online"
    ATM = "atm"
    BRANCH = "branch"
    MOBILE = "mobile"
    PHONE = "phone"
    API = "api"
    SYSTEM = "system"


BUSINESS_SEGMENTS = frozenset({CustomerSegment.BUSINESS, CustomerSegment.CORPORATE})
BUSINESS_ACCOUNT_TYPES = frozenset({AccountType.BUSINESS, AccountType.MERCHANT, AccountType.PAYROLL})

DEBIT_TYPES = frozenset(
    {
        TransactionType.WITHDRAWAL,
        TransactionType.PURCHASE,
        TransactionType.TRANSFER_OUT,
        TransactionType.BILL_PAYMENT,
        TransactionType.INTEREST_DEBIT,
        TransactionType.FEE,
        TransactionType.LOAN_PAYMENT,
        TransactionType.PAYROLL_BATCH,
    }
)


def is_debit(txn_type: TransactionType) -> bool:
    return txn_type in DEBIT_TYPES


def balance_effect(txn_type: TransactionType, amount: int) -> int:
    """Signed change a transaction of ``txn_type`` applies to its account."""

    return -amount if is_debit(txn_type) else amount


# Monthly volume multiplier applied on top of the activity-score scaling.
COUNT_MULTIPLIERS: dict[AccountType, float] = {
    AccountType.CHECKING: 1.2,
    AccountType.SAVINGS: 0.3,
    AccountType.CREDIT_CARD: 1.5,
    AccountType.BUSINESS: 2.0,
    AccountType.MERCHANT: 5.0,
    AccountType.PAYROLL: 0.5,
}

# (cumulative threshold, type, channel); the first row whose threshold exceeds the draw wins.
TypeTable = tuple[tuple[float, TransactionType, TransactionChannel], ...]

TYPE_TABLES: dict[AccountType, TypeTable] = {
    AccountType.CHECKING: (
        (0.20, TransactionType.WITHDRAWAL, TransactionChannel.ATM),
        (0.35, TransactionType.PURCHASE, TransactionChannel.POS),
        (0.50, TransactionType.TRANSFER_OUT, TransactionChannel.ONLINE),
        (0.60, TransactionType.BILL_PAYMENT, TransactionChannel.ONLINE),
        (0.75, TransactionType.DEPOSIT, TransactionChannel.BRANCH),
        (0.85, TransactionType.TRANSFER_IN, TransactionChannel.ONLINE),
        (0.95, TransactionType.SALARY, TransactionChannel.ACH),
        (1.00, TransactionType.FEE, TransactionChannel.INTERNAL),
    ),
    AccountType.SAVINGS: (
        (0.40, TransactionType.TRANSFER_IN, TransactionChannel.ONLINE),
        (0.70, TransactionType.TRANSFER_OUT, TransactionChannel.ONLINE),
        (0.85, TransactionType.INTEREST_CREDIT, TransactionChannel.INTERNAL),
        (0.95, TransactionType.DEPOSIT, TransactionChannel.BRANCH),
        (1.00, TransactionType.FEE, TransactionChannel.INTERNAL),
    ),
    AccountType.CREDIT_CARD: (
        (0.65, TransactionType.PURCHASE, TransactionChannel.POS),
        (0.80, TransactionType.PURCHASE, TransactionChannel.ONLINE),
        (0.90, TransactionType.DEPOSIT, TransactionChannel.ONLINE),
        (0.95, TransactionType.REFUND, TransactionChannel.POS),
        (1.00, TransactionType.INTEREST_DEBIT, TransactionChannel.INTERNAL),
    ),
    AccountType.BUSINESS: (
        (0.30, TransactionType.DEPOSIT, TransactionChannel.ACH),
        (0.50, TransactionType.TRANSFER_OUT, TransactionChannel.WIRE),
        (0.65, TransactionType.BILL_PAYMENT, TransactionChannel.ONLINE),
        (0.80, TransactionType.TRANSFER_IN, TransactionChannel.ACH),
        (0.90, TransactionType.WITHDRAWAL, TransactionChannel.BRANCH),
        (1.00, TransactionType.FEE, TransactionChannel.INTERNAL),
    ),
    AccountType.PAYROLL: (
        (0.70, TransactionType.TRANSFER_IN, TransactionChannel.INTERNAL),
        (1.00, TransactionType.FEE, TransactionChannel.INTERNAL),
    ),
}

# Account types that always produce the same type/channel without a draw.
FIXED_TYPES: dict[AccountType, tuple[TransactionType, TransactionChannel]] = {
    AccountType.MERCHANT: (TransactionType.DEPOSIT, TransactionChannel.POS),
}
FALLBACK_TYPE = (TransactionType.DEPOSIT, TransactionChannel.ONLINE)


def pick_from_table(table: TypeTable, draw: float) -> tuple[TransactionType, TransactionChannel]:
    for threshold, txn_type, channel in table:
        if draw < threshold:
            return txn_type, channel
    _, txn_type, channel = table[-1]
    return txn_type, channel


class AmountRuleKind(str, Enum):
    DISTRIBUTION = "distribution"
    PURCHASE = "purchase"
    RANGE = "range"
    INTEREST = "interest"


@dataclass(frozen=True)
class AmountRule:
    kind: AmountRuleKind
    distribution: Optional[AmountDistribution] = None
    low: int = 0
    high: int = 0


def _dist(distribution: AmountDistribution) -> AmountRule:
    return AmountRule(AmountRuleKind.DISTRIBUTION, distribution)


def _range(low: int, high: int) -> AmountRule:
    return AmountRule(AmountRuleKind.RANGE, low=low, high=high)


AMOUNT_RULES: dict[TransactionType, AmountRule] = {
    TransactionType.WITHDRAWAL: _dist(STANDARD_AMOUNTS.atm_withdrawal),
    TransactionType.PURCHASE: AmountRule(AmountRuleKind.PURCHASE),
    TransactionType.BILL_PAYMENT: _dist(STANDARD_AMOUNTS.bill_payment),
    TransactionType.SALARY: _dist(STANDARD_AMOUNTS.salary),
    TransactionType.TRANSFER_IN: _dist(STANDARD_AMOUNTS.internal_transfer),
    TransactionType.TRANSFER_OUT: _dist(STANDARD_AMOUNTS.internal_transfer),
    TransactionType.PAYROLL_BATCH: _range(50_000_000, 500_000_000),
    TransactionType.INTEREST_CREDIT: AmountRule(AmountRuleKind.INTEREST),
    TransactionType.INTEREST_DEBIT: AmountRule(AmountRuleKind.INTEREST),
    TransactionType.FEE: _range(500, 5_000),
    TransactionType.REFUND: _dist(STANDARD_AMOUNTS.medium_purchase),
    TransactionType.CASHBACK: _range(100, 2_000),
    TransactionType.LOAN_PAYMENT: _dist(STANDARD_AMOUNTS.rent_mortgage),
    TransactionType.DEPOSIT: _dist(STANDARD_AMOUNTS.medium_purchase),
}

# Purchases are split small / medium / large by a secondary draw.
PURCHASE_SPLITS: tuple[tuple[float, AmountDistribution], ...] = (
    (0.50, STANDARD_AMOUNTS.small_purchase),
    (0.85, STANDARD_AMOUNTS.medium_purchase),
    (1.00, STANDARD_AMOUNTS.large_purchase),
)

AUDIT_CHANNELS: dict[TransactionChannel, AuditChannel] = {
    TransactionChannel.ATM: AuditChannel.ATM,
    TransactionChannel.BRANCH: AuditChannel.BRANCH,
    TransactionChannel.ONLINE: AuditChannel.ONLINE,
    TransactionChannel.POS: AuditChannel.API,
    TransactionChannel.ACH: AuditChannel.SYSTEM,
    TransactionChannel.WIRE: AuditChannel.SYSTEM,
    TransactionChannel.INTERNAL: AuditChannel.SYSTEM,
}


def _opt(value: object) -> str:
    return "" if value is None else str(value)


@dataclass(slots=True)
class Branch:
    id: int
    code: str
    name: str
    country: str
    city: str
    timezone: str
    opened_at: datetime

    HEADERS = ("id", "code", "name", "country", "city", "timezone", "opened_at")

    def to_row(self) -> list[str]:
        return [
            str(self.id),
            self.code,
            self.name,
            self.country,
            self.city,
            self.timezone,
            format_timestamp(self.opened_at),
        ]


@dataclass(slots=True)
class ATM:
    id: int
    branch_id: int
    location: str
    country: str
    status: str = "active"

    HEADERS = ("id", "branch_id", "location", "country", "status")

    def to_row(self) -> list[str]:
        return [str(self.id), str(self.branch_id), self.location, self.country, self.status]


@dataclass(slots=True)
class Customer:
    """A retail customer or a business; businesses carry ``business_type``."""

    id: int
    first_name: str
    last_name: str
    email: str
    username: str
    country: str
    timezone: str
    currency: str
    segment: CustomerSegment
    activity_score: float
    home_branch_id: int
    created_at: datetime
    business_type: Optional[BusinessType] = None
    business_name: str = ""

    HEADERS = (
        "id", "first_name", "last_name", "email", "username", "country", "timezone",
        "segment", "activity_score", "home_branch_id", "created_at",
    )
    BUSINESS_HEADERS = (
        "id", "name", "business_type", "email", "username", "country", "timezone",
        "segment", "activity_score", "home_branch_id", "created_at",
    )

    @property
    def is_business(self) -> bool:
        return self.segment in BUSINESS_SEGMENTS

    @property
    def display_name(self) -> str:
        return self.business_name or f"{self.first_name} {self.last_name}"

    def to_row(self) -> list[str]:
        return [
            str(self.id),
            self.first_name,
            self.last_name,
            self.email,
            self.username,
            self.country,
            self.timezone,
            self.segment.value,
            f"{self.activity_score:.4f}",
            str(self.home_branch_id),
            format_timestamp(self.created_at),
        ]

    def to_business_row(self) -> list[str]:
        return [
            str(self.id),
            self.business_name,
            self.business_type.value if self.business_type else "",
            self.email,
            self.username,
            self.country,
            self.timezone,
            self.segment.value,
            f"{self.activity_score:.4f}",
            str(self.home_branch_id),
            format_timestamp(self.created_at),
        ]


@dataclass(slots=True)
class Account:
    id: int
    account_number: str
    customer_id: int
    type: AccountType
    currency: str
    balance: int
    interest_rate: int
    branch_id: int
    opened_at: datetime
    credit_limit: int = 0
    overdraft_limit: int = 0
    status: str = "active"

    HEADERS = (
        "id", "account_number", "customer_id", "type", "status", "currency", "balance",
        "credit_limit", "overdraft_limit", "interest_rate", "branch_id", "opened_at",
    )

    def to_row(self) -> list[str]:
        return [
            str(self.id),
            self.account_number,
            str(self.customer_id),
            self.type.value,
            self.status,
            self.currency,
            str(self.balance),
            str(self.credit_limit),
            str(self.overdraft_limit),
            str(self.interest_rate),
            str(self.branch_id),
            format_timestamp(self.opened_at),
        ]


TRANSACTION_HEADERS = (
    "id", "reference_number", "account_id", "counterparty_account_id", "beneficiary_id",
    "type", "status", "channel", "amount", "currency", "balance_after", "description",
    "metadata", "branch_id", "atm_id", "linked_transaction_id", "timestamp", "posted_at",
    "value_date", "failure_reason",
)


@dataclass(slots=True)
class Transaction:
    id: int
    reference_number: str
    account_id: int
    type: TransactionType
    status: TransactionStatus
    channel: TransactionChannel
    amount: int
    currency: str
    balance_after: int
    description: str
    timestamp: datetime
    posted_at: datetime
    counterparty_account_id: Optional[int] = None
    beneficiary_id: Optional[int] = None
    metadata: str = "{}"
    branch_id: Optional[int] = None
    atm_id: Optional[int] = None
    linked_transaction_id: Optional[int] = None
    failure_reason: Optional[str] = None

    def to_row(self) -> list[str]:
        return [
            str(self.id),
            self.reference_number,
            str(self.account_id),
            _opt(self.counterparty_account_id),
            _opt(self.beneficiary_id),
            self.type.value,
            self.status.value,
            self.channel.value,
            str(self.amount),
            self.currency,
            str(self.balance_after),
            self.description,
            self.metadata,
            _opt(self.branch_id),
            _opt(self.atm_id),
            _opt(self.linked_transaction_id),
            format_timestamp(self.timestamp),
            format_timestamp(self.posted_at),
            format_date(self.timestamp),
            _opt(self.failure_reason),
        ]


AUDIT_HEADERS = (
    "id", "timestamp", "customer_id", "employee_id", "system_id", "action", "outcome",
    "channel", "branch_id", "atm_id", "ip_address", "user_agent", "account_id",
    "transaction_id", "beneficiary_id", "description", "failure_reason", "metadata",
    "session_id", "risk_score", "request_id",
)


@dataclass(slots=True)
class AuditLog:
    id: int
    timestamp: datetime
    action: AuditAction
    outcome: AuditOutcome
    channel: AuditChannel
    session_id: str
    customer_id: Optional[int] = None
    employee_id: Optional[int] = None
    system_id: str = ""
    branch_id: Optional[int] = None
    atm_id: Optional[int] = None
    ip_address: str = ""
    user_agent: str = ""
    account_id: Optional[int] = None
    transaction_id: Optional[int] = None
    beneficiary_id: Optional[int] = None
    description: str = ""
    failure_reason: str = ""
    metadata: str = "{}"
    risk_score: Optional[int] = None
    request_id: str = field(default="")

    def to_row(self) -> list[str]:
        return [
            str(self.id),
            format_timestamp(self.timestamp),
            _opt(self.customer_id),
            _opt(self.employee_id),
            self.system_id,
            self.action.value,
            self.outcome.value,
            self.channel.value,
            _opt(self.branch_id),
            _opt(self.atm_id),
            self.ip_address,
            self.user_agent,
            _opt(self.account_id),
            _opt(self.transaction_id),
            _opt(self.beneficiary_id),
            self.description,
            self.failure_reason,
            self.metadata,
            self.session_id,
            _opt(self.risk_score),
            self.request_id,
        ]
