"""Per-worker streaming transaction generation.

A :class:`TransactionStream` walks its shard month by month and account by
account, yielding rows as soon as they are decided. Running balances live only
in the stream's own map; ``balance_after`` is the only trace they leave.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Iterator, Optional, Sequence
from zoneinfo import ZoneInfo

from .audit import AUDIT_TABLE, AuditStream
from .core.config import GenerationSettings
from .core.log import get_logger, log_context
from .dates import month_windows
from .entities import CounterpartyPools
from .models import (
    AMOUNT_RULES,
    AUDIT_HEADERS,
    BUSINESS_ACCOUNT_TYPES,
    COUNT_MULTIPLIERS,
    FALLBACK_TYPE,
    FIXED_TYPES,
    PURCHASE_SPLITS,
    TRANSACTION_HEADERS,
    TYPE_TABLES,
    Account,
    AccountType,
    AmountRuleKind,
    Customer,
    Transaction,
    TransactionChannel,
    TransactionStatus,
    TransactionType,
    balance_effect,
    is_debit,
    pick_from_table,
)
from .partition import IDAllocator
from .patterns import ActivityDistribution, DailyPattern, FullPattern, MonthlyPattern
from .progress import publish
from .rng import RandomStream
from .sink import open_shard
from .tasks import WorkerResult, WorkerTask

logger = get_logger(__name__)

TRANSACTIONS_TABLE = "transactions"
PROGRESS_EVERY = 1_000
MAX_TIMESTAMP_ATTEMPTS = 1_000

SALARY_ON_PAYDAY = 0.15
BILLS_AT_MONTH_START = 0.25

DECLINED_BY_ISSUER = "declined_by_issuer"
INSUFFICIENT_FUNDS = "insufficient_funds"

ATM_FALLBACK_LOCATIONS = (
    "Main Street",
    "Downtown",
    "Airport Terminal",
    "Mall",
    "University",
    "Hospital",
    "Train Station",
    "Shopping Center",
)
MERCHANT_NAMES = (
    "AMAZON", "WALMART", "TARGET", "STARBUCKS", "UBER",
    "NETFLIX", "SPOTIFY", "APPLE", "GOOGLE", "DOORDASH",
    "COSTCO", "WHOLE FOODS", "CVS PHARMACY", "SHELL GAS",
    "MCDONALDS", "SUBWAY", "HOME DEPOT", "BEST BUY",
)
UTILITY_NAMES = (
    "Electric Company", "Gas & Power", "Water Services",
    "Internet Provider", "Phone Company", "Insurance Co",
    "City Services", "Waste Management",
)
FEE_NAMES = (
    "Monthly Maintenance Fee", "ATM Fee", "Wire Transfer Fee",
    "Overdraft Fee", "Paper Statement Fee", "Foreign Transaction Fee",
)

_FIXED_DESCRIPTIONS = {
    TransactionType.SALARY: "Direct Deposit - Payroll",
    TransactionType.TRANSFER_IN: "Transfer from linked account",
    TransactionType.TRANSFER_OUT: "Transfer to linked account",
    TransactionType.INTEREST_CREDIT: "Interest Payment",
    TransactionType.INTEREST_DEBIT: "Interest Charge",
    TransactionType.CASHBACK: "Cashback Reward",
    TransactionType.PAYROLL_BATCH: "Payroll Disbursement",
    TransactionType.LOAN_PAYMENT: "Loan Payment",
}


@lru_cache(maxsize=None)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def reference_number(txn_id: int, moment: datetime) -> str:
    return f"TXN{moment:%Y%m%d}{txn_id:012d}"


class TransactionStream:
    """Generates the transactions of one shard of accounts.

    Iterating the stream yields every row in emission order: each primary
    transaction followed, when it completed with a counterparty, by its
    mirrored leg.
    """

    def __init__(
        self,
        rng: RandomStream,
        accounts: Sequence[Account],
        owners: dict[int, Customer],
        pools: CounterpartyPools,
        allocator: IDAllocator,
        settings: GenerationSettings,
    ) -> None:
        self.rng = rng
        self.accounts = list(accounts)
        self.owners = owners
        self.pools = pools
        self.allocator = allocator
        self.settings = settings

        self.activity = ActivityDistribution.pareto(settings.pareto_ratio)
        self.retail_pattern = FullPattern.default(settings.payroll_day)
        self.business_pattern = FullPattern.business()
        self.clock = DailyPattern.default()
        self.calendar = MonthlyPattern.default(settings.payroll_day)

        self.balances: dict[int, int] = {account.id: account.balance for account in self.accounts}
        self.siblings: dict[int, list[int]] = {}
        for account in self.accounts:
            self.siblings.setdefault(account.customer_id, []).append(account.id)
        self._account_owner = {account.id: account.customer_id for account in self.accounts}

    def owner_of(self, txn: Transaction) -> Customer:
        return self.owners[self._account_owner[txn.account_id]]

    def __iter__(self) -> Iterator[Transaction]:
        for month_start, month_end in month_windows(self.settings.history_start, self.settings.history_end):
            yield from self.month(month_start, month_end)

    def month(self, month_start: datetime, month_end: datetime) -> Iterator[Transaction]:
        for account in self.accounts:
            if account.opened_at > month_end:
                continue
            owner = self.owners[account.customer_id]
            count = self.monthly_count(account, owner)
            pattern = self.pattern_for(account, owner)
            for moment in self.timestamps(month_start, month_end, count, pattern, owner):
                yield from self.transaction(account, owner, moment)

    # -- volume and timing ---------------------------------------------------

    def monthly_count(self, account: Account, owner: Customer) -> int:
        """Activity-scaled monthly volume with up to 25% jitter, at least one."""

        count = self.activity.transactions_per_month(
            owner.activity_score, self.settings.transactions_per_customer_per_month
        )
        multiplier = COUNT_MULTIPLIERS.get(account.type)
        if multiplier is not None:
            count = int(count * multiplier)
        count = max(count, 1)
        return count + self.rng.int_range(-(count // 4), count // 4)

    def pattern_for(self, account: Account, owner: Customer) -> FullPattern:
        if owner.is_business or account.type in BUSINESS_ACCOUNT_TYPES:
            return self.business_pattern
        return self.retail_pattern

    def timestamps(
        self,
        start: datetime,
        end: datetime,
        count: int,
        pattern: FullPattern,
        owner: Customer,
    ) -> list[datetime]:
        """Place ``count`` timestamps in ``[start, end)`` by rejection sampling.

        Candidates are drawn uniformly by day, given an hour-weighted time of
        day and kept with probability ``pattern.acceptance_probability``. The
        result is sorted so an account's own rows run forward in time.
        """

        zone = _zone(owner.timezone)
        span = end - start
        accepted: list[datetime] = []
        for _ in range(count):
            for _attempt in range(MAX_TIMESTAMP_ATTEMPTS):
                day = start + span * self.rng.float64()
                hour, minute = self.clock.time_in_active_window(self.rng.float64())
                second = self.rng.int_range(0, 59)
                candidate = datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=timezone.utc)
                candidate = candidate.astimezone(zone)
                if self.rng.float64() < pattern.acceptance_probability(candidate):
                    break
            accepted.append(candidate)
        accepted.sort()
        return accepted

    # -- decisions -----------------------------------------------------------

    def select_type(self, account: Account, moment: datetime) -> tuple[TransactionType, TransactionChannel]:
        payday = self.calendar.is_payroll_day(moment.day)
        if account.type is AccountType.PAYROLL and payday:
            return TransactionType.PAYROLL_BATCH, TransactionChannel.INTERNAL
        if account.type in FIXED_TYPES:
            return FIXED_TYPES[account.type]
        table = TYPE_TABLES.get(account.type)
        if table is None:
            return FALLBACK_TYPE

        draw = self.rng.float64()
        if account.type is AccountType.CHECKING:
            if payday and draw < SALARY_ON_PAYDAY:
                return TransactionType.SALARY, TransactionChannel.ACH
            if self.calendar.is_start_of_month(moment) and draw < BILLS_AT_MONTH_START:
                return TransactionType.BILL_PAYMENT, TransactionChannel.ONLINE
        return pick_from_table(table, draw)

    def amount(self, txn_type: TransactionType, account: Account) -> int:
        rule = AMOUNT_RULES.get(txn_type)
        if rule is None:
            return self.rng.int_range(1_000, 10_000)
        if rule.kind is AmountRuleKind.RANGE:
            return self.rng.int_range(rule.low, rule.high)
        if rule.kind is AmountRuleKind.INTEREST:
            monthly_rate = account.interest_rate / 10_000 / 12
            return int(abs(self.balances.get(account.id, account.balance)) * monthly_rate)
        if rule.kind is AmountRuleKind.PURCHASE:
            draw = self.rng.float64()
            distribution = PURCHASE_SPLITS[-1][1]
            for threshold, candidate in PURCHASE_SPLITS:
                if draw < threshold:
                    distribution = candidate
                    break
            return distribution.sample(self.rng)
        return rule.distribution.sample(self.rng)  # type: ignore[union-attr]

    def decline_reason(self, txn_type: TransactionType, balance: int, amount: int) -> Optional[str]:
        """Reason a debit is refused, or ``None``; credits never decline."""

        if not is_debit(txn_type):
            return None
        if self.rng.probability(self.settings.declined_rate):
            return DECLINED_BY_ISSUER
        if self.rng.probability(self.settings.insufficient_funds_rate) and balance < amount:
            return INSUFFICIENT_FUNDS
        return None

    def counterparty(self, txn_type: TransactionType, account: Account) -> Optional[int]:
        if txn_type in (TransactionType.TRANSFER_IN, TransactionType.TRANSFER_OUT):
            for sibling in self.siblings.get(account.customer_id, ()):
                if sibling != account.id:
                    return sibling
            return None
        pool: Sequence[int] = ()
        if txn_type is TransactionType.PURCHASE:
            pool = self.pools.merchant_accounts
        elif txn_type is TransactionType.BILL_PAYMENT:
            pool = self.pools.utility_accounts
        elif txn_type is TransactionType.SALARY:
            pool = self.pools.payroll_accounts
        return self.rng.choice(pool) if pool else None

    def location(self, channel: TransactionChannel) -> tuple[Optional[int], Optional[int]]:
        """``(branch_id, atm_id)`` for channels that happen somewhere physical."""

        if channel is TransactionChannel.ATM and self.pools.atm_ids:
            return None, self.rng.choice(self.pools.atm_ids)
        if channel is TransactionChannel.BRANCH and self.pools.branch_ids:
            return self.rng.choice(self.pools.branch_ids), None
        return None, None

    def description(
        self,
        txn_type: TransactionType,
        channel: TransactionChannel,
        account: Account,
        atm_id: Optional[int],
    ) -> str:
        if txn_type is TransactionType.WITHDRAWAL:
            site = self.pools.atm_locations.get(atm_id) if atm_id is not None else None
            if site is None:
                site = self.rng.choice(ATM_FALLBACK_LOCATIONS)
            return f"ATM Withdrawal - {site} - {account.currency}"
        if txn_type is TransactionType.PURCHASE:
            return f"POS Purchase - {self.rng.choice(MERCHANT_NAMES)}"
        if txn_type is TransactionType.BILL_PAYMENT:
            return f"Bill Payment - {self.rng.choice(UTILITY_NAMES)}"
        if txn_type is TransactionType.DEPOSIT:
            return "Branch Deposit" if channel is TransactionChannel.BRANCH else "Mobile Deposit"
        if txn_type is TransactionType.FEE:
            return self.rng.choice(FEE_NAMES)
        if txn_type is TransactionType.REFUND:
            return f"Refund - {self.rng.choice(MERCHANT_NAMES)}"
        return _FIXED_DESCRIPTIONS.get(txn_type, "Transaction")

    # -- emission ------------------------------------------------------------

    def transaction(self, account: Account, owner: Customer, moment: datetime) -> Iterator[Transaction]:
        txn_type, channel = self.select_type(account, moment)
        amount = self.amount(txn_type, account)
        balance = self.balances[account.id]

        status = TransactionStatus.COMPLETED
        reason = self.decline_reason(txn_type, balance, amount)
        if reason is not None:
            status = TransactionStatus.DECLINED
            amount = 0

        counterparty_id = self.counterparty(txn_type, account)
        if status is TransactionStatus.COMPLETED and amount > 0:
            balance += balance_effect(txn_type, amount)
            self.balances[account.id] = balance

        branch_id, atm_id = self.location(channel)
        description = self.description(txn_type, channel, account, atm_id)
        txn_id = self.allocator.next_id()
        txn = Transaction(
            id=txn_id,
            reference_number=reference_number(txn_id, moment),
            account_id=account.id,
            counterparty_account_id=counterparty_id,
            type=txn_type,
            status=status,
            channel=channel,
            amount=amount,
            currency=account.currency,
            balance_after=balance,
            description=description,
            branch_id=branch_id,
            atm_id=atm_id,
            timestamp=moment,
            posted_at=moment + timedelta(seconds=self.rng.int_range(0, 60)),
            failure_reason=reason,
        )
        yield txn

        if counterparty_id is not None and status is TransactionStatus.COMPLETED:
            yield self.mirror(txn, counterparty_id)

    def mirror(self, original: Transaction, counterparty_id: int) -> Transaction:
        """The other side of ``original``, booked on ``counterparty_id``.

        Only balances tracked by this stream move; an account owned by another
        shard gets ``balance_after = 0``.
        """

        mirror_type = TransactionType.TRANSFER_IN if is_debit(original.type) else TransactionType.TRANSFER_OUT
        balance_after = 0
        if counterparty_id in self.balances:
            balance_after = self.balances[counterparty_id] + balance_effect(mirror_type, original.amount)
            self.balances[counterparty_id] = balance_after

        return Transaction(
            id=self.allocator.next_id(),
            reference_number=original.reference_number,
            account_id=counterparty_id,
            counterparty_account_id=original.account_id,
            type=mirror_type,
            status=original.status,
            channel=original.channel,
            amount=original.amount,
            currency=original.currency,
            balance_after=balance_after,
            description=f"Transfer from {original.reference_number}",
            linked_transaction_id=original.id,
            timestamp=original.timestamp,
            posted_at=original.posted_at,
        )


def run_transaction_worker(task: WorkerTask) -> WorkerResult:
    """Stream one shard's transactions (and inline audit rows) to disk."""

    settings = task.settings
    result = WorkerResult(worker_id=task.worker_id)
    txn_rng, audit_rng = task.rng.fork_n(2)
    stream = TransactionStream(
        txn_rng,
        task.accounts,
        task.owners,
        task.pools,
        task.id_range.allocator("transaction"),
        settings,
    )

    with log_context.scoped(worker=task.worker_id, phase="transactions"):
        logger.debug("Starting with %s accounts, ids %s", f"{len(task.accounts):,}", task.id_range)
        with open_shard(
            settings.output_dir,
            TRANSACTIONS_TABLE,
            TRANSACTION_HEADERS,
            index=task.shard_index,
            total_shards=task.total_shards,
            compress=settings.compress,
        ) as sink:
            result.paths.append(sink.path)
            audit_sink = None
            auditor = None
            if settings.audit and task.audit_range is not None:
                auditor = AuditStream(audit_rng, task.audit_range.allocator("audit"), settings, task.pools.atm_ids)
                audit_sink = open_shard(
                    settings.output_dir,
                    AUDIT_TABLE,
                    AUDIT_HEADERS,
                    index=task.shard_index,
                    total_shards=task.total_shards * 2,
                    compress=settings.compress,
                )
                result.paths.append(audit_sink.path)
            try:
                for txn in stream:
                    sink.write(txn.to_row())
                    result.rows += 1
                    if txn.status is TransactionStatus.DECLINED:
                        result.declined += 1
                    if auditor is not None and txn.linked_transaction_id is None:
                        for entry in auditor.transaction_events(txn, stream.owner_of(txn)):
                            audit_sink.write(entry.to_row())  # type: ignore[union-attr]
                            result.audit_rows += 1
                    if task.updates is not None and result.rows % PROGRESS_EVERY == 0:
                        publish(task.updates, task.worker_id, result.rows)
            finally:
                if audit_sink is not None:
                    audit_sink.close()
        logger.debug(
            "Finished: %s transactions (%s declined), %s audit rows",
            f"{result.rows:,}",
            f"{result.declined:,}",
            f"{result.audit_rows:,}",
        )
    return result
