"""Login, session and transaction audit trail generation.

Two paths feed the ``audit_logs`` table: transaction-linked rows emitted inline
by the transaction workers, and session rows produced per customer by the
audit workers. Both allocate ids from their worker's own range.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional, Sequence

from .core.config import GenerationSettings
from .core.log import get_logger, log_context
from .dates import months_between
from .models import (
    AUDIT_CHANNELS,
    AUDIT_HEADERS,
    AuditAction,
    AuditChannel,
    AuditLog,
    AuditOutcome,
    Customer,
    Transaction,
    TransactionStatus,
)
from .partition import IDAllocator
from .progress import publish
from .reference import region_for
from .rng import RandomStream
from .sink import open_shard
from .tasks import WorkerResult, WorkerTask

logger = get_logger(__name__)

AUDIT_TABLE = "audit_logs"
PROGRESS_EVERY = 1_000
ONLINE_SHARE = 0.7
MOBILE_SHARE = 0.2
SESSION_FIRST_HOUR = 7
SESSION_LAST_HOUR = 22

# First-octet ranges per region, visited in this order when building pools.
REGION_PREFIXES: dict[str, tuple[tuple[int, int], ...]] = {
    "NA": ((24, 31), (65, 72), (96, 99), (192, 192)),
    "EU": ((77, 79), (88, 89), (109, 109), (176, 178)),
    "AS": ((14, 14), (27, 27), (49, 49), (103, 103)),
    "SA": ((179, 179), (186, 189), (200, 201)),
    "OC": ((101, 101), (110, 110), (120, 120)),
    "AF": ((41, 41), (105, 105), (154, 154)),
}
IPS_PER_REGION = 100

MOBILE_AGENTS = (
    "BankApp/5.2.1 (iOS 17.0; iPhone14,2)",
    "BankApp/5.2.0 (Android 14; Pixel 8)",
    "BankApp/5.1.9 (iOS 16.5; iPhone13,4)",
    "BankApp/5.1.8 (Android 13; Samsung S23)",
)
BROWSER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 Safari/17.2",
)
TELLER_AGENT = "BranchTellerSystem/3.2"

LOGIN_FAILURE_REASONS = ("invalid_password", "invalid_pin", "expired_credentials", "user_not_found")

_TRANSACTION_OUTCOMES: dict[TransactionStatus, tuple[AuditAction, AuditOutcome, str]] = {
    TransactionStatus.DECLINED: (AuditAction.TRANSACTION_DECLINED, AuditOutcome.DENIED, "transaction_declined"),
    TransactionStatus.FAILED: (AuditAction.TRANSACTION_FAILED, AuditOutcome.FAILURE, "transaction_failed"),
}


def build_ip_pools(rng: RandomStream) -> dict[str, list[str]]:
    """Draw ``IPS_PER_REGION`` plausible public addresses for each region."""

    pools: dict[str, list[str]] = {}
    for region, prefixes in REGION_PREFIXES.items():
        addresses = []
        for _ in range(IPS_PER_REGION):
            low, high = rng.choice(prefixes)
            first = rng.int_range(low, high)
            second = rng.int_range(0, 255)
            third = rng.int_range(0, 255)
            fourth = rng.int_range(1, 254)
            addresses.append(f"{first}.{second}.{third}.{fourth}")
        pools[region] = addresses
    return pools


class AuditStream:
    """Produces :class:`AuditLog` rows for one worker."""

    def __init__(
        self,
        rng: RandomStream,
        allocator: IDAllocator,
        settings: GenerationSettings,
        atm_ids: Sequence[int] = (),
    ) -> None:
        self.rng = rng
        self.allocator = allocator
        self.settings = settings
        self.atm_ids = tuple(atm_ids)
        self.ip_pools = build_ip_pools(rng)

    # -- shared helpers --------------------------------------------------

    def channel_context(self, channel: AuditChannel, customer: Customer) -> tuple[str, str]:
        """Return an ``(ip_address, user_agent)`` pair plausible for ``channel``."""

        rng = self.rng
        if channel is AuditChannel.ATM:
            return f"10.0.0.{rng.int_range(1, 254)}", ""
        if channel is AuditChannel.BRANCH:
            return f"192.168.{rng.int_range(1, 10)}.{rng.int_range(1, 254)}", TELLER_AGENT
        if channel is AuditChannel.MOBILE:
            ip = rng.choice(self.ip_pools[region_for(customer.country)])
            return ip, rng.choice(MOBILE_AGENTS)
        if channel is AuditChannel.ONLINE:
            ip = rng.choice(self.ip_pools[region_for(customer.country)])
            return ip, rng.choice(BROWSER_AGENTS)
        return "0.0.0.0", ""

    def _entry(self, **fields: object) -> AuditLog:
        log_id = self.allocator.next_id()
        return AuditLog(id=log_id, request_id=f"REQ{log_id}", **fields)  # type: ignore[arg-type]

    # -- transaction-linked rows -------------------------------------------

    def transaction_events(self, txn: Transaction, customer: Customer) -> Iterator[AuditLog]:
        """An "initiated" row shortly before ``txn`` and one matching its status."""

        channel = AUDIT_CHANNELS[txn.channel]
        session_id = f"SES{txn.timestamp:%Y%m%d}{customer.id:08d}"

        ip, agent = self.channel_context(channel, customer)
        yield self._entry(
            timestamp=txn.timestamp - timedelta(seconds=self.rng.int_range(1, 30)),
            customer_id=customer.id,
            action=AuditAction.TRANSACTION_INITIATED,
            outcome=AuditOutcome.SUCCESS,
            channel=channel,
            branch_id=txn.branch_id,
            atm_id=txn.atm_id,
            ip_address=ip,
            user_agent=agent,
            account_id=txn.account_id,
            transaction_id=txn.id,
            description=f"Transaction initiated: {txn.type.value} {txn.reference_number}",
            session_id=session_id,
        )

        action, outcome, default_reason = _TRANSACTION_OUTCOMES.get(
            txn.status, (AuditAction.TRANSACTION_COMPLETED, AuditOutcome.SUCCESS, "")
        )
        reason = (txn.failure_reason or default_reason) if default_reason else ""
        ip, agent = self.channel_context(channel, customer)
        yield self._entry(
            timestamp=txn.timestamp,
            customer_id=customer.id,
            action=action,
            outcome=outcome,
            channel=channel,
            branch_id=txn.branch_id,
            atm_id=txn.atm_id,
            ip_address=ip,
            user_agent=agent,
            account_id=txn.account_id,
            transaction_id=txn.id,
            description=f"Transaction {outcome.value}: {txn.type.value} {txn.reference_number}",
            failure_reason=reason,
            session_id=session_id,
        )

    # -- session rows ------------------------------------------------------

    def session_count(self, customer: Customer) -> int:
        months = months_between(self.settings.history_start, self.settings.history_end)
        per_month = self.settings.sessions_per_customer_per_month
        return max(1, int(months * per_month * customer.activity_score))

    def session_time(self) -> datetime:
        start, end = self.settings.history_start, self.settings.history_end
        moment = start + (end - start) * self.rng.float64()
        hour = self.rng.int_range(SESSION_FIRST_HOUR, SESSION_LAST_HOUR)
        minute = self.rng.int_range(0, 59)
        second = self.rng.int_range(0, 59)
        return datetime(moment.year, moment.month, moment.day, hour, minute, second, tzinfo=timezone.utc)

    def customer_sessions(self, customer: Customer, account_ids: Sequence[int]) -> Iterator[AuditLog]:
        for _ in range(self.session_count(customer)):
            yield from self.session(customer, self.session_time(), account_ids)

    def session(self, customer: Customer, started: datetime, account_ids: Sequence[int]) -> Iterator[AuditLog]:
        """One login attempt: either a failed-login burst or a full session."""

        rng = self.rng
        atm_id: Optional[int] = None
        draw = rng.float64()
        if draw < ONLINE_SHARE:
            channel = AuditChannel.ONLINE
        elif draw < ONLINE_SHARE + MOBILE_SHARE:
            channel = AuditChannel.MOBILE
        else:
            channel = AuditChannel.ATM
            if self.atm_ids:
                atm_id = rng.choice(self.atm_ids)

        ip, agent = self.channel_context(channel, customer)
        session_id = f"SES{started:%Y%m%d%H%M%S}{customer.id:08d}{rng.int_n(10000):04d}"
        common = dict(
            customer_id=customer.id,
            channel=channel,
            atm_id=atm_id,
            ip_address=ip,
            user_agent=agent,
            session_id=session_id,
        )

        if rng.probability(self.settings.failed_login_rate):
            attempts = rng.int_range(1, 3)
            for attempt in range(attempts):
                reason = rng.choice(LOGIN_FAILURE_REASONS)
                yield self._entry(
                    timestamp=started + timedelta(seconds=attempt * 10),
                    action=AuditAction.LOGIN_FAILED,
                    outcome=AuditOutcome.FAILURE,
                    description="Login attempt failed",
                    failure_reason=reason,
                    risk_score=rng.int_range(10, 60),
                    **common,
                )
            if rng.probability(self.settings.locked_account_rate) and attempts >= 3:
                yield self._entry(
                    timestamp=started + timedelta(seconds=attempts * 10 + 5),
                    action=AuditAction.ACCOUNT_LOCKED,
                    outcome=AuditOutcome.DENIED,
                    description="Account locked due to multiple failed login attempts",
                    failure_reason="max_attempts_exceeded",
                    risk_score=rng.int_range(80, 100),
                    **common,
                )
            return

        yield self._entry(
            timestamp=started,
            action=AuditAction.LOGIN_SUCCESS,
            outcome=AuditOutcome.SUCCESS,
            description="User logged in successfully",
            **common,
        )
        yield self._entry(
            timestamp=started + timedelta(seconds=1),
            action=AuditAction.SESSION_STARTED,
            outcome=AuditOutcome.SUCCESS,
            description="Session started",
            **common,
        )

        checks = rng.int_range(1, self.settings.balance_checks_per_session * 2)
        if account_ids:
            for check in range(checks):
                yield self._entry(
                    timestamp=started + timedelta(seconds=30 + check * 20),
                    action=AuditAction.BALANCE_INQUIRY,
                    outcome=AuditOutcome.SUCCESS,
                    account_id=rng.choice(account_ids),
                    description="Balance inquiry",
                    **common,
                )

        ended = started + timedelta(seconds=rng.int_range(60, 1800))
        if rng.probability(self.settings.session_timeout_rate):
            yield self._entry(
                timestamp=ended,
                action=AuditAction.SESSION_TIMEOUT,
                outcome=AuditOutcome.SUCCESS,
                description="Session timed out due to inactivity",
                failure_reason="inactivity_timeout",
                **common,
            )
            return

        yield self._entry(
            timestamp=ended,
            action=AuditAction.LOGOUT,
            outcome=AuditOutcome.SUCCESS,
            description="User logged out",
            **common,
        )
        yield self._entry(
            timestamp=ended + timedelta(seconds=1),
            action=AuditAction.SESSION_ENDED,
            outcome=AuditOutcome.SUCCESS,
            description="Session ended normally",
            **common,
        )


def run_audit_worker(task: WorkerTask) -> WorkerResult:
    """Stream session audit rows for one contiguous chunk of customers."""

    settings = task.settings
    result = WorkerResult(worker_id=task.worker_id)
    stream = AuditStream(task.rng, task.id_range.allocator("audit"), settings, task.pools.atm_ids)

    with log_context.scoped(worker=task.worker_id, phase="audit"):
        logger.debug("Starting with %s customers, ids %s", f"{len(task.customers):,}", task.id_range)
        with open_shard(
            settings.output_dir,
            AUDIT_TABLE,
            AUDIT_HEADERS,
            index=task.shard_index,
            total_shards=task.total_shards,
            compress=settings.compress,
        ) as sink:
            result.paths.append(sink.path)
            for customer in task.customers:
                for entry in stream.customer_sessions(customer, task.customer_accounts.get(customer.id, ())):
                    sink.write(entry.to_row())
                    result.audit_rows += 1
                    if task.updates is not None and result.audit_rows % PROGRESS_EVERY == 0:
                        publish(task.updates, task.worker_id, result.audit_rows)
        logger.debug("Finished: %s audit rows", f"{result.audit_rows:,}")
    return result
