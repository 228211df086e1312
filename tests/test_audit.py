"""Tests for session and transaction audit trails."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from bankgen.audit import IPS_PER_REGION, REGION_PREFIXES, AuditStream, build_ip_pools
from bankgen.core.config import GenerationSettings
from bankgen.dates import months_between
from bankgen.entities import EntitySet
from bankgen.models import (
    AuditAction,
    AuditChannel,
    AuditOutcome,
    Transaction,
    TransactionChannel,
    TransactionStatus,
    TransactionType,
)
from bankgen.partition import IDRange, estimate_audit_count
from bankgen.rng import RandomStream

STARTED = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def _auditor(settings: GenerationSettings, entities: EntitySet, seed: int = 3) -> AuditStream:
    return AuditStream(
        RandomStream(seed),
        IDRange(5_000, 50_000).allocator("audit"),
        settings,
        entities.counterparty_pools().atm_ids,
    )


def _transaction(status: TransactionStatus, channel: TransactionChannel, reason: str | None = None) -> Transaction:
    moment = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)
    return Transaction(
        id=77,
        reference_number="TXN20240201000000000077",
        account_id=1,
        type=TransactionType.PURCHASE,
        status=status,
        channel=channel,
        amount=0 if status is TransactionStatus.DECLINED else 1_500,
        currency="USD",
        balance_after=10_000,
        description="POS Purchase - TARGET",
        timestamp=moment,
        posted_at=moment,
        failure_reason=reason,
    )


def test_ip_pools_cover_every_region() -> None:
    pools = build_ip_pools(RandomStream(1))
    assert set(pools) == set(REGION_PREFIXES)
    for addresses in pools.values():
        assert len(addresses) == IPS_PER_REGION
        for address in addresses:
            octets = [int(part) for part in address.split(".")]
            assert len(octets) == 4
            assert 1 <= octets[3] <= 254


def test_successful_session_sequence(settings: GenerationSettings, entities: EntitySet) -> None:
    quiet = settings.replace(failed_login_rate=0.0, session_timeout_rate=0.0)
    auditor = _auditor(quiet, entities)
    customer = entities.customers[0]
    account_ids = [a.id for a in entities.accounts_by_customer()[customer.id]]

    rows = list(auditor.session(customer, STARTED, account_ids))
    actions = [row.action for row in rows]

    assert actions[:2] == [AuditAction.LOGIN_SUCCESS, AuditAction.SESSION_STARTED]
    assert actions[-2:] == [AuditAction.LOGOUT, AuditAction.SESSION_ENDED]
    inquiries = [row for row in rows if row.action is AuditAction.BALANCE_INQUIRY]
    assert 1 <= len(inquiries) <= quiet.balance_checks_per_session * 2
    assert all(row.account_id in account_ids for row in inquiries)

    assert len({row.session_id for row in rows}) == 1
    assert all(row.customer_id == customer.id for row in rows)
    assert all(row.outcome is AuditOutcome.SUCCESS for row in rows)
    assert [row.id for row in rows] == list(range(5_000, 5_000 + len(rows)))
    assert all(row.request_id == f"REQ{row.id}" for row in rows)


def test_session_timeout_replaces_logout(settings: GenerationSettings, entities: EntitySet) -> None:
    sleepy = settings.replace(failed_login_rate=0.0, session_timeout_rate=1.0)
    rows = list(_auditor(sleepy, entities).session(entities.customers[0], STARTED, [1]))

    assert rows[-1].action is AuditAction.SESSION_TIMEOUT
    assert rows[-1].failure_reason == "inactivity_timeout"
    assert AuditAction.LOGOUT not in {row.action for row in rows}


def test_session_without_accounts_skips_balance_checks(settings: GenerationSettings, entities: EntitySet) -> None:
    quiet = settings.replace(failed_login_rate=0.0)
    rows = list(_auditor(quiet, entities).session(entities.customers[0], STARTED, []))
    assert AuditAction.BALANCE_INQUIRY not in {row.action for row in rows}


def test_failed_logins_and_lockouts(settings: GenerationSettings, entities: EntitySet) -> None:
    hostile = settings.replace(failed_login_rate=1.0, locked_account_rate=1.0)
    auditor = _auditor(hostile, entities)
    customer = entities.customers[0]

    for _ in range(30):
        rows = list(auditor.session(customer, STARTED, [1]))
        failures = [row for row in rows if row.action is AuditAction.LOGIN_FAILED]
        locks = [row for row in rows if row.action is AuditAction.ACCOUNT_LOCKED]

        assert 1 <= len(failures) <= 3
        assert len(failures) + len(locks) == len(rows)
        assert all(row.outcome is AuditOutcome.FAILURE for row in failures)
        assert all(10 <= row.risk_score <= 60 for row in failures)
        if len(failures) == 3:
            assert len(locks) == 1
            assert locks[0].outcome is AuditOutcome.DENIED
            assert 80 <= locks[0].risk_score <= 100
        else:
            assert locks == []


def test_session_count_is_at_least_one(settings: GenerationSettings, entities: EntitySet) -> None:
    auditor = _auditor(settings.replace(sessions_per_customer_per_month=1), entities)
    for customer in entities.customers:
        assert auditor.session_count(customer) >= 1


def test_session_count_scales_with_sessions_per_month(settings: GenerationSettings, entities: EntitySet) -> None:
    busy = _auditor(settings.replace(sessions_per_customer_per_month=40), entities)
    calm = _auditor(settings.replace(sessions_per_customer_per_month=1), entities)
    for customer in entities.customers:
        assert busy.session_count(customer) >= calm.session_count(customer)
    assert sum(map(busy.session_count, entities.customers)) > sum(map(calm.session_count, entities.customers))


def test_session_channel_mix(settings: GenerationSettings, entities: EntitySet) -> None:
    auditor = _auditor(settings.replace(failed_login_rate=0.0), entities)
    customer = entities.customers[0]
    total = 5_000
    counts = {channel: 0 for channel in (AuditChannel.ONLINE, AuditChannel.MOBILE, AuditChannel.ATM)}
    for _ in range(total):
        first = next(iter(auditor.session(customer, STARTED, [])))
        counts[first.channel] += 1

    assert counts[AuditChannel.ONLINE] / total == pytest.approx(0.7, abs=0.03)
    assert counts[AuditChannel.MOBILE] / total == pytest.approx(0.2, abs=0.03)
    assert counts[AuditChannel.ATM] / total == pytest.approx(0.1, abs=0.03)


def test_customer_sessions_stay_in_history(settings: GenerationSettings, entities: EntitySet) -> None:
    auditor = _auditor(settings, entities)
    customer = entities.customers[0]
    rows = list(auditor.customer_sessions(customer, [1, 2]))

    logins = [row for row in rows if row.action in (AuditAction.LOGIN_SUCCESS, AuditAction.LOGIN_FAILED)]
    assert logins
    for row in logins:
        assert settings.history_start <= row.timestamp < settings.history_end


def test_completed_transaction_events(settings: GenerationSettings, entities: EntitySet) -> None:
    txn = _transaction(TransactionStatus.COMPLETED, TransactionChannel.ATM)
    initiated, completed = _auditor(settings, entities).transaction_events(txn, entities.customers[0])

    assert initiated.action is AuditAction.TRANSACTION_INITIATED
    assert initiated.timestamp < txn.timestamp
    assert completed.action is AuditAction.TRANSACTION_COMPLETED
    assert completed.outcome is AuditOutcome.SUCCESS
    assert completed.failure_reason == ""
    assert completed.channel is AuditChannel.ATM
    assert initiated.ip_address.startswith("10.0.0.")
    assert {initiated.transaction_id, completed.transaction_id} == {77}
    assert initiated.session_id == completed.session_id


@pytest.mark.parametrize(
    "status,reason,action,outcome,expected_reason",
    [
        (TransactionStatus.DECLINED, "insufficient_funds", AuditAction.TRANSACTION_DECLINED, AuditOutcome.DENIED, "insufficient_funds"),
        (TransactionStatus.DECLINED, None, AuditAction.TRANSACTION_DECLINED, AuditOutcome.DENIED, "transaction_declined"),
        (TransactionStatus.FAILED, None, AuditAction.TRANSACTION_FAILED, AuditOutcome.FAILURE, "transaction_failed"),
    ],
)
def test_unsuccessful_transaction_events(
    settings: GenerationSettings,
    entities: EntitySet,
    status: TransactionStatus,
    reason: str | None,
    action: AuditAction,
    outcome: AuditOutcome,
    expected_reason: str,
) -> None:
    txn = _transaction(status, TransactionChannel.POS, reason)
    _, final = _auditor(settings, entities).transaction_events(txn, entities.customers[0])

    assert final.action is action
    assert final.outcome is outcome
    assert final.failure_reason == expected_reason
    assert final.channel is AuditChannel.API


def test_session_rows_stay_within_estimate(settings: GenerationSettings, entities: EntitySet) -> None:
    busy = settings.replace(sessions_per_customer_per_month=40, balance_checks_per_session=6)
    auditor = _auditor(busy, entities)
    by_owner = entities.accounts_by_customer()
    months = months_between(busy.history_start, busy.history_end)
    ceiling = estimate_audit_count(1, months, 40, 6)

    for customer in entities.customers[:5]:
        account_ids = [a.id for a in by_owner.get(customer.id, [])]
        rows = list(auditor.customer_sessions(customer, account_ids))
        assert len(rows) <= ceiling
