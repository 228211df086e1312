"""Wire entity generation, partitioning and the parallel workers together."""
from __future__ import annotations

from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, wait
from contextlib import ExitStack
from dataclasses import dataclass, field
from multiprocessing import Manager
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Optional, Sequence

from .audit import run_audit_worker
from .core.config import GenerationSettings
from .core.log import get_logger, log_context, timeit
from .dates import month_windows, months_between
from .entities import EntitySet, build_entities
from .errors import GenerationError, WorkerError
from .models import ATM, Account, Branch, Customer
from .partition import (
    IDRange,
    calculate_id_ranges,
    estimate_audit_count,
    estimate_transaction_count,
    partition_accounts_by_customer,
    partition_customers,
    resolve_worker_count,
)
from .progress import AggregatedProgressReporter, queue_size
from .rng import RandomStream
from .sink import open_table
from .tasks import WorkerResult, WorkerTask
from .transactions import run_transaction_worker

logger = get_logger(__name__)

WorkerFn = Callable[[WorkerTask], WorkerResult]


@dataclass
class GenerationResult:
    """Row counts and timings for a run."""

    seed: int
    worker_count: int = 0
    branches: int = 0
    atms: int = 0
    customers: int = 0
    businesses: int = 0
    accounts: int = 0
    transactions: int = 0
    declined: int = 0
    audit_logs: int = 0
    duration: float = 0.0
    workers: list[WorkerResult] = field(default_factory=list)

    @property
    def paths(self) -> list[Path]:
        return [path for worker in self.workers for path in worker.paths]

    def as_log_dict(self) -> dict[str, object]:
        return {
            "seed": self.seed,
            "workers": self.worker_count,
            "branches": self.branches,
            "atms": self.atms,
            "customers": self.customers,
            "businesses": self.businesses,
            "accounts": self.accounts,
            "transactions": self.transactions,
            "declined": self.declined,
            "audit_logs": self.audit_logs,
            "duration": round(self.duration, 2),
        }


@dataclass(frozen=True)
class _IdPlan:
    estimate: int
    transactions: list[IDRange]
    inline_audit: list[IDRange]
    session_audit_start: int


class Orchestrator:
    """Runs the entity, transaction and audit phases for one seed."""

    def __init__(self, settings: GenerationSettings) -> None:
        self.settings = settings.validate()
        self.rng = RandomStream(settings.seed)
        self.worker_count = resolve_worker_count(settings.workers)
        self.entities: Optional[EntitySet] = None
        self.result = GenerationResult(seed=self.rng.seed, worker_count=self.worker_count)

    # -- phases ------------------------------------------------------------

    def run(self) -> GenerationResult:
        """Generate every table and return the combined counts."""

        started = perf_counter()
        settings = self.settings
        with log_context.scoped(seed=self.rng.seed):
            logger.info(
                "Generating %s to %s with seed %s on %d %s workers",
                settings.history_start.date(),
                settings.history_end.date(),
                self.rng.seed,
                self.worker_count,
                settings.executor,
            )
            self.generate_entities()
            self.generate_transactions()
            if settings.audit:
                self.generate_audit_logs()
        self.result.duration = perf_counter() - started
        logger.info("Generation finished: %s", self.result.as_log_dict())
        return self.result

    def generate_entities(self) -> EntitySet:
        settings = self.settings
        with timeit("Entity generation", logger=logger, unit="accounts") as timer:
            entities = build_entities(
                self.rng,
                num_customers=settings.num_customers,
                num_businesses=settings.num_businesses,
                num_branches=settings.num_branches,
                num_atms=settings.num_atms,
                history_start=settings.history_start,
                pareto_ratio=settings.pareto_ratio,
            )
            timer.set_total(len(entities.accounts))
            self._write_entities(entities)

        self.entities = entities
        result = self.result
        result.branches = len(entities.branches)
        result.atms = len(entities.atms)
        result.customers = len(entities.customers)
        result.businesses = len(entities.businesses)
        result.accounts = len(entities.accounts)
        logger.info(
            "Entities: %s branches, %s ATMs, %s customers, %s businesses, %s accounts",
            f"{result.branches:,}",
            f"{result.atms:,}",
            f"{result.customers:,}",
            f"{result.businesses:,}",
            f"{result.accounts:,}",
        )
        return entities

    def _write_entities(self, entities: EntitySet) -> None:
        output_dir, compress = self.settings.output_dir, self.settings.compress
        tables: Sequence[tuple[str, Sequence[str], list[list[str]]]] = (
            ("branches", Branch.HEADERS, [branch.to_row() for branch in entities.branches]),
            ("atms", ATM.HEADERS, [atm.to_row() for atm in entities.atms]),
            ("customers", Customer.HEADERS, [customer.to_row() for customer in entities.customers]),
            ("businesses", Customer.BUSINESS_HEADERS, [business.to_business_row() for business in entities.businesses]),
            ("accounts", Account.HEADERS, [account.to_row() for account in entities.accounts]),
        )
        for table, headers, rows in tables:
            with open_table(output_dir, table, headers, compress=compress) as sink:
                for row in rows:
                    sink.write(row)

    def _require_entities(self) -> EntitySet:
        if self.entities is None:
            raise GenerationError("entities have not been generated; call generate_entities() first")
        return self.entities

    def _months(self) -> int:
        return sum(1 for _ in month_windows(self.settings.history_start, self.settings.history_end))

    def _id_plan(self, entities: EntitySet) -> _IdPlan:
        workers = self.worker_count
        estimate = estimate_transaction_count(
            len(entities.accounts), self.settings.transactions_per_customer_per_month, self._months()
        )
        transactions = calculate_id_ranges(estimate, workers)
        inline_audit = calculate_id_ranges(estimate * 2, workers)
        return _IdPlan(estimate, transactions, inline_audit, inline_audit[-1].end)

    def generate_transactions(self) -> list[WorkerResult]:
        """Stream transactions (and their audit rows) from every shard in parallel."""

        entities = self._require_entities()
        settings = self.settings
        workers = self.worker_count
        shards = partition_accounts_by_customer(entities.accounts, workers)
        plan = self._id_plan(entities)
        forks = self.rng.fork_n(workers)
        owners = entities.owners_by_id()
        pools = entities.counterparty_pools()

        tasks = []
        for worker_id, accounts in enumerate(shards):
            tasks.append(
                WorkerTask(
                    worker_id=worker_id,
                    rng=forks[worker_id],
                    settings=settings,
                    id_range=plan.transactions[worker_id],
                    shard_index=worker_id + 1,
                    total_shards=workers,
                    accounts=accounts,
                    owners={account.customer_id: owners[account.customer_id] for account in accounts},
                    pools=pools,
                    audit_range=plan.inline_audit[worker_id] if settings.audit else None,
                )
            )

        with timeit("Transaction generation", logger=logger, unit="transactions") as timer:
            results = self._run_phase("transactions", tasks, run_transaction_worker, "Transactions", plan.estimate)
            timer.set_total(sum(result.rows for result in results))

        self.result.workers.extend(results)
        self.result.transactions += sum(result.rows for result in results)
        self.result.declined += sum(result.declined for result in results)
        self.result.audit_logs += sum(result.audit_rows for result in results)
        return results

    def generate_audit_logs(self) -> list[WorkerResult]:
        """Stream login and session audit rows for contiguous customer chunks."""

        entities = self._require_entities()
        settings = self.settings
        workers = self.worker_count
        chunks = partition_customers(entities.customers, workers)
        months = months_between(settings.history_start, settings.history_end)
        estimate = estimate_audit_count(
            len(entities.customers),
            months,
            settings.sessions_per_customer_per_month,
            settings.balance_checks_per_session,
        )
        ranges = calculate_id_ranges(estimate, workers, first_id=self._id_plan(entities).session_audit_start)
        forks = self.rng.fork_n(workers)
        pools = entities.counterparty_pools()

        by_owner: dict[int, list[int]] = {}
        for account in entities.accounts:
            by_owner.setdefault(account.customer_id, []).append(account.id)

        tasks = []
        for worker_id, customers in enumerate(chunks):
            tasks.append(
                WorkerTask(
                    worker_id=worker_id,
                    rng=forks[worker_id],
                    settings=settings,
                    id_range=ranges[worker_id],
                    shard_index=workers + worker_id + 1,
                    total_shards=workers * 2,
                    customers=customers,
                    customer_accounts={customer.id: by_owner.get(customer.id, []) for customer in customers},
                    pools=pools,
                )
            )

        with timeit("Audit log generation", logger=logger, unit="rows") as timer:
            results = self._run_phase("audit", tasks, run_audit_worker, "Audit logs", estimate)
            timer.set_total(sum(result.audit_rows for result in results))

        self.result.workers.extend(results)
        self.result.audit_logs += sum(result.audit_rows for result in results)
        return results

    # -- execution -----------------------------------------------------------

    def _executor(self, workers: int) -> Executor:
        if self.settings.executor == "thread":
            return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bankgen")
        return ProcessPoolExecutor(max_workers=workers)

    def _updates_queue(self, stack: ExitStack, workers: int) -> Any:
        if self.settings.executor == "thread":
            return None
        manager = stack.enter_context(Manager())
        return manager.Queue(maxsize=queue_size(workers))

    def _run_phase(
        self,
        phase: str,
        tasks: list[WorkerTask],
        worker: WorkerFn,
        label: str,
        estimate: int,
    ) -> list[WorkerResult]:
        """Run ``worker`` over ``tasks`` and wait for all of them.

        Every worker runs to completion even when a sibling fails; only the
        first failure, in worker order, is raised.
        """

        with ExitStack() as stack:
            reporter = AggregatedProgressReporter(
                label,
                len(tasks),
                updates=self._updates_queue(stack, len(tasks)),
                total=estimate,
                unit="rows",
                show=self.settings.show_progress,
            )
            for task in tasks:
                task.updates = reporter.updates

            executor = stack.enter_context(self._executor(len(tasks)))
            reporter.start()
            stack.callback(reporter.finish)
            futures = [executor.submit(worker, task) for task in tasks]
            wait(futures)

            results: list[WorkerResult] = []
            failure: Optional[tuple[int, BaseException]] = None
            for task, future in zip(tasks, futures):
                error = future.exception()
                if error is None:
                    result = future.result()
                    reporter.record(task.worker_id, result.rows if phase == "transactions" else result.audit_rows)
                    results.append(result)
                elif failure is None:
                    failure = (task.worker_id, error)
                else:
                    logger.debug("Discarding later failure from %s worker %d: %r", phase, task.worker_id, error)
            reporter.finish()

        if failure is not None:
            worker_id, error = failure
            logger.error("%s worker %d failed: %s", phase, worker_id, error)
            raise WorkerError(worker_id, phase, error) from error
        return results
