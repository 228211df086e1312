#!/usr/bin/env python3
"""Generate a synthetic banking dataset as sharded CSV files."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bankgen.core.config import GenerationSettings
from bankgen.core.log import get_logger, init_logging, log_context
from bankgen.dates import add_months, parse_date
from bankgen.errors import GenerationError
from bankgen.orchestrator import Orchestrator

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--output", type=Path, help="Directory for the generated CSV files")
    parser.add_argument("--seed", type=int, help="Random seed (0 picks one and logs it)")
    parser.add_argument("--customers", type=int, help="Number of retail customers")
    parser.add_argument("--businesses", type=int, help="Number of business customers")
    parser.add_argument("--branches", type=int, help="Number of branches")
    parser.add_argument("--atms", type=int, help="Number of ATMs")
    parser.add_argument("--years", type=int, help="Years of history ending at --end")
    parser.add_argument("--start", type=str, help="First day of history (YYYY-MM or YYYY-MM-DD)")
    parser.add_argument("--end", type=str, help="End of history, exclusive (YYYY-MM or YYYY-MM-DD)")
    parser.add_argument("--txns-per-month", type=int, help="Baseline transactions per customer per month")
    parser.add_argument("--pareto-ratio", type=float, help="Share of accounts producing most of the volume")
    parser.add_argument("--payroll-day", type=int, help="Day of month payroll runs")
    parser.add_argument("--declined-rate", type=float, help="Probability a debit is declined by the issuer")
    parser.add_argument("--insufficient-funds-rate", type=float, help="Probability an underfunded debit is declined")
    parser.add_argument("--workers", type=int, help="Parallel workers (0 = one per CPU)")
    parser.add_argument("--executor", choices=("process", "thread"), help="Worker pool implementation")
    parser.add_argument("--compress", action=argparse.BooleanOptionalAction, default=None, help="Write .csv.xz shards")
    parser.add_argument("--audit", action=argparse.BooleanOptionalAction, default=None, help="Emit audit log tables")
    parser.add_argument("--progress", action=argparse.BooleanOptionalAction, default=None, help="Show progress bars")
    parser.add_argument("--log-level", type=str, default="INFO", help="Console log level")
    parser.add_argument("--log-dir", type=Path, default=Path("logs"), help="Directory for per-run log files")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> GenerationSettings:
    """Layer command line flags over the environment-driven defaults."""

    settings = GenerationSettings.from_env()
    overrides: dict[str, object] = {}

    flag_fields = {
        "output": "output_dir",
        "seed": "seed",
        "customers": "num_customers",
        "businesses": "num_businesses",
        "branches": "num_branches",
        "atms": "num_atms",
        "txns_per_month": "transactions_per_customer_per_month",
        "pareto_ratio": "pareto_ratio",
        "payroll_day": "payroll_day",
        "declined_rate": "declined_rate",
        "insufficient_funds_rate": "insufficient_funds_rate",
        "workers": "workers",
        "executor": "executor",
        "compress": "compress",
        "audit": "audit",
        "progress": "show_progress",
    }
    for flag, field_name in flag_fields.items():
        value = getattr(args, flag)
        if value is not None:
            overrides[field_name] = value

    end = parse_date(args.end) if args.end else settings.history_end
    if args.end:
        overrides["history_end"] = end
    if args.start:
        overrides["history_start"] = parse_date(args.start)
    elif args.years is not None:
        overrides["history_start"] = add_months(end, -12 * args.years)
    elif args.end:
        span = settings.history_end - settings.history_start
        overrides["history_start"] = end - span

    return settings.replace(**overrides)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_logging(app_name="bankgen", level=args.log_level, log_dir=args.log_dir)

    try:
        settings = settings_from_args(args).validate()
        log_context.bind(job="generate", output=str(settings.output_dir))
        result = Orchestrator(settings).run()
    except GenerationError as exc:
        logger.error("Generation failed: %s", exc)
        return 1

    logger.info(
        "Wrote %s transactions and %s audit rows to %s (seed %s)",
        f"{result.transactions:,}",
        f"{result.audit_logs:,}",
        settings.output_dir,
        result.seed,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
