"""Generation settings loaded from the environment."""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..dates import add_months, parse_date
from ..errors import ConfigurationError

EXECUTORS = ("process", "thread")
_FALSE_VALUES = {"0", "false", "False", "no", "off", ""}


def _load_env(dotenv_path: Optional[Path] = None) -> None:
    """Load the .env file once for the process."""

    if getattr(_load_env, "_loaded", False):  # type: ignore[attr-defined]
        return

    load_dotenv(dotenv_path)
    setattr(_load_env, "_loaded", True)  # type: ignore[attr-defined]


def _flag(value: str) -> bool:
    return value.strip() not in _FALSE_VALUES


def default_history_end() -> datetime:
    """First day of the current month, UTC midnight."""

    now = datetime.now(timezone.utc)
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class GenerationSettings:
    """Every knob consumed by the orchestrator and its workers."""

    history_start: datetime
    history_end: datetime
    output_dir: Path = Path("output")
    seed: int = 0

    num_customers: int = 10_000
    num_businesses: int = 500
    num_branches: int = 100
    num_atms: int = 500

    transactions_per_customer_per_month: int = 15
    pareto_ratio: float = 0.2
    payroll_day: int = 25
    declined_rate: float = 0.01
    insufficient_funds_rate: float = 0.02

    failed_login_rate: float = 0.02
    locked_account_rate: float = 0.1
    session_timeout_rate: float = 0.15
    sessions_per_customer_per_month: int = 3
    balance_checks_per_session: int = 2

    workers: int = 0
    executor: str = "process"
    compress: bool = False
    audit: bool = True
    show_progress: bool = True

    @classmethod
    def for_years(cls, years: int = 3, *, end: Optional[datetime] = None, **kwargs: object) -> "GenerationSettings":
        """Build settings covering ``years`` of history ending at ``end``."""

        history_end = end or default_history_end()
        history_start = add_months(history_end, -12 * years)
        return cls(history_start=history_start, history_end=history_end, **kwargs)  # type: ignore[arg-type]

    @classmethod
    def from_env(cls) -> "GenerationSettings":
        """Instantiate settings using environment overrides when present."""

        _load_env()

        def _get_env(name: str, default: object) -> str:
            return os.getenv(name, str(default))

        raw_end = os.getenv("BANKGEN_HISTORY_END")
        history_end = parse_date(raw_end) if raw_end else default_history_end()
        raw_start = os.getenv("BANKGEN_HISTORY_START")
        if raw_start:
            history_start = parse_date(raw_start)
        else:
            years = int(_get_env("BANKGEN_YEARS", 3))
            history_start = add_months(history_end, -12 * years)

        return cls(
            history_start=history_start,
            history_end=history_end,
            output_dir=Path(_get_env("BANKGEN_OUTPUT_DIR", "output")),
            seed=int(_get_env("BANKGEN_SEED", 0)),
            num_customers=int(_get_env("BANKGEN_CUSTOMERS", 10_000)),
            num_businesses=int(_get_env("BANKGEN_BUSINESSES", 500)),
            num_branches=int(_get_env("BANKGEN_BRANCHES", 100)),
            num_atms=int(_get_env("BANKGEN_ATMS", 500)),
            transactions_per_customer_per_month=int(_get_env("BANKGEN_TXNS_PER_MONTH", 15)),
            pareto_ratio=float(_get_env("BANKGEN_PARETO_RATIO", 0.2)),
            payroll_day=int(_get_env("BANKGEN_PAYROLL_DAY", 25)),
            declined_rate=float(_get_env("BANKGEN_DECLINED_RATE", 0.01)),
            insufficient_funds_rate=float(_get_env("BANKGEN_INSUFFICIENT_FUNDS_RATE", 0.02)),
            failed_login_rate=float(_get_env("BANKGEN_FAILED_LOGIN_RATE", 0.02)),
            locked_account_rate=float(_get_env("BANKGEN_LOCKED_ACCOUNT_RATE", 0.1)),
            session_timeout_rate=float(_get_env("BANKGEN_SESSION_TIMEOUT_RATE", 0.15)),
            sessions_per_customer_per_month=int(_get_env("BANKGEN_SESSIONS_PER_MONTH", 3)),
            balance_checks_per_session=int(_get_env("BANKGEN_BALANCE_CHECKS", 2)),
            workers=int(_get_env("BANKGEN_WORKERS", 0)),
            executor=_get_env("BANKGEN_EXECUTOR", "process").strip().lower(),
            compress=_flag(_get_env("BANKGEN_COMPRESS", "0")),
            audit=_flag(_get_env("BANKGEN_AUDIT", "1")),
            show_progress=_flag(_get_env("BANKGEN_PROGRESS", "1")),
        )

    def replace(self, **changes: object) -> "GenerationSettings":
        return replace(self, **changes)  # type: ignore[arg-type]

    def validate(self) -> "GenerationSettings":
        """Reject unusable settings, reporting every problem at once."""

        problems: list[str] = []
        if self.history_start >= self.history_end:
            problems.append("history_start must be before history_end")
        if self.num_customers <= 0:
            problems.append("num_customers must be positive")
        if self.num_businesses < 0:
            problems.append("num_businesses must be non-negative")
        if self.num_branches <= 0:
            problems.append("num_branches must be positive")
        if self.num_atms < 0:
            problems.append("num_atms must be non-negative")
        if self.transactions_per_customer_per_month < 1:
            problems.append("transactions_per_customer_per_month must be at least 1")
        if not 0 < self.pareto_ratio < 1:
            problems.append("pareto_ratio must be between 0 and 1 (exclusive)")
        if not 1 <= self.payroll_day <= 31:
            problems.append("payroll_day must be between 1 and 31")
        for name in (
            "declined_rate",
            "insufficient_funds_rate",
            "failed_login_rate",
            "locked_account_rate",
            "session_timeout_rate",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                problems.append(f"{name} must be between 0.0 and 1.0")
        if self.sessions_per_customer_per_month < 1:
            problems.append("sessions_per_customer_per_month must be at least 1")
        if self.balance_checks_per_session < 1:
            problems.append("balance_checks_per_session must be at least 1")
        if self.workers < 0:
            problems.append("workers must be non-negative (0 = autodetect)")
        if self.executor not in EXECUTORS:
            problems.append(f"executor must be one of {', '.join(EXECUTORS)}")

        if problems:
            raise ConfigurationError(problems)
        return self

    def as_log_dict(self) -> dict[str, object]:
        values = asdict(self)
        values["history_start"] = self.history_start.date().isoformat()
        values["history_end"] = self.history_end.date().isoformat()
        values["output_dir"] = str(self.output_dir)
        return values


@lru_cache(maxsize=1)
def get_settings() -> GenerationSettings:
    """Return a cached, validated ``GenerationSettings`` instance."""

    settings = GenerationSettings.from_env().validate()

    # Import locally to avoid circular dependencies during module import time.
    from .log import get_logger

    logger = get_logger(__name__)
    logger.debug("Settings initialised: %s", settings.as_log_dict())
    return settings
