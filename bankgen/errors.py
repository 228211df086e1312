"""Exception types raised by the generator."""
from __future__ import annotations


class GenerationError(Exception):
    """Base class for every failure that aborts a generation run."""


class ConfigurationError(GenerationError, ValueError):
    """Raised when settings are rejected before any generation starts."""

    def __init__(self, problems: list[str] | str) -> None:
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("invalid configuration: " + "; ".join(self.problems))

    def __reduce__(self):
        return (self.__class__, (self.problems,))


class SinkError(GenerationError, OSError):
    """Raised when a shard file cannot be created, written or closed."""


class IDRangeExhaustedError(GenerationError):
    """Raised when a worker runs past the end of its pre-allocated id range."""

    def __init__(self, kind: str, start: int, end: int) -> None:
        self.kind = kind
        self.start = start
        self.end = end
        super().__init__(
            f"{kind} id range [{start}, {end}) exhausted; estimate was too low"
        )

    def __reduce__(self):
        # Rebuilt from the original arguments when crossing a process boundary.
        return (self.__class__, (self.kind, self.start, self.end))


class WorkerError(GenerationError):
    """The first failure reported by a worker, surfaced by the orchestrator."""

    def __init__(self, worker_id: int, phase: str, cause: BaseException) -> None:
        self.worker_id = worker_id
        self.phase = phase
        super().__init__(f"{phase} worker {worker_id} failed: {cause}")
