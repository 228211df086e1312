"""CSV shard writers, optionally xz-compressed."""
from __future__ import annotations

import csv
import lzma
from pathlib import Path
from typing import IO, Iterator, Optional, Sequence

from .core.log import get_logger
from .errors import SinkError

logger = get_logger(__name__)

CSV_SUFFIX = ".csv"
XZ_SUFFIX = ".csv.xz"
MIN_SHARD_WIDTH = 3


def shard_width(total_shards: int) -> int:
    return max(MIN_SHARD_WIDTH, len(str(total_shards)))


def shard_name(table: str, index: int, total_shards: int, compress: bool = False) -> str:
    """File name for 1-based shard ``index`` of ``table``, e.g. ``transactions_007.csv``."""

    suffix = XZ_SUFFIX if compress else CSV_SUFFIX
    return f"{table}_{index:0{shard_width(total_shards)}d}{suffix}"


def table_name(table: str, compress: bool = False) -> str:
    return f"{table}{XZ_SUFFIX if compress else CSV_SUFFIX}"


class ShardSink:
    """Streams rows into one CSV file.

    Usable as a context manager; the header is written on creation and the
    file is flushed and closed on exit, even when the body raised.
    """

    def __init__(self, path: Path, headers: Sequence[str], compress: bool = False) -> None:
        self.path = path
        self.compress = compress
        self.rows_written = 0
        self._handle: Optional[IO[str]] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if compress:
                self._handle = lzma.open(path, "wt", encoding="utf-8", newline="")
            else:
                self._handle = path.open("w", encoding="utf-8", newline="")
            self._writer = csv.writer(self._handle)
            self._writer.writerow(headers)
        except (OSError, lzma.LZMAError) as exc:
            self._abandon()
            raise SinkError(f"cannot create {path}: {exc}") from exc

    def __enter__(self) -> "ShardSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._handle is None

    def write(self, row: Sequence[str]) -> None:
        if self._handle is None:
            raise SinkError(f"write to closed sink {self.path}")
        try:
            self._writer.writerow(row)
        except (OSError, lzma.LZMAError) as exc:
            raise SinkError(f"cannot write to {self.path}: {exc}") from exc
        self.rows_written += 1

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            handle.close()
        except (OSError, lzma.LZMAError) as exc:
            raise SinkError(f"cannot close {self.path}: {exc}") from exc
        logger.debug("Closed %s after %s rows", self.path.name, f"{self.rows_written:,}")

    def _abandon(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            try:
                handle.close()
            except (OSError, lzma.LZMAError):
                logger.debug("Ignoring close failure on abandoned %s", self.path)


def open_shard(
    output_dir: Path,
    table: str,
    headers: Sequence[str],
    *,
    index: int,
    total_shards: int,
    compress: bool = False,
) -> ShardSink:
    return ShardSink(output_dir / shard_name(table, index, total_shards, compress), headers, compress)


def open_table(output_dir: Path, table: str, headers: Sequence[str], *, compress: bool = False) -> ShardSink:
    """Sink for an unsharded table such as ``accounts.csv``."""

    return ShardSink(output_dir / table_name(table, compress), headers, compress)


def discover_shards(output_dir: Path, table: str) -> list[Path]:
    """Every shard of ``table`` in worker order (lexicographic file name order)."""

    found = set(output_dir.glob(f"{table}_*{CSV_SUFFIX}")) | set(output_dir.glob(f"{table}_*{XZ_SUFFIX}"))
    return sorted(found, key=lambda path: path.name)


def iter_rows(path: Path) -> Iterator[dict[str, str]]:
    """Read back a shard written by :class:`ShardSink`."""

    opener = lzma.open if path.name.endswith(XZ_SUFFIX) else open
    with opener(path, "rt", encoding="utf-8", newline="") as f:
        yield from csv.DictReader(f)
