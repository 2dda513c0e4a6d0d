"""Ledger output: raw.tsv and stats.tsv, merged and regenerated per uid range."""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from manifest import parse_uid
from models import RawRow, StatsRow

logger = logging.getLogger(__name__)

# uid -> ledger lines for that uid, verbatim and in file order.
LedgerIndex = Dict[int, List[str]]

# Sample names are upstream bytes in any code page; undecodable bytes
# round-trip through surrogates so carried lines are rewritten unchanged.
LEDGER_ENCODING = "utf-8"
LEDGER_ERRORS = "surrogateescape"


def _marker(flag: bool) -> str:
    return "x" if flag else "."


def format_raw_row(row: RawRow) -> str:
    """One raw.tsv line (13 columns, newline-terminated)."""
    return "\t".join(
        [
            str(row.uid),
            row.filename,
            str(row.sample_id),
            row.sample_name,
            _marker(row.detect_success),
            _marker(row.scale_success),
            _marker(row.has_foreground),
            f"{row.foreground_mean:.2f}",
            str(int(row.foreground_size)),
            f"{row.background_strict_mean:.2f}",
            f"{row.background_loose_mean:.2f}",
            str(row.scale_dark),
            str(row.scale_light),
        ]
    ) + "\n"


def format_stats_row(row: StatsRow) -> str:
    """One stats.tsv line (12 columns, newline-terminated)."""
    logs = [
        row.log_abs,
        row.log_delta,
        row.log_light,
        row.log_dark,
        row.log_back_loose,
        row.log_back_strict,
        row.log_mean,
        row.log_size,
    ]
    return "\t".join(
        [str(row.uid), row.filename, str(row.sample_id)]
        + [f"{value:.5f}" for value in logs]
        + [row.sample_name]
    ) + "\n"


def parse_ledger(lines: Iterable[str], name: str = "ledger") -> LedgerIndex:
    """Index ledger lines by their leading uid, keeping duplicates and order."""
    index: LedgerIndex = {}
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        uid = parse_uid(line)
        if uid is None:
            logger.warning(f"{name} line {line_no}: no integer uid; dropped")
            continue
        if not line.endswith("\n"):
            line += "\n"
        index.setdefault(uid, []).append(line)
    return index


def read_ledger(path: Path) -> LedgerIndex:
    """Index an existing ledger file; a missing file is an empty ledger."""
    if not path.is_file():
        return {}
    with path.open("r", encoding=LEDGER_ENCODING, errors=LEDGER_ERRORS, newline="") as f:
        return parse_ledger(f, name=path.name)


def carry_forward(index: LedgerIndex, low: int, high: int) -> List[str]:
    """Lines of every uid in [low, high], ascending by uid."""
    lines: List[str] = []
    for uid in sorted(index):
        if low <= uid <= high:
            lines.extend(index[uid])
    return lines


def merge_ledger(
    prior: LedgerIndex,
    fresh: List[str],
    start_id: int,
    end_id: int,
    high_bound: int,
) -> List[str]:
    """Prior lines below the range, fresh lines, then prior lines above it.

    Prior lines with uids inside [start_id, end_id] are discarded: that range
    is regenerated from the current run alone.
    """
    return (
        carry_forward(prior, 1, start_id - 1)
        + list(fresh)
        + carry_forward(prior, end_id + 1, high_bound)
    )


class LedgerMerger:
    """Owns both ledgers for the duration of one run.

    Two runs must never target the same ledgers at once: both would load the
    same prior content and the last writer wins.
    """

    def __init__(
        self,
        raw_path: Path,
        stats_path: Path,
        start_id: int,
        end_id: int,
        legacy_high_bound: bool = False,
    ):
        self.raw_path = raw_path
        self.stats_path = stats_path
        self.start_id = start_id
        self.end_id = end_id
        self.legacy_high_bound = legacy_high_bound

        self.prior_raw: LedgerIndex = {}
        self.prior_stats: LedgerIndex = {}
        self.fresh_raw: List[str] = []
        self.fresh_stats: List[str] = []
        self.max_skipped_uid = 1

    def load(self) -> None:
        """Read the previous run's ledgers into memory."""
        self.prior_raw = read_ledger(self.raw_path)
        self.prior_stats = read_ledger(self.stats_path)
        logger.info(
            f"Loaded prior ledgers: {sum(map(len, self.prior_raw.values()))} raw, "
            f"{sum(map(len, self.prior_stats.values()))} stats line(s)"
        )

    def observe_skipped(self, uid: int) -> None:
        """Track a manifest uid that fell outside the processed range."""
        if uid > self.max_skipped_uid:
            self.max_skipped_uid = uid

    def add(self, raw: RawRow, stats: Optional[StatsRow] = None) -> None:
        self.fresh_raw.append(format_raw_row(raw))
        if stats is not None:
            self.fresh_stats.append(format_stats_row(stats))

    def high_bound(self) -> int:
        """Highest uid to carry forward above the processed range."""
        if self.legacy_high_bound:
            return self.max_skipped_uid
        return max([self.max_skipped_uid, *self.prior_raw, *self.prior_stats])

    def merged(self):
        """(raw lines, stats lines) as they will be written."""
        bound = self.high_bound()
        raw = merge_ledger(self.prior_raw, self.fresh_raw, self.start_id, self.end_id, bound)
        stats = merge_ledger(self.prior_stats, self.fresh_stats, self.start_id, self.end_id, bound)
        return raw, stats

    def write(self) -> None:
        """Replace both ledgers with the merged content.

        Each ledger is written to a sibling .tmp file first; the live files are
        only swapped in once both temporaries are complete.
        """
        raw, stats = self.merged()
        pending = []
        for path, lines in ((self.raw_path, raw), (self.stats_path, stats)):
            tmp_path = path.with_name(path.name + ".tmp")
            with tmp_path.open("w", encoding=LEDGER_ENCODING, errors=LEDGER_ERRORS, newline="") as f:
                f.writelines(lines)
            pending.append((tmp_path, path, len(lines)))

        for tmp_path, path, count in pending:
            os.replace(tmp_path, path)
            logger.info(f"Wrote {count} line(s) to {path}")
