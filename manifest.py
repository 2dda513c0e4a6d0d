"""Reader for the rois.tsv manifest produced by the ROI extraction stage."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from config import SOURCES_DIR
from models import RoiRecord

logger = logging.getLogger(__name__)

# uid, filename, sample_id, sample_name, detect, scale, scale_dark, scale_light
MANIFEST_COLUMNS = 8


@dataclass
class ManifestScan:
    """In-range records of one manifest pass, in file order."""
    records: List[RoiRecord] = field(default_factory=list)
    max_skipped_uid: int = 1
    skipped_malformed: int = 0


def parse_flag(value: str) -> bool:
    return value.startswith("x")


def parse_manifest_line(line: str, line_no: int = 0, data_dir: Optional[Path] = None) -> Optional[RoiRecord]:
    """Parse one manifest row; returns None (and warns) for malformed rows.

    Columns past the eighth are ignored.
    """
    cols = line.rstrip("\r\n").split("\t")
    if len(cols) < MANIFEST_COLUMNS:
        logger.warning(
            f"rois.tsv line {line_no}: expected {MANIFEST_COLUMNS} columns, got {len(cols)}; skipped"
        )
        return None

    try:
        uid = int(cols[0])
        sample_id = int(cols[2])
        scale_dark = int(cols[6])
        scale_light = int(cols[7])
    except ValueError:
        logger.warning(f"rois.tsv line {line_no}: non-integer numeric column; skipped")
        return None

    source_path = data_dir / SOURCES_DIR / f"{uid}.jpg" if data_dir is not None else None
    return RoiRecord(
        uid=uid,
        filename=cols[1],
        sample_id=sample_id,
        sample_name=cols[3],
        detect_success=parse_flag(cols[4]),
        scale_success=parse_flag(cols[5]),
        scale_dark=scale_dark,
        scale_light=scale_light,
        source_path=source_path,
    )


def parse_uid(line: str) -> Optional[int]:
    """Leading uid column of a tab-separated line, or None."""
    head = line.split("\t", 1)[0].strip()
    try:
        return int(head)
    except ValueError:
        return None


def read_manifest(path: Path, start_id: int, end_id: int) -> ManifestScan:
    """Scan rois.tsv, keeping records whose uid falls inside [start_id, end_id].

    Args:
        path: Path to rois.tsv
        start_id: First uid to process (inclusive)
        end_id: Last uid to process (inclusive)

    Returns:
        ManifestScan with in-range records and the highest out-of-range uid seen

    Raises:
        FileNotFoundError: If the manifest does not exist
    """
    if not path.is_file():
        raise FileNotFoundError(f"Manifest not found: {path}")

    scan = ManifestScan()
    data_dir = path.parent
    with path.open("r", encoding="utf-8", errors="surrogateescape") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue

            uid = parse_uid(line)
            if uid is None:
                logger.warning(f"rois.tsv line {line_no}: no integer uid; skipped")
                scan.skipped_malformed += 1
                continue

            # The range test comes before the full parse.
            if not start_id <= uid <= end_id:
                if uid > scan.max_skipped_uid:
                    scan.max_skipped_uid = uid
                continue

            record = parse_manifest_line(line, line_no, data_dir=data_dir)
            if record is None:
                scan.skipped_malformed += 1
                continue
            scan.records.append(record)

    logger.info(
        f"Manifest {path}: {len(scan.records)} record(s) in [{start_id}, {end_id}], "
        f"{scan.skipped_malformed} malformed"
    )
    return scan
