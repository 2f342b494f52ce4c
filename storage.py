"""
storage.py
CSV persistence for members and their performance history (pandas).
"""

from __future__ import annotations

import csv
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable

import pandas as pd

from models import (
    DEFAULT_RATING,
    PLAN_TYPES,
    ZERO,
    Member,
    Performance,
    PersonalTrainingPlan,
    PremiumPlan,
    RegularPlan,
    YearMonth,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).with_name("data")
MEMBERS_FILE = DATA_DIR / "members.csv"
PERFORMANCES_FILE = DATA_DIR / "performances.csv"
ARCHIVE_DIR = DATA_DIR / "archive"

MEMBER_COLUMNS = [
    "id", "type", "firstName", "lastName", "age", "joinDate", "baseFee",
    "sessionsPerMonth", "feePerSession", "spaAccess", "premiumServiceFee",
]
PERFORMANCE_COLUMNS = ["memberId", "month", "goalAchieved", "rating", "notes"]


class StorageError(Exception):
    """Raised when a CSV file cannot be read or written."""


# ---------- Field parsing / formatting ----------

def _to_int(value: str, default: int = 0) -> int:
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return default


def _to_decimal(value: str, default: Decimal = ZERO) -> Decimal:
    try:
        parsed = Decimal(value.strip())
    except (AttributeError, InvalidOperation):
        return default
    return parsed if parsed.is_finite() else default


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "yes")


def _fmt_money(value: Decimal) -> str:
    return f"{value:.2f}"


def _fmt_bool(value: bool) -> str:
    return "true" if value else "false"


def _is_blank_record(record: list[str]) -> bool:
    # pandas skips empty and whitespace-only lines
    return not record or (len(record) == 1 and not record[0].strip())


def _field_counts(path: Path) -> list[int]:
    """Fields per record as written, header included."""
    try:
        with path.open(newline="", encoding="utf-8") as f:
            return [len(record) for record in csv.reader(f) if not _is_blank_record(record)]
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise StorageError(f"Could not read {path}: {exc}") from exc


def _read_rows(path: Path, columns: list[str]) -> list[tuple[tuple[str, ...], int]]:
    """
    Read a CSV with a header row. Returns (values, field_count) per data row;
    values are positional, padded with "" up to len(columns), and field_count
    is how many fields the row actually had.
    """
    counts = _field_counts(path)
    if len(counts) <= 1:
        return []

    width = max(max(counts), len(columns))
    try:
        df = pd.read_csv(
            path,
            header=0,
            names=list(range(width)),
            index_col=False,
            dtype=str,
            keep_default_na=False,
        )
    except (OSError, ValueError, pd.errors.ParserError) as exc:
        raise StorageError(f"Could not read {path}: {exc}") from exc

    data_counts = counts[1:]
    if len(df) != len(data_counts):
        raise StorageError(f"Could not read {path}: expected {len(data_counts)} rows, parsed {len(df)}")

    values = (row[: len(columns)] for row in df.fillna("").itertuples(index=False, name=None))
    return list(zip(values, data_counts))


def _write_rows(path: Path, columns: list[str], rows: list[list[str]]) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(rows, columns=columns).to_csv(path, index=False)
    except OSError as exc:
        raise StorageError(f"Could not write {path}: {exc}") from exc


# ---------- Members ----------

def _plan_from_row(kind: str, row: tuple[str, ...]):
    if kind == RegularPlan.kind:
        return RegularPlan()
    if kind == PersonalTrainingPlan.kind:
        return PersonalTrainingPlan(_to_int(row[7]), _to_decimal(row[8]))
    return PremiumPlan(_to_bool(row[9]), _to_decimal(row[10]))


def _member_from_row(row: tuple[str, ...], field_count: int, line_no: int) -> Member | None:
    member_id, kind = row[0], row[1].strip().upper()
    if field_count < 6:
        logger.warning("Skipping member row %d: fewer than 6 fields", line_no)
        return None
    if kind not in PLAN_TYPES:
        logger.warning("Skipping member row %d: unknown type %r", line_no, row[1])
        return None

    try:
        join_date = date.fromisoformat(row[5].strip())
    except ValueError as exc:
        raise StorageError(f"Invalid join date {row[5]!r} on member row {line_no}") from exc

    return Member(
        member_id,
        row[2],
        row[3],
        _to_int(row[4]),
        join_date,
        _to_decimal(row[6]),
        _plan_from_row(kind, row),
    )


def load_members(path) -> list[Member]:
    """
    Load members from `path`. A missing file yields an empty list.
    Rows with an unknown type or fewer than 6 fields are skipped; a blank or
    malformed join date fails the whole load.
    """
    path = Path(path)
    if not path.exists():
        return []

    members: list[Member] = []
    # data rows start on line 2
    for line_no, (row, field_count) in enumerate(_read_rows(path, MEMBER_COLUMNS), start=2):
        member = _member_from_row(row, field_count, line_no)
        if member is not None:
            members.append(member)
    logger.info("Loaded %d members from %s", len(members), path)
    return members


def _member_to_row(m: Member) -> list[str]:
    sessions = fee_per_session = spa_access = premium_fee = ""
    if isinstance(m.plan, PersonalTrainingPlan):
        sessions = str(m.plan.sessions_per_month)
        fee_per_session = _fmt_money(m.plan.fee_per_session)
    elif isinstance(m.plan, PremiumPlan):
        spa_access = _fmt_bool(m.plan.spa_access)
        premium_fee = _fmt_money(m.plan.premium_service_fee)

    return [
        m.member_id,
        m.kind,
        m.first_name,
        m.last_name,
        str(m.age),
        m.join_date.isoformat(),
        _fmt_money(m.base_fee),
        sessions,
        fee_per_session,
        spa_access,
        premium_fee,
    ]


def save_members(members: Iterable[Member], path) -> Path:
    path = Path(path)
    rows = [_member_to_row(m) for m in members]
    _write_rows(path, MEMBER_COLUMNS, rows)
    logger.info("Saved %d members to %s", len(rows), path)
    return path


# ---------- Performances ----------

def _month_or_current(text: str) -> YearMonth:
    try:
        return YearMonth.parse(text)
    except ValueError:
        return YearMonth.current()


def load_performances(path) -> list[Performance]:
    """
    Load performance entries from `path`. A missing file yields an empty list.
    Rows with fewer than 4 fields are skipped; a bad month becomes the current
    one and a blank or bad rating becomes 3.
    """
    path = Path(path)
    if not path.exists():
        return []

    performances: list[Performance] = []
    for line_no, (row, field_count) in enumerate(_read_rows(path, PERFORMANCE_COLUMNS), start=2):
        member_id, month, achieved, rating, notes = row
        if field_count < 4:
            logger.warning("Skipping performance row %d: fewer than 4 fields", line_no)
            continue
        performances.append(
            Performance(
                member_id,
                _month_or_current(month),
                _to_bool(achieved),
                _to_int(rating, DEFAULT_RATING),
                notes,
            )
        )
    logger.info("Loaded %d performance entries from %s", len(performances), path)
    return performances


def save_performances(performances: Iterable[Performance], path) -> Path:
    path = Path(path)
    rows = [
        [p.member_id, str(p.month), _fmt_bool(p.goal_achieved), str(p.rating), p.notes]
        for p in performances
    ]
    _write_rows(path, PERFORMANCE_COLUMNS, rows)
    logger.info("Saved %d performance entries to %s", len(rows), path)
    return path


def save_member_performances(members: Iterable[Member], path) -> Path:
    return save_performances([p for m in members for p in m.performance_history], path)


# ---------- Merge / archive ----------

def attach_performances_to_members(
    members: Iterable[Member], performances: Iterable[Performance]
) -> int:
    """
    Upsert each performance into the member with the same id.
    Entries for unknown members are dropped. Returns how many were attached.
    """
    by_id: dict[str, Member] = {}
    for m in members:
        by_id.setdefault(m.member_id, m)

    attached = 0
    dropped = 0
    for p in performances:
        member = by_id.get(p.member_id)
        if member is not None and member.add_or_replace_performance(p):
            attached += 1
        else:
            dropped += 1
    if dropped:
        logger.info("Dropped %d performance entries with no matching member", dropped)
    return attached


def _now_stamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def archive_snapshot(members: Iterable[Member], directory=ARCHIVE_DIR) -> tuple[Path, Path]:
    """Write members and their histories to new timestamped files in `directory`."""
    members = list(members)
    directory = Path(directory)
    stamp = _now_stamp()
    members_path = save_members(members, directory / f"members_{stamp}.csv")
    perf_path = save_member_performances(members, directory / f"performances_{stamp}.csv")
    return members_path, perf_path
