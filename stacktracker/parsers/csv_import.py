"""
CSV import of historical sessions.

Rows follow the export layout:
Date, Format, Variant, Stakes, Location, Buy-in ($), Cash-out ($),
Profit/Loss ($), Duration (hours), Hourly Rate ($/hr), Notes.

Every row is handled on its own: a malformed row is skipped with a
warning and the rest of the batch carries on. Imported records are
created already completed.
"""
import logging
import math
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator, List, Optional, Union

from pydantic import BaseModel, Field

from ..core.persistence import PersistencePort
from ..models.game_type import BuiltinGameType
from ..models.session import SessionKind, SessionRecord, SessionStatus

logger = logging.getLogger(__name__)

MIN_COLUMNS = 9

DATE_FORMATS = ["%m/%d/%Y", "%Y-%m-%d", "%m/%d/%y", "%m-%d-%Y"]

# Column positions
DATE, FORMAT, VARIANT, STAKES, LOCATION, BUY_IN, CASH_OUT, PROFIT, DURATION, HOURLY, NOTES = range(11)

_CURRENCY_NOISE = re.compile(r"[\s$€£,]")


class ImportReport(BaseModel):
    """Outcome of an import batch."""
    cash_sessions_created: int = 0
    tournaments_created: int = 0
    rows_skipped: int = 0
    warnings: List[str] = Field(default_factory=list)

    @property
    def records_created(self) -> int:
        return self.cash_sessions_created + self.tournaments_created


class ImportResult(BaseModel):
    records: List[SessionRecord] = Field(default_factory=list)
    report: ImportReport = Field(default_factory=ImportReport)


class RowOutcome:
    """Result of parsing one data row: a record or a skip warning."""

    def __init__(self, row_number: int, record: Optional[SessionRecord] = None,
                 warning: Optional[str] = None):
        self.row_number = row_number
        self.record = record
        self.warning = warning

    @property
    def skipped(self) -> bool:
        return self.record is None

    def __repr__(self) -> str:
        if self.skipped:
            return f"RowOutcome(row {self.row_number} skipped: {self.warning})"
        return f"RowOutcome(row {self.row_number} -> {self.record.kind.value})"


def split_csv_line(line: str) -> List[str]:
    """Split one CSV line on commas outside double quotes.

    A doubled quote inside a quoted field is kept as one literal quote.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)
        i += 1
    fields.append(''.join(current))
    return fields


def parse_date(value: str) -> Optional[datetime]:
    """Parse a date with the first matching known format."""
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_currency(value: str) -> Optional[int]:
    """Parse a money cell such as "$1,200", "(50)" or "99.50".

    Parenthesized values are negative; decimals are truncated to whole
    units. Returns None for empty or non-numeric cells.
    """
    cleaned = _CURRENCY_NOISE.sub("", value)
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]
    if not cleaned:
        return None
    try:
        return int(cleaned)
    except ValueError:
        pass
    try:
        return int(float(cleaned))
    except (ValueError, OverflowError):
        return None


def parse_hours(value: str) -> Optional[float]:
    try:
        hours = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(hours) or hours < 0:
        return None
    return hours


def map_variant(value: str) -> BuiltinGameType:
    """Map free-text variants onto the built-in game types."""
    upper = value.strip().upper()
    if "PLO" in upper or "OMAHA" in upper:
        return BuiltinGameType.PLO
    if "MIXED" in upper:
        return BuiltinGameType.MIXED
    return BuiltinGameType.NLH


def is_cash_format(value: str) -> bool:
    return "cash" in value.strip().lower()


class ImportParser:
    """Turns CSV text into completed session records."""

    def iter_rows(self, text: str) -> Generator[RowOutcome, None, None]:
        """Yield one outcome per data row.

        Blank lines are dropped and the first remaining line is the header.
        Row numbers count the header as row 1.
        """
        lines = [line.strip() for line in text.splitlines()]
        lines = [line for line in lines if line]

        for index, line in enumerate(lines[1:]):
            yield self._parse_row(index + 2, split_csv_line(line))

    def parse(self, text: str) -> ImportResult:
        """Parse every row and collect the records and the report."""
        result = ImportResult()
        report = result.report

        if len([line for line in text.splitlines() if line.strip()]) < 2:
            report.warnings.append("File is empty or has no data rows")
            return result

        for outcome in self.iter_rows(text):
            if outcome.skipped:
                report.rows_skipped += 1
                report.warnings.append(outcome.warning)
                logger.debug(outcome.warning)
                continue

            result.records.append(outcome.record)
            if outcome.record.is_cash:
                report.cash_sessions_created += 1
            else:
                report.tournaments_created += 1

        logger.info(
            "Parsed import: %d cash sessions, %d tournaments, %d rows skipped",
            report.cash_sessions_created, report.tournaments_created, report.rows_skipped,
        )
        return result

    def import_text(self, text: str, store: PersistencePort) -> ImportReport:
        """Parse text, insert the records into the store and save once."""
        result = self.parse(text)
        if result.records:
            for record in result.records:
                store.insert(record)
            store.save()
        return result.report

    def import_file(self, path: Union[str, Path], store: PersistencePort) -> ImportReport:
        try:
            text = Path(path).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read import file %s: %s", path, e)
            return ImportReport(warnings=["Could not read file"])
        return self.import_text(text, store)

    def _parse_row(self, row_number: int, columns: List[str]) -> RowOutcome:
        if len(columns) < MIN_COLUMNS:
            return RowOutcome(
                row_number,
                warning=f"Row {row_number}: not enough columns ({len(columns)}), skipping",
            )

        date = parse_date(columns[DATE])
        if date is None:
            return RowOutcome(
                row_number,
                warning=f"Row {row_number}: could not parse date '{columns[DATE]}', skipping",
            )

        buy_in = parse_currency(columns[BUY_IN])
        if buy_in is None or buy_in <= 0:
            return RowOutcome(
                row_number,
                warning=f"Row {row_number}: invalid buy-in '{columns[BUY_IN]}', skipping",
            )

        cash_out = parse_currency(columns[CASH_OUT])
        if cash_out is not None and cash_out < 0:
            cash_out = None
        hours = parse_hours(columns[DURATION])
        end_time = None
        if hours is not None:
            try:
                end_time = date + timedelta(hours=hours)
            except OverflowError:
                return RowOutcome(
                    row_number,
                    warning=f"Row {row_number}: duration '{columns[DURATION]}' out of range, skipping",
                )

        game_type = map_variant(columns[VARIANT])
        stakes = columns[STAKES].strip()
        location = columns[LOCATION].strip() or None
        notes = columns[NOTES].strip() if len(columns) > NOTES else ""

        common = dict(
            status=SessionStatus.COMPLETED,
            is_imported=True,
            created_at=date,
            start_time=date,
            end_time=end_time,
            game_type=game_type,
            venue_name=location,
        )
        if is_cash_format(columns[FORMAT]):
            record = SessionRecord(
                kind=SessionKind.CASH,
                stakes=stakes,
                buy_in_total=buy_in,
                cash_out=cash_out,
                notes=notes or None,
                **common,
            )
        else:
            record = SessionRecord(
                kind=SessionKind.TOURNAMENT,
                name=notes or f"{stakes} {game_type.label}".strip(),
                buy_in=buy_in,
                payout=cash_out,
                **common,
            )
        return RowOutcome(row_number, record=record)
