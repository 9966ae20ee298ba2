"""
CSV export of completed sessions in the layout the importer reads.
"""
import csv
import io
import logging
from typing import Iterable, List, Tuple

from pydantic import BaseModel

from ..models.session import SessionRecord, SessionStatus

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Date", "Format", "Variant", "Stakes", "Location", "Buy-in ($)", "Cash-out ($)",
    "Profit/Loss ($)", "Duration (hours)", "Hourly Rate ($/hr)", "Notes",
]
CSV_HEADER = ",".join(CSV_COLUMNS)

EXPORT_DATE_FORMAT = "%m/%d/%Y"


class ExportResult(BaseModel):
    csv_text: str
    total_rows: int = 0
    cash_count: int = 0
    tournament_count: int = 0


def _format_float(value) -> str:
    return f"{value:.2f}" if value is not None else ""


def _export_row(record: SessionRecord) -> List[str]:
    date = record.start_time or record.created_at
    duration = record.duration_seconds
    hours = duration / 3600 if duration is not None else None

    if record.is_cash:
        cash_out = record.cash_out or 0
        fields = [
            "Cash",
            record.game_type.raw_value,
            record.stakes,
            record.venue_name or "",
            str(record.buy_in_total),
            str(cash_out),
            str(cash_out - record.buy_in_total),
            _format_float(hours),
            _format_float(record.hourly_rate),
            record.notes or "",
        ]
    else:
        payout = record.payout or 0
        profit = (payout + record.bounties_collected * record.bounty_amount
                  - record.total_investment)
        fields = [
            "Tournament",
            record.game_type.raw_value,
            "",
            record.venue_name or "",
            str(record.total_investment),
            str(payout),
            str(profit),
            _format_float(hours),
            _format_float(record.hourly_rate),
            record.name,
        ]
    return [date.strftime(EXPORT_DATE_FORMAT)] + fields


def export_csv(records: Iterable[SessionRecord]) -> ExportResult:
    """Export completed sessions, oldest first.

    Fields holding a comma, quote or line break are quoted by csv.writer,
    which the importer's line splitter reads back.
    """
    rows: List[Tuple[object, List[str]]] = []
    cash_count = 0
    tournament_count = 0

    for record in records:
        if record.status != SessionStatus.COMPLETED:
            continue
        rows.append((record.start_time or record.created_at, _export_row(record)))
        if record.is_cash:
            cash_count += 1
        else:
            tournament_count += 1

    rows.sort(key=lambda row: row[0])

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    writer.writerows(fields for _, fields in rows)
    csv_text = buffer.getvalue().rstrip("\n")

    logger.info("Exported %d sessions (%d cash, %d tournaments)",
                len(rows), cash_count, tournament_count)

    return ExportResult(
        csv_text=csv_text,
        total_rows=len(rows),
        cash_count=cash_count,
        tournament_count=tournament_count,
    )
