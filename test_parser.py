#!/usr/bin/env python3
"""
Test script for the CSV import parser.
"""
from datetime import datetime, timedelta

import pytest

from stacktracker.core.persistence import InMemorySessionStore
from stacktracker.models import BuiltinGameType, SessionKind, SessionStatus
from stacktracker.parsers.csv_import import (
    ImportParser,
    map_variant,
    parse_currency,
    parse_date,
    split_csv_line,
)

HEADER = ("Date,Format,Variant,Stakes,Location,Buy-in ($),Cash-out ($),"
          "Profit/Loss ($),Duration (hours),Hourly Rate ($/hr),Notes")


def test_split_csv_line():
    """Test quote-aware splitting."""
    print("=== Testing CSV Line Splitting ===")

    assert split_csv_line("a,b,c") == ["a", "b", "c"]
    assert split_csv_line('a,"b,c",d') == ["a", "b,c", "d"]
    assert split_csv_line('"say ""hi""",x') == ['say "hi"', "x"]
    assert split_csv_line("a,,") == ["a", "", ""]
    assert split_csv_line("") == [""]


def test_parse_currency():
    assert parse_currency("$100") == 100
    assert parse_currency(" $1,250 ") == 1250
    assert parse_currency("(50)") == -50
    assert parse_currency("$(75)") == -75
    assert parse_currency("99.75") == 99
    assert parse_currency("") is None
    assert parse_currency("N/A") is None


def test_parse_date_formats():
    assert parse_date("03/01/2026") == datetime(2026, 3, 1)
    assert parse_date("2026-03-01") == datetime(2026, 3, 1)
    assert parse_date("3/1/26") == datetime(2026, 3, 1)
    assert parse_date("03-01-2026") == datetime(2026, 3, 1)
    assert parse_date("yesterday") is None


def test_map_variant():
    assert map_variant("PLO") is BuiltinGameType.PLO
    assert map_variant("omaha hi-lo") is BuiltinGameType.PLO
    assert map_variant("Mixed Games") is BuiltinGameType.MIXED
    assert map_variant("Razz") is BuiltinGameType.NLH
    assert map_variant("") is BuiltinGameType.NLH


def test_bad_row_is_skipped_and_batch_continues():
    """One malformed buy-in skips its row only, reported with its row number."""
    print("=== Testing Skipped Rows ===")

    text = "\n".join([
        HEADER,
        "03/01/2026,Cash,NLH,1/2,Lodge,200,150,-50,3,-16.67,",
        "03/02/2026,Cash,NLH,1/2,Lodge,N/A,300,,2,,",
        "03/03/2026,Cash,NLH,1/3,Lodge,300,450,150,4,37.50,good night",
    ])
    result = ImportParser().parse(text)
    report = result.report

    assert report.cash_sessions_created == 2
    assert report.tournaments_created == 0
    assert report.rows_skipped == 1
    assert len(report.warnings) == 1
    assert "Row 3" in report.warnings[0]
    assert "invalid buy-in" in report.warnings[0]

    first, second = result.records
    assert first.buy_in_total == 200 and first.cash_out == 150
    assert second.buy_in_total == 300 and second.cash_out == 450
    assert second.notes == "good night"
    assert first.notes is None


def test_huge_duration_skips_only_its_row():
    text = "\n".join([
        HEADER,
        "03/01/2026,Cash,NLH,1/2,Lodge,200,150,,3,,",
        "03/02/2026,Cash,NLH,1/2,Lodge,200,300,,99999999,,",
        "03/03/2026,Cash,NLH,1/2,Lodge,300,450,,4,,",
    ])
    result = ImportParser().parse(text)
    report = result.report

    assert report.cash_sessions_created == 2
    assert report.rows_skipped == 1
    assert report.warnings == ["Row 3: duration '99999999' out of range, skipping"]
    assert [r.buy_in_total for r in result.records] == [200, 300]


def test_tournament_row():
    text = HEADER + "\n03/01/2026,Tournament,PLO,,Casino,$100,,,,,\n"
    result = ImportParser().parse(text)

    assert result.report.tournaments_created == 1
    record = result.records[0]
    assert record.kind == SessionKind.TOURNAMENT
    assert record.buy_in == 100
    assert record.game_type is BuiltinGameType.PLO
    assert record.name == "Pot Limit Omaha"
    assert record.payout is None
    assert record.profit is None
    assert record.end_time is None


def test_imported_records_are_completed():
    text = HEADER + "\n2026-03-01,Live Cash,Omaha,2/5,\"Bellagio, Vegas\",500,820,,2.5,,\n"
    record = ImportParser().parse(text).records[0]

    assert record.status == SessionStatus.COMPLETED
    assert record.is_imported
    assert record.kind == SessionKind.CASH
    assert record.venue_name == "Bellagio, Vegas"
    assert record.start_time == datetime(2026, 3, 1)
    assert record.end_time == datetime(2026, 3, 1) + timedelta(hours=2.5)
    assert record.profit == 320


def test_row_warnings():
    text = "\n".join([
        HEADER,
        "03/01/2026,Cash,NLH,1/2",
        "someday,Cash,NLH,1/2,Lodge,200,150,,3,,",
        "03/01/2026,Cash,NLH,1/2,Lodge,0,150,,3,,",
        "",
        "03/04/2026,Cash,NLH,1/2,Lodge,(200),150,,3,,",
    ])
    report = ImportParser().parse(text).report

    assert report.rows_skipped == 4
    assert report.records_created == 0
    assert report.warnings[0] == "Row 2: not enough columns (4), skipping"
    assert report.warnings[1] == "Row 3: could not parse date 'someday', skipping"
    assert report.warnings[2] == "Row 4: invalid buy-in '0', skipping"
    # Blank lines are dropped before rows are numbered
    assert report.warnings[3].startswith("Row 5:")


def test_iter_rows_can_stop_early():
    text = "\n".join([HEADER] + ["03/01/2026,Cash,NLH,1/2,Lodge,200,150,,3,,"] * 5)
    outcomes = []
    for outcome in ImportParser().iter_rows(text):
        outcomes.append(outcome)
        if len(outcomes) == 2:
            break
    assert [o.row_number for o in outcomes] == [2, 3]
    assert not outcomes[0].skipped


def test_empty_input():
    for text in ("", HEADER, "\n\n" + HEADER + "\n\n"):
        result = ImportParser().parse(text)
        assert result.records == []
        assert result.report.warnings == ["File is empty or has no data rows"]


def test_import_text_saves_once():
    print("=== Testing Import Into Store ===")

    store = InMemorySessionStore()
    text = "\n".join([
        HEADER,
        "03/01/2026,Cash,NLH,1/2,Lodge,200,150,,3,,",
        "03/02/2026,Tournament,NLH,,Lodge,120,0,,5,,Friday Turbo",
    ])
    report = ImportParser().import_text(text, store)

    assert report.cash_sessions_created == 1
    assert report.tournaments_created == 1
    assert len(store.all()) == 2
    assert store.save_count == 1
    tournament = [r for r in store.all() if r.is_tournament][0]
    assert tournament.name == "Friday Turbo"


def test_import_file(tmp_path):
    csv_file = tmp_path / "sessions.csv"
    csv_file.write_text(HEADER + "\n03/01/2026,Cash,NLH,1/2,Lodge,200,150,,3,,\n", encoding='utf-8')

    store = InMemorySessionStore()
    report = ImportParser().import_file(csv_file, store)
    assert report.cash_sessions_created == 1

    missing = ImportParser().import_file(tmp_path / "missing.csv", store)
    assert missing.warnings == ["Could not read file"]
    assert missing.records_created == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
