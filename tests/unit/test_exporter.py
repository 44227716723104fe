import json
from datetime import date, datetime, time, timedelta, timezone

import pytest

from adapters.base import ExportFailedError
from client import exporter


def test_export_json_is_tab_indented():
    payload = exporter.export_json([{"id": 1, "name": "a"}])
    assert payload.startswith(b"[\n\t{\n\t\t\"id\": 1")
    assert json.loads(payload) == [{"id": 1, "name": "a"}]


def test_export_json_serializes_dates():
    stamp = datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)
    assert json.loads(exporter.export_json([{"at": stamp}])) == [{"at": "2024-03-05T14:30:00+00:00"}]


def test_export_csv_writes_header_and_formats_values():
    rows = [
        {"id": 1, "at": datetime(2024, 3, 5, 14, 30), "note": None},
        {"id": 2, "at": datetime(2024, 3, 6, 9, 5, tzinfo=timezone.utc), "note": "x, y"},
    ]
    assert exporter.export_csv(rows) == (
        "id,at,note\n"
        "1,05 Mar 24 14:30 UTC,\n"
        '2,06 Mar 24 09:05 UTC,"x, y"\n'
    )


def test_export_csv_of_empty_table_is_empty():
    assert exporter.export_csv([]) == ""


def test_write_export_file_uses_configured_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("SQLWEB_EXPORT_DIR", str(tmp_path / "out"))
    written = exporter.write_export_file("t.csv", "a,b\n")
    assert written == 4
    assert (tmp_path / "out" / "t.csv").read_text() == "a,b\n"


def test_write_export_file_wraps_os_errors(tmp_path, monkeypatch):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    monkeypatch.setenv("SQLWEB_EXPORT_DIR", str(blocker))
    with pytest.raises(ExportFailedError):
        exporter.write_export_file("t.json", b"{}")


def test_export_csv_formats_dates_times_and_offsets():
    rows = [
        {
            "day": date(2024, 3, 5),
            "clock": time(9, 5),
            "at": datetime(2024, 3, 5, 14, 30, tzinfo=timezone(timedelta(hours=2))),
        }
    ]
    assert exporter.export_csv(rows) == "day,clock,at\n05 Mar 24,09:05,05 Mar 24 14:30 UTC+02:00\n"
