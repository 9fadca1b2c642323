"""Tests for display helpers."""

from rich.console import Console

from npmrm import display
from npmrm.display import format_bytes, project_name, report_payload
from npmrm.models import DeletionOutcome, DeletionSummary, ScanReport, SizeResult


class TestFormatBytes:
    def test_zero(self):
        assert format_bytes(0) == "0 B"

    def test_bytes(self):
        assert format_bytes(500) == "500 B"
        assert format_bytes(1023) == "1023 B"

    def test_small_values_keep_one_decimal(self):
        assert format_bytes(1536) == "1.5 KB"
        assert format_bytes(1024**2) == "1.0 MB"

    def test_large_values_are_rounded(self):
        assert format_bytes(10 * 1024) == "10 KB"
        assert format_bytes(250 * 1024**3) == "250 GB"

    def test_terabytes(self):
        assert format_bytes(3 * 1024**4) == "3.0 TB"
        assert format_bytes(5000 * 1024**4) == "5000 TB"

    def test_unknown(self):
        assert format_bytes(None) == "unknown"


def test_project_name():
    assert project_name("/home/me/code/app/node_modules") == "app"


class TestReportPayload:
    def test_payload_fields(self):
        report = ScanReport.from_results(
            "/code",
            [
                SizeResult(path="/code/a/node_modules", size_bytes=2048),
                SizeResult(path="/code/b/node_modules", error="gone"),
            ],
        )

        payload = report_payload(report)

        assert payload["root"] == "/code"
        assert payload["count"] == 2
        assert payload["totalBytes"] == 2048
        assert payload["totalHuman"] == "2.0 KB"
        assert payload["nodeModules"][0] == {
            "path": "/code/a/node_modules",
            "bytes": 2048,
            "human": "2.0 KB",
        }
        assert payload["nodeModules"][1]["bytes"] is None
        assert payload["nodeModules"][1]["error"] == "gone"


class TestShowReport:
    def test_table_and_totals(self, monkeypatch):
        test_console = Console(record=True, width=200)
        monkeypatch.setattr(display, "console", test_console)
        report = ScanReport.from_results(
            "/code", [SizeResult(path="/code/[weird]/node_modules", size_bytes=100)]
        )

        display.show_report(report)

        output = test_console.export_text()
        assert "/code/[weird]/node_modules" in output
        assert "100 B" in output
        assert "Found: 1 node_modules" in output


class TestShowDeletionSummary:
    def test_summary_with_failures(self, monkeypatch):
        out = Console(record=True, width=200)
        errors = Console(record=True, width=200)
        monkeypatch.setattr(display, "err_console", errors)
        summary = DeletionSummary(
            outcomes=[
                DeletionOutcome(path="/a/node_modules", success=True),
                DeletionOutcome(path="/b/node_modules", success=False, error="busy"),
            ]
        )

        display.show_deletion_summary(summary, out=out)

        assert "Done. Removed: 1, Failed: 1" in out.export_text()
        assert "Failed to remove: /b/node_modules busy" in errors.export_text()

    def test_summary_without_failures(self):
        out = Console(record=True, width=200)
        summary = DeletionSummary(outcomes=[DeletionOutcome(path="/a", success=True)])

        display.show_deletion_summary(summary, out=out)

        text = out.export_text()
        assert "Done. Removed: 1" in text
        assert "Failed" not in text
