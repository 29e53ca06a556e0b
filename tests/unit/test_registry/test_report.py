# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for JSON/Markdown reports and the summary table."""
from __future__ import annotations

import json

import pytest
from rich.console import Console

from winregkit.registry.model import Action, EntryOutcome, ReconciliationResult, RegistryEntry, ValueType
from winregkit.registry.report import _json_safe, render_summary, write_report


def _result():
    r = ReconciliationResult(check_only=True)
    r.record(EntryOutcome(RegistryEntry("Software\\T", "Blob", b"\x01\x02", ValueType.BINARY), Action.CREATED))
    r.record(EntryOutcome(RegistryEntry("Software\\T", "N", 1, ValueType.DWORD), Action.FAILED, error="PermissionError: x|y"))
    return r


@pytest.mark.unit
class TestReport:
    def test_json_safe(self):
        """Test JSON-safe conversion."""
        assert _json_safe(ValueType.DWORD) == "DWord"
        assert _json_safe(b"\x01\x02") == {"_type": "bytes", "len": 2, "hex": "0102"}
        assert _json_safe(("a", 1)) == ["a", 1]

    def test_write_report_json_and_markdown(self, tmp_path):
        """Test JSON and Markdown reports are written."""
        json_path, md_path = write_report(tmp_path / "report.json", _result(), command="check")
        assert md_path == tmp_path / "report.md"

        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["run"]["command"] == "check"
        assert data["result"]["counts"]["created"] == 1
        assert data["result"]["has_correct_values"] is False
        assert data["result"]["created"][0]["entry"]["Value"]["hex"] == "0102"

        md = md_path.read_text(encoding="utf-8")
        assert "# winregkit Report" in md
        assert "## Failed (1)" in md
        assert "PermissionError: x/y" in md

    def test_base_without_suffix(self, tmp_path):
        """Test a report base without a suffix."""
        json_path, md_path = write_report(tmp_path / "rep", _result())
        assert json_path.name == "rep.json" and md_path.name == "rep.md"

    def test_render_summary(self):
        """Test the rich summary table."""
        console = Console(record=True, width=120)
        table = render_summary(_result(), console)
        out = console.export_text()
        assert table.row_count == 4
        assert "created" in out and "failed" in out
