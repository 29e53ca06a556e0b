# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/report.py
"""
Result reports: JSON + Markdown files and a rich summary table.
"""
from __future__ import annotations

import datetime as _dt
import getpass
import platform
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from rich.console import Console
from rich.table import Table

from .. import __version__
from ..core.file_ops import atomic_write_text
from ..core.logging_utils import LoggerLike, safe_logger
from ..core.utils import U

_BUCKET_STYLE = {
    "created": "green",
    "updated": "yellow",
    "unchanged": "dim",
    "removed": "green",
    "skipped": "yellow",
    "present": "green",
    "missing": "yellow",
    "mismatched": "yellow",
    "failed": "bold red",
}


def _json_safe(obj: Any) -> Any:
    """
    Convert Paths, Enums, dataclasses, datetimes and bytes into JSON-safe
    values. Registry binary data is small, so bytes are kept whole as hex.
    """
    if obj is None:
        return None
    if isinstance(obj, (str, int, float, bool)) and not hasattr(obj, "value"):
        return obj
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (_dt.datetime, _dt.date)):
        return obj.isoformat()
    if isinstance(obj, (bytes, bytearray)):
        b = bytes(obj)
        return {"_type": "bytes", "len": len(b), "hex": b.hex()}
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return _json_safe(to_dict())
    if is_dataclass(obj) and not isinstance(obj, type):
        return _json_safe(asdict(obj))
    # Enums (str-mixins included) report their value.
    v = getattr(obj, "value", None)
    if v is not None and not isinstance(obj, (dict, list, tuple, set)):
        return _json_safe(v)
    if isinstance(obj, dict):
        return {str(k): _json_safe(v2) for k, v2 in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_json_safe(x) for x in obj]
    return str(obj)


def _json_sidecar_path(base: Path) -> Path:
    """
    report.json -> report.json ; report.md -> report.json ; report -> report.json
    """
    if base.suffix.lower() == ".json":
        return base
    if base.suffix:
        return base.with_suffix(".json")
    return Path(str(base) + ".json")


def _markdown_path_for_base(base: Path) -> Path:
    if base.suffix.lower() == ".json":
        return base.with_suffix(".md")
    if base.suffix:
        return base
    return Path(str(base) + ".md")


def _build_run_meta(command: Optional[str]) -> Dict[str, Any]:
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = None
    return {
        "tool": "winregkit",
        "version": __version__,
        "command": command,
        "timestamp": _dt.datetime.now().astimezone().isoformat(timespec="seconds"),
        "host": platform.node(),
        "platform": platform.platform(),
        "user": user,
    }


def _buckets(payload: Dict[str, Any]) -> List[Tuple[str, List[Dict[str, Any]]]]:
    counts = payload.get("counts") or {}
    return [(b, payload.get(b) or []) for b in counts]


def build_report(result: Any, *, command: Optional[str] = None) -> Dict[str, Any]:
    return {"run": _build_run_meta(command), "result": _json_safe(result)}


def _build_markdown(report: Dict[str, Any]) -> str:
    run = report["run"]
    res = report["result"]
    md: List[str] = []
    md.append("# winregkit Report")
    md.append("")
    md.append(f"- Command: `{run.get('command') or '-'}`")
    md.append(f"- Result: `{res.get('kind')}`")
    for key, label in (
        ("check_only", "Check only"),
        ("total_entries", "Entries"),
        ("all_entries_processed", "All entries processed"),
        ("has_correct_values", "Has correct values"),
        ("pattern", "Pattern"),
    ):
        if key in res:
            md.append(f"- {label}: `{res[key]}`")
    md.append(f"- Host: `{run.get('host')}` at `{run.get('timestamp')}`")
    md.append("")

    matches = res.get("matches")
    if matches is not None:
        md.append(f"## Matches ({len(matches)})")
        md.append("")
        md.append("| Name | Version | Publisher | Quiet command |")
        md.append("|---|---|---|---|")
        for m in matches:
            md.append(
                f"| {m.get('display_name', '')} | {m.get('display_version', '')} "
                f"| {m.get('publisher', '')} | `{m.get('quiet_command', '')}` |"
            )
        md.append("")

    for bucket, outcomes in _buckets(res):
        md.append(f"## {bucket.capitalize()} ({len(outcomes)})")
        md.append("")
        if not outcomes:
            md.append("_none_")
            md.append("")
            continue
        md.append("| Hive | Path | Name | Type | Detail |")
        md.append("|---|---|---|---|---|")
        for o in outcomes:
            e = o.get("entry") or {}
            detail = o.get("error") or o.get("message") or ""
            md.append(
                f"| {e.get('Hive', '')} | `{e.get('Path', '')}` | `{e.get('Name') or '(Default)'}` "
                f"| {e.get('Type', '')} | {detail.replace('|', '/')} |"
            )
        md.append("")

    md.append("## Run Metadata")
    md.append("```json")
    md.append(U.json_dump(run))
    md.append("```")
    md.append("")
    return "\n".join(md)


def write_report(
    path: Union[str, Path],
    result: Any,
    *,
    command: Optional[str] = None,
    logger: Optional[LoggerLike] = None,
) -> Tuple[Path, Path]:
    """
    Write <base>.json and <base>.md atomically; returns both paths.
    """
    log = safe_logger(logger)
    base = Path(path)
    report = build_report(result, command=command)

    json_path = _json_sidecar_path(base)
    md_path = _markdown_path_for_base(base)
    atomic_write_text(json_path, U.json_dump(report) + "\n")
    atomic_write_text(md_path, _build_markdown(report))
    log.info("Report written: %s (+ %s)", json_path, md_path.name)
    return json_path, md_path


def render_summary(result: Any, console: Optional[Console] = None, *, title: Optional[str] = None) -> Table:
    """Print a per-bucket table of a result and return it."""
    payload = _json_safe(result)
    table = Table(title=title or payload.get("kind", "Result"), show_lines=False)
    table.add_column("Bucket", no_wrap=True)
    table.add_column("Count", justify="right")
    table.add_column("Entries", overflow="fold")

    for bucket, outcomes in _buckets(payload):
        labels = []
        for o in outcomes[:5]:
            e = o.get("entry") or {}
            labels.append(f"{e.get('Path', '')}\\{e.get('Name') or '(Default)'}")
        if len(outcomes) > 5:
            labels.append(f"... +{len(outcomes) - 5} more")
        style = _BUCKET_STYLE.get(bucket, "")
        table.add_row(f"[{style}]{bucket}[/]" if style else bucket, str(len(outcomes)), "\n".join(labels))

    (console or Console(stderr=True)).print(table)
    return table


__all__ = ["build_report", "render_summary", "write_report"]
