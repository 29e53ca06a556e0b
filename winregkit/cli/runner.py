# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/cli/runner.py
"""
Dispatch of one CLI operation.

Exit codes:
  0  success / no drift
  1  at least one entry failed
  2  drift found (check, exists, remove --check-only) or no uninstall match
  other codes come from Fatal errors raised during setup
"""
from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from ..core.exceptions import wrap_fatal
from ..core.logger import Log
from ..core.logging_utils import log_step
from ..registry.backend import RegistryBackend, get_backend
from ..registry.model import Hive, RegistryEntry
from ..registry.parser import import_reg_keys_from_file
from ..registry.reconcile import ConfirmFn, RegistryReconciler, as_entries
from ..registry.report import render_summary, write_report
from ..registry.uninstall import find_uninstall_commands
from ..registry.writer import write_reg_file
from .args import wants_write

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_DRIFT = 2


class CommandRunner:
    def __init__(
        self,
        logger: logging.Logger,
        args: argparse.Namespace,
        conf: Optional[Dict[str, Any]] = None,
        *,
        backend: Optional[RegistryBackend] = None,
        console: Optional[Console] = None,
        confirm: Optional[ConfirmFn] = None,
    ):
        self.logger = logger
        self.args = args
        self.conf = conf or {}
        self._backend = backend
        self.console = console or Console(stderr=True)
        self.confirm = confirm

    # -- inputs ------------------------------------------------------------

    def load_entries(self) -> List[RegistryEntry]:
        """Entries from --reg-file followed by any inline `entries:` of the config."""
        entries: List[RegistryEntry] = []
        if self.args.reg_file:
            entries.extend(import_reg_keys_from_file(self.args.reg_file, logger=self.logger))
        inline = self.conf.get("entries") or []
        if inline:
            entries.extend(as_entries(inline))
            self.logger.debug("Added %d inline entries from config", len(inline))
        return entries

    def open_backend(self) -> RegistryBackend:
        if self._backend is not None:
            return self._backend
        a = self.args
        return get_backend(
            a.backend,
            logger=self.logger,
            view=a.view,
            hive_file=a.hive_file,
            hive=Hive.parse(a.hive),
            mount=a.hive_mount,
            write=wants_write(a),
        )

    # -- dispatch ----------------------------------------------------------

    def run(self) -> int:
        cmd = self.args.cmd
        Log.banner(self.logger, f"winregkit {cmd}")
        handler = getattr(self, f"_cmd_{cmd}")
        entries: List[RegistryEntry] = []
        if cmd != "uninstall":
            with log_step(self.logger, "Loading registry entries"):
                entries = self.load_entries()
        with self.open_backend() as backend:
            return handler(backend, entries)

    def _reconciler(self, backend: RegistryBackend) -> RegistryReconciler:
        return RegistryReconciler(backend, logger=self.logger, show_progress=bool(self.args.progress))

    def _finish(self, result: Any) -> None:
        render_summary(result, self.console, title=f"winregkit {self.args.cmd}")
        if self.args.report:
            write_report(self.args.report, result, command=self.args.cmd, logger=self.logger)

    # -- commands ----------------------------------------------------------

    def _cmd_apply(self, backend: RegistryBackend, entries: List[RegistryEntry], *, check_only: Optional[bool] = None) -> int:
        check = bool(self.args.check_only) if check_only is None else check_only
        result = self._reconciler(backend).set_keys(
            entries,
            check_only=check,
            backup_path=None if check else self.args.backup,
        )
        self._finish(result)
        if result.entries_failed:
            return EXIT_FAILURES
        if check and not result.has_correct_values:
            return EXIT_DRIFT
        return EXIT_OK

    def _cmd_check(self, backend: RegistryBackend, entries: List[RegistryEntry]) -> int:
        return self._cmd_apply(backend, entries, check_only=True)

    def _cmd_remove(self, backend: RegistryBackend, entries: List[RegistryEntry]) -> int:
        result = self._reconciler(backend).remove_keys(
            entries,
            force=bool(self.args.force),
            confirm=self.confirm,
            check_only=bool(self.args.check_only),
        )
        self._finish(result)
        if result.entries_failed:
            return EXIT_FAILURES
        if result.check_only and result.entries_removed:
            return EXIT_DRIFT
        return EXIT_OK

    def _cmd_exists(self, backend: RegistryBackend, entries: List[RegistryEntry]) -> int:
        result = self._reconciler(backend).test_keys_exist(entries, compare_values=bool(self.args.compare_values))
        self._finish(result)
        if result.entries_failed:
            return EXIT_FAILURES
        return EXIT_OK if result.all_present else EXIT_DRIFT

    def _cmd_export(self, backend: RegistryBackend, entries: List[RegistryEntry]) -> int:
        current = self._reconciler(backend).snapshot(entries)
        try:
            out = write_reg_file(self.args.output, current)
        except OSError as e:
            raise wrap_fatal(f"Cannot write export {self.args.output}: {e}", e, output=str(self.args.output))
        Log.ok(self.logger, f"Exported {len(current)} of {len(entries)} values to {out}")
        return EXIT_OK

    def _cmd_uninstall(self, backend: RegistryBackend, entries: List[RegistryEntry]) -> int:
        pattern = self.args.pattern
        infos = find_uninstall_commands(backend, pattern, logger=self.logger)

        table = Table(title=f"Uninstall entries matching {pattern!r}")
        table.add_column("Name")
        table.add_column("Version")
        table.add_column("Publisher")
        table.add_column("Quiet command", overflow="fold")
        for info in infos:
            table.add_row(info.display_name, info.display_version, info.publisher, info.quiet_command)
        self.console.print(table)

        if self.args.report:
            payload = {
                "kind": "UninstallSearch",
                "pattern": pattern,
                "total_entries": len(infos),
                "matches": [i.to_dict() for i in infos],
            }
            write_report(self.args.report, payload, command="uninstall", logger=self.logger)
        return EXIT_OK if infos else EXIT_DRIFT
