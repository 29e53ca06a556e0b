# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/reconcile.py
"""
Desired-state reconciliation for registry values.

set_reg_keys      create/update values so the registry matches the entries
remove_reg_keys   delete the values named by the entries
test_reg_key_exists  report which entries are present, missing or different

Each entry is processed on its own: a failure while opening, creating or
writing one key is recorded in the `failed` bucket and the pass continues
with the next entry. Nothing is retried and nothing is rolled back.
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generator, Iterable, List, Mapping, Optional, Union

from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.prompt import Confirm

from ..core.exceptions import InvalidEntryError, wrap_entry_error
from ..core.logger import Log
from ..core.logging_utils import LoggerLike, safe_logger
from .backend import RegistryBackend, WinRegBackend
from .encoding import value_exists, values_equal
from .model import (
    Action,
    EntryOutcome,
    ExistenceResult,
    ReconciliationResult,
    RegistryEntry,
    RemovalResult,
)
from .writer import write_reg_file

EntryLike = Union[RegistryEntry, Mapping[str, Any]]
ConfirmFn = Callable[[RegistryEntry], bool]


def to_entry(item: Any, index: int = 0) -> RegistryEntry:
    """RegistryEntry or Path/Name/Value/Type/Hive mapping -> RegistryEntry. Raises InvalidEntryError."""
    if isinstance(item, RegistryEntry):
        return item
    if not isinstance(item, Mapping):
        raise InvalidEntryError(
            msg=f"registry entry #{index} must be a mapping, not {type(item).__name__}",
            context={"entry": repr(item)},
        )
    try:
        return RegistryEntry.from_mapping(item)
    except (TypeError, ValueError) as e:
        raise InvalidEntryError(msg=f"invalid registry entry #{index}: {e}", cause=e, context={"entry": dict(item)})


def as_entries(items: Iterable[EntryLike]) -> List[RegistryEntry]:
    """Convert all items up front; the first bad one raises InvalidEntryError."""
    return [to_entry(item, i) for i, item in enumerate(items)]


Resolved = Union[RegistryEntry, EntryOutcome]


def _resolve_each(items: Iterable[Any], log: Any) -> List[Resolved]:
    """
    Convert items one by one. An item that cannot be converted becomes a
    Failed outcome in its place so the rest of the batch still runs.
    """
    out: List[Resolved] = []
    for i, item in enumerate(items):
        try:
            out.append(to_entry(item, i))
        except InvalidEntryError as e:
            log.error("Skipping %s", e.msg)
            out.append(EntryOutcome(None, Action.FAILED, error=e.msg, message=f"Failed entry #{i}: {e.msg}", source=item))
    return out


def _describe_error(e: BaseException) -> str:
    return f"{type(e).__name__}: {e}" if str(e) else type(e).__name__


def _failed(entry: RegistryEntry, e: BaseException, log: Any, verb: str) -> EntryOutcome:
    failure = wrap_entry_error(_describe_error(e), e, key=entry.key_path, name=entry.display_name)
    log.error("Failed to %s %s: %s", verb, entry.label, failure.msg)
    log.debug("Failure detail", exc_info=e)
    return EntryOutcome(entry, Action.FAILED, error=failure.msg, message=f"Failed {entry.label}: {failure.msg}")


def prompt_confirm(entry: RegistryEntry) -> bool:
    """Interactive confirmation gate for removals."""
    return Confirm.ask(f"Remove [bold]{entry.label}[/bold]?", default=False)


class RegistryReconciler:
    def __init__(
        self,
        backend: RegistryBackend,
        *,
        logger: Optional[LoggerLike] = None,
        show_progress: bool = False,
    ):
        self.backend = backend
        self.logger = safe_logger(logger)
        self.show_progress = show_progress

    @contextmanager
    def _progress(self, description: str, total: int) -> Generator[Callable[[], None], None, None]:
        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            disable=not self.show_progress,
            transient=True,
        ) as progress:
            task = progress.add_task(description, total=total)
            yield lambda: progress.update(task, advance=1)

    # ------------------------------------------------------------------
    # set
    # ------------------------------------------------------------------

    def set_keys(
        self,
        entries: Iterable[EntryLike],
        *,
        check_only: bool = False,
        backup_path: Optional[Union[str, Path]] = None,
    ) -> ReconciliationResult:
        result = ReconciliationResult(check_only=check_only)
        log = Log.bind(self.logger, op="set", backend=self.backend.name)
        items = _resolve_each(entries, log)

        Log.step(log, f"{'Checking' if check_only else 'Applying'} {len(items)} registry entries")

        if backup_path and not check_only:
            self._backup([i for i in items if isinstance(i, RegistryEntry)], Path(backup_path), result)

        with self._progress("Registry entries", len(items)) as advance:
            for item in items:
                result.record(item if isinstance(item, EntryOutcome) else self._set_one(item, check_only=check_only, log=log))
                advance()

        self._log_summary(
            log,
            result,
            f"created={result.entries_created} updated={result.entries_updated} "
            f"unchanged={result.entries_unchanged} failed={result.entries_failed}",
        )
        return result

    def _set_one(self, entry: RegistryEntry, *, check_only: bool, log: Any) -> EntryOutcome:
        elog = log.bind(hive=entry.hive.value, path=entry.path, name=entry.display_name)
        try:
            if entry.value is None:
                raise ValueError("entry has no desired value")

            with self.backend.key(entry.hive, entry.path) as h:
                key_exists = h is not None
                current = self.backend.get_value(h, entry.name) if key_exists else None

            if not key_exists:
                if check_only:
                    msg = f"Would create key {entry.key_path} and set {entry.display_name}"
                    elog.info(msg)
                    return EntryOutcome(entry, Action.CREATED, message=msg)
                with self.backend.key(entry.hive, entry.path, create=True) as wh:
                    self.backend.set_value(wh, entry.name, entry.value, entry.type)
                msg = f"Created key {entry.key_path} and set {entry.display_name}"
                elog.info(msg)
                return EntryOutcome(entry, Action.CREATED, applied=True, message=msg)

            if current is None or not value_exists(current[0]):
                if check_only:
                    msg = f"Would create value {entry.label}"
                    elog.info(msg)
                    return EntryOutcome(entry, Action.CREATED, message=msg)
                with self.backend.key(entry.hive, entry.path, write=True) as wh:
                    self.backend.set_value(wh, entry.name, entry.value, entry.type)
                msg = f"Created value {entry.label}"
                elog.info(msg)
                return EntryOutcome(entry, Action.CREATED, applied=True, message=msg)

            cur_value, cur_type = current
            if cur_type is entry.type and values_equal(entry.type, cur_value, entry.value):
                msg = f"Unchanged {entry.label}"
                elog.debug(msg)
                return EntryOutcome(entry, Action.UNCHANGED, previous=cur_value, message=msg)

            if check_only:
                msg = f"Would update {entry.label}: {cur_value!r} -> {entry.value!r}"
                elog.info(msg)
                return EntryOutcome(entry, Action.UPDATED, previous=cur_value, message=msg)

            with self.backend.key(entry.hive, entry.path, write=True) as wh:
                self.backend.set_value(wh, entry.name, entry.value, entry.type)
            msg = f"Updated {entry.label}: {cur_value!r} -> {entry.value!r}"
            elog.info(msg)
            return EntryOutcome(entry, Action.UPDATED, applied=True, previous=cur_value, message=msg)

        except Exception as e:
            return _failed(entry, e, elog, "set")

    def snapshot(self, entries: Iterable[EntryLike]) -> List[RegistryEntry]:
        """Current (value, type) of every entry that exists, as entries."""
        saved: List[RegistryEntry] = []
        for entry in as_entries(entries):
            try:
                with self.backend.key(entry.hive, entry.path) as h:
                    current = self.backend.get_value(h, entry.name) if h is not None else None
            except (OSError, ValueError) as e:
                self.logger.warning("Cannot read %s: %s", entry.label, e)
                continue
            if current is None:
                continue
            saved.append(RegistryEntry(path=entry.path, name=entry.name, value=current[0], type=current[1], hive=entry.hive))
        return saved

    def _backup(self, items: List[RegistryEntry], path: Path, result: ReconciliationResult) -> None:
        """Export the current state of every value about to be touched."""
        saved = self.snapshot(items)
        try:
            write_reg_file(path, saved)
        except OSError as e:
            Log.warn(self.logger, f"Backup to {path} failed: {e}")
            result.messages.append(f"Backup failed: {e}")
            return
        self.logger.info("Backed up %d existing values to %s", len(saved), path)
        result.messages.append(f"Backup written to {path} ({len(saved)} values)")

    # ------------------------------------------------------------------
    # remove
    # ------------------------------------------------------------------

    def remove_keys(
        self,
        entries: Iterable[EntryLike],
        *,
        force: bool = False,
        confirm: Optional[ConfirmFn] = None,
        check_only: bool = False,
    ) -> RemovalResult:
        """
        Delete the value each entry names. Without `force`, every deletion
        goes through `confirm` (default: an interactive prompt).
        """
        result = RemovalResult(check_only=check_only)
        log = Log.bind(self.logger, op="remove", backend=self.backend.name)
        items = _resolve_each(entries, log)
        gate = confirm or prompt_confirm

        Log.step(log, f"Removing {len(items)} registry values{' (check only)' if check_only else ''}")

        with self._progress("Registry removals", len(items)) as advance:
            for item in items:
                if isinstance(item, EntryOutcome):
                    result.record(item)
                else:
                    result.record(self._remove_one(item, force=force, gate=gate, check_only=check_only, log=log))
                advance()

        self._log_summary(
            log,
            result,
            f"removed={result.entries_removed} unchanged={result.entries_unchanged} "
            f"skipped={result.entries_skipped} failed={result.entries_failed}",
        )
        return result

    def _remove_one(self, entry: RegistryEntry, *, force: bool, gate: ConfirmFn, check_only: bool, log: Any) -> EntryOutcome:
        elog = log.bind(hive=entry.hive.value, path=entry.path, name=entry.display_name)
        try:
            with self.backend.key(entry.hive, entry.path, write=not check_only) as h:
                if h is None:
                    msg = f"Key not found, nothing to remove: {entry.key_path}"
                    elog.debug(msg)
                    return EntryOutcome(entry, Action.UNCHANGED, message=msg)

                current = self.backend.get_value(h, entry.name)
                if current is None:
                    msg = f"Value not present, nothing to remove: {entry.label}"
                    elog.debug(msg)
                    return EntryOutcome(entry, Action.UNCHANGED, message=msg)

                if check_only:
                    msg = f"Would remove {entry.label}"
                    elog.info(msg)
                    return EntryOutcome(entry, Action.REMOVED, previous=current[0], message=msg)

                if not force and not gate(entry):
                    msg = f"Removal declined: {entry.label}"
                    elog.info(msg)
                    return EntryOutcome(entry, Action.SKIPPED, previous=current[0], message=msg)

                self.backend.delete_value(h, entry.name)

            msg = f"Removed {entry.label}"
            elog.info(msg)
            return EntryOutcome(entry, Action.REMOVED, applied=True, previous=current[0], message=msg)

        except Exception as e:
            return _failed(entry, e, elog, "remove")

    # ------------------------------------------------------------------
    # exists
    # ------------------------------------------------------------------

    def test_keys_exist(self, entries: Iterable[EntryLike], *, compare_values: bool = True) -> ExistenceResult:
        result = ExistenceResult(check_only=True)
        log = Log.bind(self.logger, op="exists", backend=self.backend.name)

        for item in _resolve_each(entries, log):
            result.record(item if isinstance(item, EntryOutcome) else self._exists_one(item, compare_values=compare_values, log=log))

        self._log_summary(
            log,
            result,
            f"present={result.count('present')} missing={result.count('missing')} "
            f"mismatched={result.count('mismatched')} failed={result.entries_failed}",
        )
        return result

    def _exists_one(self, entry: RegistryEntry, *, compare_values: bool, log: Any) -> EntryOutcome:
        elog = log.bind(hive=entry.hive.value, path=entry.path, name=entry.display_name)
        try:
            with self.backend.key(entry.hive, entry.path) as h:
                if h is None:
                    return EntryOutcome(entry, Action.MISSING, message=f"Key missing: {entry.key_path}")
                current = self.backend.get_value(h, entry.name)
        except Exception as e:
            return _failed(entry, e, elog, "read")

        if current is None or not value_exists(current[0]):
            return EntryOutcome(entry, Action.MISSING, message=f"Value missing: {entry.label}")

        cur_value, cur_type = current
        if compare_values and entry.value is not None:
            if cur_type is not entry.type or not values_equal(entry.type, cur_value, entry.value):
                msg = f"Value differs: {entry.label}: {cur_value!r} != {entry.value!r}"
                elog.debug(msg)
                return EntryOutcome(entry, Action.MISMATCHED, previous=cur_value, message=msg)
        return EntryOutcome(entry, Action.PRESENT, previous=cur_value, message=f"Present: {entry.label}")

    # ------------------------------------------------------------------

    @staticmethod
    def _log_summary(log: Any, result: Any, counts: str) -> None:
        if result.all_entries_processed:
            Log.ok(log, f"Done: {counts}")
        else:
            Log.warn(log, f"Done with failures: {counts}")


# ---------------------------------------------------------------------------
# Functional API
# ---------------------------------------------------------------------------


def _reconciler(backend: Optional[RegistryBackend], logger: Optional[LoggerLike], show_progress: bool) -> RegistryReconciler:
    log = safe_logger(logger)
    return RegistryReconciler(backend or WinRegBackend(log), logger=log, show_progress=show_progress)


def set_reg_keys(
    entries: Iterable[EntryLike],
    check_only: bool = False,
    *,
    backend: Optional[RegistryBackend] = None,
    logger: Optional[LoggerLike] = None,
    show_progress: bool = False,
    backup_path: Optional[Union[str, Path]] = None,
) -> ReconciliationResult:
    return _reconciler(backend, logger, show_progress).set_keys(entries, check_only=check_only, backup_path=backup_path)


def remove_reg_keys(
    entries: Iterable[EntryLike],
    *,
    force: bool = False,
    confirm: Optional[ConfirmFn] = None,
    check_only: bool = False,
    backend: Optional[RegistryBackend] = None,
    logger: Optional[LoggerLike] = None,
    show_progress: bool = False,
) -> RemovalResult:
    return _reconciler(backend, logger, show_progress).remove_keys(entries, force=force, confirm=confirm, check_only=check_only)


def test_reg_key_exists(
    entries: Iterable[EntryLike],
    *,
    compare_values: bool = True,
    backend: Optional[RegistryBackend] = None,
    logger: Optional[LoggerLike] = None,
) -> ExistenceResult:
    return _reconciler(backend, logger, False).test_keys_exist(entries, compare_values=compare_values)


# pytest would otherwise collect the public test_* helper when imported into a test module.
test_reg_key_exists.__test__ = False  # type: ignore[attr-defined]
