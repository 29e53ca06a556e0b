# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/cli/args.py
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, Optional, Sequence, Tuple

from ..core.config_loader import Config
from ..core.exceptions import ConfigError
from ..core.logger import Log, c
from ..core.utils import U
from ..registry.model import Hive

COMMANDS = ("apply", "check", "remove", "exists", "uninstall", "export")
BACKENDS = ("winreg", "hive", "memory")
_NEEDS_REG_FILE = ("apply", "check", "remove", "exists", "export")
_WRITES = ("apply", "remove")

YAML_EXAMPLE = """\
  # baseline.yaml
  cmd: check
  reg_file: C:/baseline/policies.reg
  report: C:/baseline/out/report.json
  # offline hive:
  # backend: hive
  # hive_file: /mnt/win/Windows/System32/config/SOFTWARE
  # hive_mount: SOFTWARE
  # extra entries on top of the .reg file:
  # entries:
  #   - {Path: 'HKCU\\Software\\Test', Name: Enabled, Value: 1, Type: DWord}
"""


class HelpFormatter(argparse.RawDescriptionHelpFormatter, argparse.ArgumentDefaultsHelpFormatter):
    """Raw epilog plus default values in help."""


def _build_epilog() -> str:
    return (
        c("YAML example:\n", "cyan", ["bold"])
        + c(YAML_EXAMPLE, "cyan")
        + "\n"
        + c("Exit codes:\n", "cyan", ["bold"])
        + "  0 success / no drift, 1 entry failures, 2 drift found (check, exists)\n"
        + "  3 .reg file missing, 4 backend unavailable, 5 config error, 6 invalid entry\n"
    )


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    from .. import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged normalized config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv, -vvv (trace)")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q warnings, -qq errors")
    p.add_argument("--log-file", dest="log_file", default=None, help="Append logs to file (locked per write).")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit NDJSON log records.")


def _add_operation(p: argparse.ArgumentParser) -> None:
    p.add_argument("--cmd", dest="cmd", default=None, choices=COMMANDS, help="Operation (or YAML `cmd:`).")
    p.add_argument("--reg-file", dest="reg_file", default=None, help="Input .reg file.")
    p.add_argument(
        "--check-only",
        dest="check_only",
        action="store_true",
        help="Report what apply/remove would do without writing (check is apply --check-only).",
    )
    p.add_argument("--force", action="store_true", help="Remove without asking for confirmation.")
    p.add_argument("--no-compare", dest="compare_values", action="store_false", help="exists: only test presence.")
    p.add_argument("--pattern", default=None, help="uninstall: DisplayName glob or substring.")
    p.add_argument("--progress", action="store_true", help="Show a progress bar.")


def _add_backend(p: argparse.ArgumentParser) -> None:
    p.add_argument("--backend", default="winreg", choices=BACKENDS, help="Registry to operate on.")
    p.add_argument("--view", default=None, choices=("32", "64"), help="winreg: WOW64 registry view.")
    p.add_argument("--hive-file", dest="hive_file", default=None, help="hive: offline hive file (SOFTWARE, NTUSER.DAT, ...).")
    p.add_argument("--hive-mount", dest="hive_mount", default="", help="hive: key prefix the file is mounted at (e.g. SOFTWARE).")
    p.add_argument("--hive", dest="hive", default="LocalMachine", help="hive: logical hive of the file (LocalMachine|CurrentUser).")


def _add_outputs(p: argparse.ArgumentParser) -> None:
    p.add_argument("--report", default=None, help="Write JSON + Markdown report (base path).")
    p.add_argument("--backup", default=None, help="apply: export current values to this .reg first.")
    p.add_argument("--output", default=None, help="export: destination .reg file.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="winregkit",
        description=c("winregkit: desired-state Windows registry from .reg files", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )
    _add_global_config_logging(p)
    _add_operation(p)
    _add_backend(p)
    _add_outputs(p)
    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    return pre


def _load_merged_config(logger: Any, cfgs: Sequence[str]) -> Dict[str, Any]:
    if not cfgs:
        return {}
    expanded = Config.expand_configs(logger, list(cfgs))
    return Config.load_many(logger, expanded)


def validate_args(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    """Cross-flag checks that argparse cannot express. Raises ConfigError."""
    if not args.cmd:
        raise ConfigError(msg=f"no operation: pass --cmd or set `cmd:` in a config ({', '.join(COMMANDS)})")
    if args.cmd not in COMMANDS:
        raise ConfigError(msg=f"unknown cmd {args.cmd!r}", context={"choices": list(COMMANDS)})
    if args.backend not in BACKENDS:
        raise ConfigError(msg=f"unknown backend {args.backend!r}", context={"choices": list(BACKENDS)})

    inline = conf.get("entries")
    if inline is not None and not isinstance(inline, list):
        raise ConfigError(msg="config `entries` must be a list of mappings")
    if args.cmd in _NEEDS_REG_FILE and not args.reg_file and not inline:
        raise ConfigError(msg=f"{args.cmd} needs --reg-file (or `entries:` in a config)")
    if args.cmd == "uninstall" and not args.pattern:
        raise ConfigError(msg="uninstall needs --pattern")
    if args.cmd == "export" and not args.output:
        raise ConfigError(msg="export needs --output")
    if args.backend == "hive" and not args.hive_file:
        raise ConfigError(msg="--backend hive needs --hive-file")
    try:
        Hive.parse(args.hive)
    except ValueError as e:
        raise ConfigError(msg=f"unknown hive {args.hive!r}", cause=e, context={"choices": [h.value for h in Hive]})


def wants_write(args: argparse.Namespace) -> bool:
    return args.cmd in _WRITES and not args.check_only


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Phase 0: parse only the flags needed to locate config/logging
    Phase 1: load + merge config files
    Phase 2: apply config as parser defaults
    Phase 3: full parse (CLI overrides config)
    Phase 4: validate
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    parser = build_parser()
    args0, _rest = _build_preparser().parse_known_args(argv)

    if logger is None:
        logger = Log.setup(args0.verbose, args0.log_file, quiet=args0.quiet, json_logs=args0.json_logs)

    conf = _load_merged_config(logger, args0.config or [])

    if args0.dump_config:
        print(U.json_dump(conf))
        raise SystemExit(0)

    Config.apply_as_defaults(logger, parser, conf)
    args = parser.parse_args(argv)

    if args.dump_args:
        print(U.json_dump(vars(args)))
        raise SystemExit(0)

    validate_args(args, conf)
    return args, conf, logger
