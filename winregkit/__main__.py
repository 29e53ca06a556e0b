# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/__main__.py
from __future__ import annotations

import sys
import traceback
from typing import Any, Optional, Sequence

from .cli.args import parse_args_with_config
from .cli.runner import CommandRunner
from .core.exceptions import Fatal, format_exception_for_cli


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger: Any, level: str, msg: str) -> None:
    if logger is None:
        _print_stderr(msg)
        return
    fn = getattr(logger, level, None)
    if callable(fn):
        fn(msg)
    else:
        _print_stderr(msg)


def main(argv: Optional[Sequence[str]] = None) -> int:
    logger: Any = None
    verbose = 0

    # Phase 1: parse (Fatal can happen here)
    try:
        args, conf, logger = parse_args_with_config(argv)
        verbose = int(args.verbose or 0)
    except Fatal as e:
        _safe_log(logger, "error", f"💥 {format_exception_for_cli(e, verbose=1)}")
        return e.code
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        return 130

    # Phase 2: run the operation
    try:
        return CommandRunner(logger, args, conf).run()
    except Fatal as e:
        _safe_log(logger, "error", format_exception_for_cli(e, verbose=verbose))
        return e.code
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        return 130
    except Exception as e:
        _safe_log(logger, "error", f"💥 UNHANDLED {type(e).__name__}: {e}")
        _safe_log(logger, "debug", traceback.format_exc())
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
