# SPDX-License-Identifier: LGPL-3.0-or-later
from .args import build_parser, parse_args_with_config
from .runner import CommandRunner

__all__ = ["CommandRunner", "build_parser", "parse_args_with_config"]
