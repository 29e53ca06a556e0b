# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Unit tests for YAML/JSON configuration loading and merging.
"""

import argparse
import json
import logging
import tempfile
import unittest
from pathlib import Path

import yaml

from winregkit.core.config_loader import Config, deep_merge
from winregkit.core.exceptions import ConfigError

LOG = logging.getLogger("tests.winregkit.config")


class TestConfigLoad(unittest.TestCase):
    def test_yaml_keys_are_normalized(self):
        """Test dashed YAML keys become underscores."""
        with tempfile.TemporaryDirectory() as td:
            cfg = Path(td) / "c.yaml"
            cfg.write_text(yaml.safe_dump({"reg-file": "a.reg", "check-only": True}), encoding="utf-8")
            conf = Config.load_file(LOG, cfg)
            self.assertEqual(conf, {"reg_file": "a.reg", "check_only": True})

    def test_json_config(self):
        """Test JSON config files load."""
        with tempfile.TemporaryDirectory() as td:
            cfg = Path(td) / "c.json"
            cfg.write_text(json.dumps({"cmd": "apply"}), encoding="utf-8")
            self.assertEqual(Config.load_file(LOG, cfg), {"cmd": "apply"})

    def test_empty_file_is_empty_mapping(self):
        """Test an empty config file loads as an empty mapping."""
        with tempfile.TemporaryDirectory() as td:
            cfg = Path(td) / "c.yaml"
            cfg.write_text("", encoding="utf-8")
            self.assertEqual(Config.load_file(LOG, cfg), {})

    def test_missing_file(self):
        """Test a missing config file is a config error."""
        with self.assertRaises(ConfigError) as cm:
            Config.load_file(LOG, Path("/nonexistent/winregkit.yaml"))
        self.assertEqual(cm.exception.code, 5)

    def test_invalid_yaml(self):
        """Test invalid YAML is a config error."""
        with tempfile.TemporaryDirectory() as td:
            cfg = Path(td) / "c.yaml"
            cfg.write_text("cmd: [unclosed\n", encoding="utf-8")
            with self.assertRaises(ConfigError) as cm:
                Config.load_file(LOG, cfg)
            self.assertIsInstance(cm.exception.cause, yaml.YAMLError)

    def test_root_must_be_mapping(self):
        """Test a non-mapping config root is rejected."""
        with tempfile.TemporaryDirectory() as td:
            cfg = Path(td) / "c.yaml"
            cfg.write_text("- a\n- b\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                Config.load_file(LOG, cfg)


class TestConfigMerge(unittest.TestCase):
    def test_deep_merge(self):
        """Test nested mappings merge recursively."""
        base = {"a": 1, "nested": {"x": 1, "y": 2}}
        over = {"nested": {"y": 3}, "b": 2}
        self.assertEqual(deep_merge(base, over), {"a": 1, "b": 2, "nested": {"x": 1, "y": 3}})
        self.assertEqual(base["nested"]["y"], 2)

    def test_later_files_win_and_globs_expand(self):
        """Test later config files win and globs expand."""
        with tempfile.TemporaryDirectory() as td:
            td = Path(td)
            (td / "10-base.yaml").write_text("cmd: check\nbackend: winreg\n", encoding="utf-8")
            (td / "20-site.yaml").write_text("cmd: apply\n", encoding="utf-8")
            paths = Config.expand_configs(LOG, [str(td / "*.yaml")])
            self.assertEqual([p.name for p in paths], ["10-base.yaml", "20-site.yaml"])
            self.assertEqual(Config.load_many(LOG, paths), {"cmd": "apply", "backend": "winreg"})

    def test_apply_as_defaults_only_known_dests(self):
        """Test only known parser dests become defaults."""
        p = argparse.ArgumentParser()
        p.add_argument("--report", default=None)
        Config.apply_as_defaults(LOG, p, {"report": "r.json", "entries": [1]})
        args = p.parse_args([])
        self.assertEqual(args.report, "r.json")
        self.assertFalse(hasattr(args, "entries"))
        self.assertEqual(p.parse_args(["--report", "cli.json"]).report, "cli.json")


if __name__ == "__main__":
    unittest.main()
