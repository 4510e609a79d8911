"""Tests for layered config parsing and validation."""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from MetaSearch.config import merge_config_dicts, parse_config_dict, parse_yaml


def _base_raw_config() -> dict:
    return {
        "log": {"level": "info", "to_file": False, "dir": "log"},
        "query": {"default_page_size": 10, "max_page_size": 2000, "default_result_format": None},
        "facets": {"base_url": "http://localhost:3003/collections.json", "size": 50},
    }


class TestConfigLayering(unittest.TestCase):
    def test_parse_success_nested_access(self) -> None:
        cfg = parse_config_dict(_base_raw_config())
        self.assertEqual(cfg.runtime.level, "INFO")
        self.assertEqual(cfg.query.max_page_size, 2000)
        self.assertIsNone(cfg.query.default_result_format)
        self.assertEqual(cfg.facets.size, 50)

    def test_query_section_is_optional(self) -> None:
        raw = _base_raw_config()
        del raw["query"]
        cfg = parse_config_dict(raw)
        self.assertEqual(cfg.query.default_page_size, 10)

    def test_missing_facets_section(self) -> None:
        raw = _base_raw_config()
        del raw["facets"]
        with self.assertRaisesRegex(ValueError, "facets"):
            parse_config_dict(raw)

    def test_invalid_log_level(self) -> None:
        raw = _base_raw_config()
        raw["log"]["level"] = "LOUD"
        with self.assertRaisesRegex(ValueError, "log\\.level"):
            parse_config_dict(raw)

    def test_base_url_with_query_string(self) -> None:
        raw = _base_raw_config()
        raw["facets"]["base_url"] = "http://localhost/collections.json?page_size=1"
        with self.assertRaisesRegex(ValueError, "facets\\.base_url"):
            parse_config_dict(raw)

    def test_type_errors_contain_key(self) -> None:
        raw = _base_raw_config()
        raw["query"]["max_page_size"] = "2000"
        with self.assertRaisesRegex(TypeError, "query\\.max_page_size"):
            parse_config_dict(raw)

    def test_page_size_bounds(self) -> None:
        raw = _base_raw_config()
        raw["query"]["default_page_size"] = 3000
        with self.assertRaisesRegex(ValueError, "query\\.default_page_size"):
            parse_config_dict(raw)

    def test_unknown_result_format(self) -> None:
        raw = _base_raw_config()
        raw["query"]["default_result_format"] = "html"
        with self.assertRaisesRegex(ValueError, "query\\.default_result_format"):
            parse_config_dict(raw)

    def test_merge_config_dicts(self) -> None:
        merged = merge_config_dicts(_base_raw_config(), {"log": {"level": "DEBUG"}, "facets": {"size": 5}})
        self.assertEqual({"level": "DEBUG", "to_file": False, "dir": "log"}, merged["log"])
        self.assertEqual(5, merged["facets"]["size"])
        self.assertEqual("http://localhost:3003/collections.json", merged["facets"]["base_url"])

    def test_parse_yaml_requires_mapping(self) -> None:
        self.assertEqual({}, parse_yaml(""))
        with self.assertRaises(ValueError):
            parse_yaml("- a\n- b\n")


if __name__ == "__main__":
    unittest.main()
