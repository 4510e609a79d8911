"""Tests for the click command line interface."""

import json
import sys
import unittest
from pathlib import Path

from click.testing import CliRunner

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from MetaSearch.cli.ui import cli

_CONFIG_YAML = """
log:
  level: ERROR
  to_file: false
  dir: log

facets:
  base_url: http://localhost:3003/collections.json
  size: 10
"""

_AGGREGATIONS = {
    "science-keywords": {
        "category": {"buckets": [{"key": "EARTH SCIENCE", "doc_count": 3, "coll-count": {"doc_count": 2}}]}
    }
}


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()

    def _invoke(self, args):
        with self.runner.isolated_filesystem():
            Path("config").mkdir()
            Path("config/default.yml").write_text(_CONFIG_YAML, encoding="utf-8")
            Path("aggs.json").write_text(json.dumps(_AGGREGATIONS), encoding="utf-8")
            return self.runner.invoke(cli, args)

    def test_parse(self) -> None:
        result = self._invoke(["parse", "collection", "entry_title=foo&page_size=5"])
        self.assertEqual(0, result.exit_code, result.output)
        payload = json.loads(result.output)
        self.assertEqual(5, payload["page_size"])
        self.assertEqual(
            {"type": "string", "field": "entry-title", "value": "foo", "case_sensitive": False, "pattern": False},
            payload["condition"],
        )

    def test_parse_invalid_parameter_aborts(self) -> None:
        result = self._invoke(["parse", "collection", "foo=bar"])
        self.assertNotEqual(0, result.exit_code)

    def test_parse_unsupported_granule_format_aborts(self) -> None:
        result = self._invoke(["parse", "granule", "result_format=dif"])
        self.assertNotEqual(0, result.exit_code)

    def test_facet_link(self) -> None:
        result = self._invoke(
            [
                "facet-link",
                "science_keywords[0][category]=EARTH+SCIENCE",
                "science_keywords[0][category]",
                "EARTH SCIENCE",
            ]
        )
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual({"remove": "http://localhost:3003/collections.json"}, json.loads(result.output))

    def test_facet_link_with_ancestors(self) -> None:
        result = self._invoke(
            [
                "facet-link",
                "science_keywords[0][category]=ES",
                "science_keywords[0][topic]",
                "ATM",
                "--ancestor",
                "category=ES",
                "--parent-index",
                "0",
            ]
        )
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual(
            {
                "apply": "http://localhost:3003/collections.json"
                "?science_keywords[0][category]=ES&science_keywords[0][topic]=ATM"
            },
            json.loads(result.output),
        )

    def test_facet_link_bad_ancestor(self) -> None:
        result = self._invoke(["facet-link", "", "science_keywords[0][topic]", "ATM", "--ancestor", "category"])
        self.assertEqual(2, result.exit_code)

    def test_facets(self) -> None:
        result = self._invoke(["facets", "", "aggs.json"])
        self.assertEqual(0, result.exit_code, result.output)
        (root,) = json.loads(result.output)
        self.assertEqual("Keywords", root["title"])
        self.assertEqual("EARTH SCIENCE", root["children"][0]["title"])
        self.assertEqual(2, root["children"][0]["count"])

    def test_facet_aggregation(self) -> None:
        result = self._invoke(["facet-aggregation", "science_keywords[0][term]=AEROSOLS"])
        self.assertEqual(0, result.exit_code, result.output)
        aggregation = json.loads(result.output)["science-keywords"]
        self.assertEqual({"path": "science-keywords"}, aggregation["nested"])
        category = aggregation["aggs"]["category"]
        self.assertEqual({"field": "science-keywords.category", "size": 10}, category["terms"])
        depth = 0
        level = aggregation["aggs"]
        while level:
            (name,) = [key for key in level if key != "coll-count"]
            depth += 1
            level = {key: value for key, value in level[name]["aggs"].items() if key != "coll-count"}
        self.assertEqual(5, depth)

    def test_format(self) -> None:
        result = self._invoke(["format", "search/collections.echo10"])
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual("echo10", result.output.strip())

        result = self._invoke(["format", "search/collections", "--accept", "text/csv"])
        self.assertEqual("csv", result.output.strip())

    def test_format_bad_extension_aborts(self) -> None:
        result = self._invoke(["format", "search/collections.foo"])
        self.assertNotEqual(0, result.exit_code)


if __name__ == "__main__":
    unittest.main()
