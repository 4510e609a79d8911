"""Tests for assembling queries from request parameters."""

import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from MetaSearch.config.query import QueryConfig
from MetaSearch.core.conditions import (
    MATCH_ALL,
    DateRangeCondition,
    NegatedCondition,
    NestedCondition,
    NumericRangeCondition,
    StringCondition,
    and_conds,
)
from MetaSearch.core.errors import (
    InvalidParameterValueError,
    InvalidSortFieldError,
    UnsupportedParameterError,
)
from MetaSearch.core.query import COLLECTION, DESC, GRANULE, Query, SortKey
from MetaSearch.http.params import parse_query_string
from MetaSearch.params.query import parse_query


class TestParseQuery(unittest.TestCase):
    def test_empty_params(self) -> None:
        query = parse_query(COLLECTION, {})
        self.assertEqual(Query(concept_type=COLLECTION), query)
        self.assertIs(MATCH_ALL, query.condition)
        self.assertEqual(10, query.page_size)
        self.assertEqual(1, query.page_num)
        self.assertIsNone(query.sort_keys)

    def test_option_map_aliases(self) -> None:
        query = parse_query(
            COLLECTION,
            {"entry-title": ["foo"], "options": {"entry-title": {"ignore-case": "true"}}},
        )
        self.assertEqual(StringCondition("entry-title", "foo"), query.condition)

    def test_legacy_alias_with_snake_case_options(self) -> None:
        query = parse_query(COLLECTION, {"dataset_id": "foo*", "options": {"dataset_id": {"pattern": "true"}}})
        self.assertEqual(StringCondition("entry-title", "foo*", pattern=True), query.condition)

    def test_multiple_conditions_in_parameter_order(self) -> None:
        query = parse_query(COLLECTION, {"provider": "bar", "entry-title": ["foo"]})
        self.assertEqual(
            and_conds([StringCondition("provider", "bar"), StringCondition("entry-title", "foo")]),
            query.condition,
        )

    def test_exclusions_follow_conditions(self) -> None:
        query = parse_query(COLLECTION, {"provider": "P1", "exclude": {"echo_collection_id": "C1-P1"}})
        self.assertEqual(
            and_conds(
                [
                    StringCondition("provider", "P1"),
                    NegatedCondition(StringCondition("concept-id", "C1-P1", case_sensitive=True)),
                ]
            ),
            query.condition,
        )

    def test_legacy_split_dates(self) -> None:
        query = parse_query(GRANULE, {"equator_crossing_start_date": "2000-04-15T12:00:00Z"})
        self.assertEqual(
            DateRangeCondition(
                "equator-crossing-date", datetime(2000, 4, 15, 12, tzinfo=timezone.utc), None
            ),
            query.condition,
        )

    def test_legacy_range_map(self) -> None:
        query = parse_query(GRANULE, {"cloud_cover": {"min_value": "10", "max_value": "20"}})
        self.assertEqual(NumericRangeCondition("cloud-cover", 10.0, 20.0), query.condition)

    def test_unset_boolean_adds_no_condition(self) -> None:
        self.assertIs(MATCH_ALL, parse_query(COLLECTION, {"downloadable": "unset"}).condition)

    def test_first_invalid_parameter_aborts(self) -> None:
        with self.assertRaises(UnsupportedParameterError):
            parse_query(COLLECTION, {"entry-title": "x", "foo": "y"})

    def test_unknown_concept_type(self) -> None:
        with self.assertRaises(InvalidParameterValueError):
            parse_query("variable", {})

    def test_options_must_be_a_map(self) -> None:
        with self.assertRaises(InvalidParameterValueError):
            parse_query(COLLECTION, {"entry-title": "x", "options": "pattern"})

    def test_science_keywords_from_query_string(self) -> None:
        params = parse_query_string(
            "science_keywords[0][category]=EARTH+SCIENCE&science_keywords[0][topic]=ATMOSPHERE"
        )
        query = parse_query(COLLECTION, params)
        self.assertEqual(
            NestedCondition(
                "science-keywords",
                and_conds(
                    [
                        StringCondition("science-keywords.category", "EARTH SCIENCE"),
                        StringCondition("science-keywords.topic", "ATMOSPHERE"),
                    ]
                ),
            ),
            query.condition,
        )


class TestPagingAndFlags(unittest.TestCase):
    def test_paging(self) -> None:
        query = parse_query(COLLECTION, {"page_size": "25", "page_num": "3"})
        self.assertEqual(25, query.page_size)
        self.assertEqual(3, query.page_num)

    def test_invalid_paging(self) -> None:
        for params in (
            {"page_size": "0"},
            {"page_size": "2001"},
            {"page_size": "abc"},
            {"page_num": "0"},
            {"page_size": ["1", "2"]},
        ):
            with self.subTest(params=params):
                with self.assertRaises(InvalidParameterValueError):
                    parse_query(COLLECTION, params)

    def test_config_defaults(self) -> None:
        config = QueryConfig(default_page_size=20, max_page_size=100, default_result_format="json")
        query = parse_query(COLLECTION, {}, config=config)
        self.assertEqual(20, query.page_size)
        self.assertEqual("json", query.result_format)
        with self.assertRaisesRegex(InvalidParameterValueError, "between 1 and 100"):
            parse_query(COLLECTION, {"page_size": "101"}, config=config)

    def test_sort_keys(self) -> None:
        query = parse_query(COLLECTION, {"sort_key": ["short_name", "-dataset_id"]})
        self.assertEqual((SortKey("short-name"), SortKey("entry-title", DESC)), query.sort_keys)

    def test_invalid_sort_key(self) -> None:
        with self.assertRaises(InvalidSortFieldError):
            parse_query(COLLECTION, {"sort_key": "cloud_cover"})

    def test_flags(self) -> None:
        query = parse_query(COLLECTION, {"pretty": "true", "echo_compatible": "TRUE", "all_revisions": "true"})
        self.assertTrue(query.pretty)
        self.assertTrue(query.echo_compatible)
        self.assertTrue(query.all_revisions_index)
        self.assertFalse(query.skip_acls)

    def test_invalid_flag(self) -> None:
        with self.assertRaises(InvalidParameterValueError):
            parse_query(COLLECTION, {"pretty": "yes"})

    def test_all_revisions_is_collection_only(self) -> None:
        with self.assertRaises(UnsupportedParameterError):
            parse_query(GRANULE, {"all_revisions": "true"})
        self.assertFalse(parse_query(GRANULE, {"all_revisions": "false"}).all_revisions_index)

    def test_result_format(self) -> None:
        self.assertEqual("iso19115", parse_query(COLLECTION, {"result_format": "ISO"}).result_format)
        self.assertEqual("echo10", parse_query(GRANULE, {"result_format": "echo10"}).result_format)
        with self.assertRaises(InvalidParameterValueError):
            parse_query(COLLECTION, {"result_format": "bogus"})


if __name__ == "__main__":
    unittest.main()
