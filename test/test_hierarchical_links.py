"""Tests for hierarchical facet apply/remove links."""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from MetaSearch.core.errors import MalformedFieldNameError
from MetaSearch.facets.hierarchical_links import (
    HierarchicalFieldName,
    create_apply_link,
    create_link,
    create_remove_link,
    find_duplicate_indexes,
    generate_query_string,
    get_max_index,
)
from MetaSearch.http.params import parse_flat_query_string

BASE_URL = "http://localhost:3003/collections.json"


def _link_params(link: dict) -> dict:
    (url,) = link.values()
    if "?" not in url:
        return {}
    return parse_flat_query_string(url.split("?", 1)[1])


class TestFieldNames(unittest.TestCase):
    def test_parse(self) -> None:
        self.assertEqual(
            HierarchicalFieldName("science_keywords", 2, "topic"),
            HierarchicalFieldName.parse("science_keywords[2][topic]"),
        )
        self.assertEqual(
            HierarchicalFieldName("science_keywords", 0, "variable_level_1"),
            HierarchicalFieldName.parse("science-keywords[0][variable-level-1]"),
        )

    def test_str(self) -> None:
        name = HierarchicalFieldName.parse("science_keywords[0][topic]")
        self.assertEqual("science_keywords[3][term]", str(name.at(3).with_subfield("term")))

    def test_malformed(self) -> None:
        for name in ("science_keywords[topic]", "science_keywords[a][topic]", "science_keywords", "[0][topic]"):
            with self.subTest(name=name):
                with self.assertRaises(MalformedFieldNameError):
                    HierarchicalFieldName.parse(name)

    def test_max_index(self) -> None:
        params = {"science_keywords[3][topic]": "A", "science_keywords[1][category]": "B", "provider": "P"}
        self.assertEqual(3, get_max_index(params, "science_keywords"))
        self.assertEqual(-1, get_max_index(params, "platforms"))


class TestGenerateQueryString(unittest.TestCase):
    def test_sorted_with_unescaped_brackets(self) -> None:
        params = {
            "page_num": "2",
            "provider": ["P1", "P2"],
            "science_keywords[0][category]": "EARTH SCIENCE",
            "entry_title": "a b",
        }
        self.assertEqual(
            f"{BASE_URL}?entry_title=a+b&provider[]=P1&provider[]=P2"
            "&science_keywords[0][category]=EARTH+SCIENCE",
            generate_query_string(BASE_URL, params),
        )

    def test_no_params(self) -> None:
        self.assertEqual(BASE_URL, generate_query_string(BASE_URL, {}))
        self.assertEqual(BASE_URL, generate_query_string(BASE_URL, {"page_num": "3"}))


class TestApplyLinks(unittest.TestCase):
    def test_apply_to_empty_params(self) -> None:
        link = create_apply_link(BASE_URL, {}, "science_keywords[0][category]", "EARTH SCIENCE")
        self.assertEqual({"apply": f"{BASE_URL}?science_keywords[0][category]=EARTH+SCIENCE"}, link)

    def test_apply_without_parent_uses_fresh_index(self) -> None:
        params = {"science_keywords[0][category]": "A"}
        link = create_apply_link(BASE_URL, params, "science_keywords[0][category]", "B")
        self.assertEqual(
            {"science_keywords[0][category]": "A", "science_keywords[1][category]": "B"},
            _link_params(link),
        )

    def test_apply_to_parent_index(self) -> None:
        params = {"science_keywords[0][category]": "ES", "science_keywords[1][category]": "X"}
        link = create_apply_link(
            BASE_URL, params, "science_keywords[0][topic]", "ATM", {"category": "ES"}, parent_indexes=[0]
        )
        self.assertEqual({**params, "science_keywords[0][topic]": "ATM"}, _link_params(link))

    def test_apply_uses_lowest_parent_index(self) -> None:
        params = {"science_keywords[1][category]": "ES", "science_keywords[3][category]": "ES"}
        link = create_apply_link(
            BASE_URL, params, "science_keywords[0][topic]", "ATM", {"category": "ES"}, parent_indexes=[3, 1]
        )
        self.assertEqual({**params, "science_keywords[1][topic]": "ATM"}, _link_params(link))

    def test_apply_with_siblings_copies_ancestors(self) -> None:
        params = {"science_keywords[0][category]": "ES", "science_keywords[0][topic]": "ATM"}
        link = create_apply_link(
            BASE_URL,
            params,
            "science_keywords[0][topic]",
            "OCEANS",
            {"category": "ES"},
            parent_indexes=[0],
            has_siblings=True,
        )
        self.assertEqual(
            {
                **params,
                "science_keywords[1][category]": "ES",
                "science_keywords[1][topic]": "OCEANS",
            },
            _link_params(link),
        )

    def test_params_are_not_modified(self) -> None:
        params = {"science_keywords[0][category]": "ES", "provider": ["P1"]}
        snapshot = {key: list(value) if isinstance(value, list) else value for key, value in params.items()}
        create_link(BASE_URL, params, "science_keywords[0][category]", "ES")
        create_link(BASE_URL, params, "science_keywords[0][topic]", "ATM", {"category": "ES"}, [0])
        self.assertEqual(snapshot, params)


class TestRemoveLinks(unittest.TestCase):
    def test_remove_top_level_value(self) -> None:
        params = {"science_keywords[0][category]": "EARTH SCIENCE", "provider": "P1"}
        link = create_link(BASE_URL, params, "science_keywords[0][category]", "earth science")
        self.assertIn("remove", link)
        self.assertEqual({"provider": "P1"}, _link_params(link))

    def test_remove_last_param_links_to_base_url(self) -> None:
        link = create_remove_link(BASE_URL, {"science_keywords[0][category]": "A"}, "science_keywords[0][category]", "A")
        self.assertEqual({"remove": BASE_URL}, link)

    def test_remove_from_list_value(self) -> None:
        params = {"science_keywords[0][category]": ["A", "B"]}
        link = create_remove_link(BASE_URL, params, "science_keywords[0][category]", "a")
        self.assertEqual({"science_keywords[0][category]": "B"}, _link_params(link))

    def test_apply_then_remove_round_trip(self) -> None:
        params = {"science_keywords[0][category]": "ES", "provider": "P1"}
        applied = _link_params(
            create_apply_link(BASE_URL, params, "science_keywords[0][topic]", "ATM", {"category": "ES"}, [0])
        )
        removed = _link_params(create_link(BASE_URL, applied, "science_keywords[0][topic]", "ATM", {"category": "ES"}, [0]))
        self.assertEqual(params, removed)

    def test_sibling_round_trip_removes_duplicate_index(self) -> None:
        params = {"science_keywords[0][category]": "ES", "science_keywords[0][topic]": "ATM"}
        applied = _link_params(
            create_apply_link(
                BASE_URL, params, "science_keywords[0][topic]", "OCEANS", {"category": "ES"}, [0], has_siblings=True
            )
        )
        removed = _link_params(
            create_link(BASE_URL, applied, "science_keywords[0][topic]", "OCEANS", {"category": "ES"}, [0, 1])
        )
        self.assertEqual(params, removed)

    def test_applied_children_are_removed(self) -> None:
        params = {
            "science_keywords[0][category]": "ES",
            "science_keywords[0][topic]": "ATM",
            "science_keywords[0][term]": "AEROSOLS",
        }
        link = create_link(
            BASE_URL,
            params,
            "science_keywords[0][topic]",
            "ATM",
            {"category": "ES"},
            [0],
            applied_children=[("term", "AEROSOLS")],
        )
        self.assertEqual({"science_keywords[0][category]": "ES"}, _link_params(link))

    def test_removal_limited_to_matching_ancestors(self) -> None:
        params = {
            "science_keywords[0][category]": "ES",
            "science_keywords[0][topic]": "ATM",
            "science_keywords[0][term]": "T1",
            "science_keywords[1][category]": "ES",
            "science_keywords[1][topic]": "OCEANS",
            "science_keywords[1][term]": "T1",
        }
        link = create_link(
            BASE_URL, params, "science_keywords[0][term]", "T1", {"category": "ES", "topic": "OCEANS"}, [1]
        )
        expected = dict(params)
        del expected["science_keywords[1][term]"]
        self.assertEqual(expected, _link_params(link))

    def test_value_under_other_ancestors_is_applied(self) -> None:
        params = {"science_keywords[0][category]": "ES", "science_keywords[0][topic]": "ATM"}
        link = create_link(
            BASE_URL, params, "science_keywords[0][term]", "T", {"category": "ES", "topic": "ATM"}, [0]
        )
        self.assertIn("apply", link)
        self.assertEqual({**params, "science_keywords[0][term]": "T"}, _link_params(link))

    def test_other_fields_with_same_prefix_are_ignored(self) -> None:
        params = {"other_science_keywords[0][category]": "ES"}
        link = create_link(BASE_URL, params, "science_keywords[0][category]", "ES")
        self.assertIn("apply", link)
        self.assertEqual({**params, "science_keywords[0][category]": "ES"}, _link_params(link))


class TestDuplicateIndexes(unittest.TestCase):
    def test_subsets_are_duplicates(self) -> None:
        params = {
            "science_keywords[0][category]": "A",
            "science_keywords[1][category]": "a",
            "science_keywords[2][category]": "A",
            "science_keywords[2][topic]": "B",
        }
        self.assertEqual({0, 1}, find_duplicate_indexes(params, "science_keywords"))

    def test_equal_indexes_keep_the_lowest(self) -> None:
        params = {"science_keywords[0][category]": "A", "science_keywords[1][category]": "A"}
        self.assertEqual({1}, find_duplicate_indexes(params, "science_keywords"))

    def test_distinct_indexes(self) -> None:
        params = {"science_keywords[0][category]": "A", "science_keywords[1][category]": "B"}
        self.assertEqual(set(), find_duplicate_indexes(params, "science_keywords"))


if __name__ == "__main__":
    unittest.main()
