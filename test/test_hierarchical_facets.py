"""Tests for hierarchical facet trees built from nested aggregations."""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from MetaSearch.facets.hierarchical_facets import (
    FILTER,
    GROUP,
    create_hierarchical_facets,
    get_depth_for_hierarchical_field,
    nested_facet_aggregation,
)
from MetaSearch.http.params import parse_flat_query_string
from MetaSearch.renderers.json import render_facet

BASE_URL = "http://localhost:3003/collections.json"

AGGREGATIONS = {
    "science-keywords": {
        "category": {
            "buckets": [
                {
                    "key": "EARTH SCIENCE",
                    "doc_count": 30,
                    "coll-count": {"doc_count": 12},
                    "topic": {
                        "buckets": [
                            {
                                "key": "ATMOSPHERE",
                                "doc_count": 20,
                                "coll-count": {"doc_count": 8},
                                "term": {
                                    "buckets": [
                                        {"key": "AEROSOLS", "doc_count": 5, "coll-count": {"doc_count": 3}}
                                    ]
                                },
                            },
                            {
                                "key": "OCEANS",
                                "doc_count": 10,
                                "coll-count": {"doc_count": 4},
                                "term": {"buckets": [{"key": "SALINITY", "doc_count": 2}]},
                            },
                        ]
                    },
                }
            ]
        }
    }
}


def _link_params(links) -> dict:
    (url,) = links.values()
    if "?" not in url:
        return {}
    return parse_flat_query_string(url.split("?", 1)[1])


class TestFacetsWithoutParams(unittest.TestCase):
    def setUp(self) -> None:
        (self.root,) = create_hierarchical_facets(AGGREGATIONS, BASE_URL, {})

    def test_root(self) -> None:
        self.assertEqual("Keywords", self.root.title)
        self.assertEqual(GROUP, self.root.type)
        self.assertFalse(self.root.applied)
        self.assertTrue(self.root.has_children)

    def test_top_level_filter(self) -> None:
        (category,) = self.root.children
        self.assertEqual(FILTER, category.type)
        self.assertEqual("EARTH SCIENCE", category.title)
        self.assertEqual(12, category.count)
        self.assertFalse(category.applied)
        self.assertEqual(
            {"apply": f"{BASE_URL}?science_keywords[0][category]=EARTH+SCIENCE"},
            dict(category.links),
        )

    def test_first_two_levels_are_shown(self) -> None:
        (topic_group,) = self.root.children[0].children
        self.assertEqual("topic", topic_group.title)
        self.assertEqual(["ATMOSPHERE", "OCEANS"], [child.title for child in topic_group.children])
        atmosphere = topic_group.children[0]
        self.assertIsNone(atmosphere.children)
        self.assertTrue(atmosphere.has_children)

    def test_apply_link_carries_ancestors(self) -> None:
        atmosphere = self.root.children[0].children[0].children[0]
        self.assertEqual(
            {"science_keywords[0][category]": "EARTH SCIENCE", "science_keywords[0][topic]": "ATMOSPHERE"},
            _link_params(atmosphere.links),
        )

    def test_render(self) -> None:
        rendered = render_facet(self.root)
        self.assertEqual("Keywords", rendered["title"])
        self.assertEqual(12, rendered["children"][0]["count"])
        self.assertNotIn("children", rendered["children"][0]["children"][0]["children"][0])


class TestFacetsWithParams(unittest.TestCase):
    def setUp(self) -> None:
        self.params = {
            "science_keywords[0][category]": "EARTH SCIENCE",
            "science_keywords[0][topic]": "ATMOSPHERE",
        }
        (self.root,) = create_hierarchical_facets(AGGREGATIONS, BASE_URL, self.params)
        (self.category,) = self.root.children
        (topic_group,) = self.category.children
        self.atmosphere, self.oceans = topic_group.children

    def test_applied_nodes(self) -> None:
        self.assertTrue(self.root.applied)
        self.assertTrue(self.category.applied)
        self.assertTrue(self.atmosphere.applied)
        self.assertFalse(self.oceans.applied)

    def test_removing_category_removes_applied_children(self) -> None:
        self.assertEqual({"remove": BASE_URL}, dict(self.category.links))

    def test_remove_topic(self) -> None:
        self.assertEqual(
            {"science_keywords[0][category]": "EARTH SCIENCE"},
            _link_params(self.atmosphere.links),
        )

    def test_sibling_gets_fresh_index(self) -> None:
        self.assertIn("apply", self.oceans.links)
        self.assertEqual(
            {
                **self.params,
                "science_keywords[1][category]": "EARTH SCIENCE",
                "science_keywords[1][topic]": "OCEANS",
            },
            _link_params(self.oceans.links),
        )
        self.assertIsNone(self.oceans.children)

    def test_applied_term_shows_children(self) -> None:
        (term_group,) = self.atmosphere.children
        (aerosols,) = term_group.children
        self.assertEqual("AEROSOLS", aerosols.title)
        self.assertEqual(3, aerosols.count)
        self.assertEqual(
            {**self.params, "science_keywords[0][term]": "AEROSOLS"},
            _link_params(aerosols.links),
        )


class TestZeroMatchFacets(unittest.TestCase):
    def test_applied_term_without_buckets(self) -> None:
        params = {"science_keywords[0][category]": "EARTH SCIENCE", "science_keywords[0][topic]": "CLIMATE"}
        (root,) = create_hierarchical_facets(AGGREGATIONS, BASE_URL, params)
        zero = root.children[-1]
        self.assertEqual("CLIMATE", zero.title)
        self.assertEqual(0, zero.count)
        self.assertTrue(zero.applied)
        self.assertEqual({"science_keywords[0][category]": "EARTH SCIENCE"}, _link_params(zero.links))

    def test_no_buckets_and_no_params(self) -> None:
        self.assertEqual([], create_hierarchical_facets({}, BASE_URL, {}))

    def test_applied_terms_without_any_buckets(self) -> None:
        (root,) = create_hierarchical_facets({}, BASE_URL, {"science_keywords[0][category]": "X"})
        self.assertEqual(["X"], [child.title for child in root.children])
        self.assertEqual({"remove": BASE_URL}, dict(root.children[0].links))


class TestAggregationRequest(unittest.TestCase):
    def test_depth(self) -> None:
        cases = [
            ({}, 3),
            ({"science_keywords[0][category]": "A"}, 3),
            ({"science_keywords[0][topic]": "A"}, 4),
            ({"science_keywords[0][term]": "A"}, 5),
            ({"science_keywords[2][variable_level_1]": "A", "science_keywords[0][topic]": "B"}, 6),
        ]
        for params, expected in cases:
            with self.subTest(params=params):
                self.assertEqual(expected, get_depth_for_hierarchical_field(params, "science-keywords"))

    def test_nested_aggregation(self) -> None:
        self.assertEqual(
            {
                "nested": {"path": "science-keywords"},
                "aggs": {
                    "category": {
                        "terms": {"field": "science-keywords.category", "size": 10},
                        "aggs": {
                            "coll-count": {"reverse_nested": {}},
                            "topic": {
                                "terms": {"field": "science-keywords.topic", "size": 10},
                                "aggs": {"coll-count": {"reverse_nested": {}}},
                            },
                        },
                    }
                },
            },
            nested_facet_aggregation("science-keywords", 10, depth=2),
        )


if __name__ == "__main__":
    unittest.main()
