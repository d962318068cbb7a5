"""
Unit tests for keyword classification and topic grouping.

Covers:
- Case-insensitive substring matching over title, description and content
- Topic derivation from routed keywords
- Feeds without keywords
- Grouping by primary topic with the uncategorized fallback
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from feedpress.database.models import FeedSource, TopicRoute
from feedpress.processing.keyword_classifier import KeywordClassifier, match_keywords
from feedpress.processing.topic_grouping import group_by_topic, UNCATEGORIZED_TOPIC


def _feed(keywords):
    return FeedSource(id="f", name="Tech Blog", url="https://techblog.example.com/feed", keywords=keywords)


class TestMatchKeywords:
    def test_case_insensitive_substring(self):
        assert match_keywords("Introducing ROVO agent today", ["Rovo Agent"]) == ["Rovo Agent"]

    def test_substring_inside_word(self):
        # "AI" matches inside "maintain"
        assert match_keywords("How we maintain servers", ["AI"]) == ["AI"]

    def test_keyword_order_preserved(self):
        assert match_keywords("forge and rovo", ["Rovo", "Forge", "Jira"]) == ["Rovo", "Forge"]

    def test_no_match(self):
        assert match_keywords("gardening", ["AI"]) == []

    def test_surrounding_spaces_are_part_of_keyword(self):
        assert match_keywords("she said so", [" AI "]) == []
        assert match_keywords("the AI model", [" AI "]) == [" AI "]


class TestKeywordClassifier:
    def setup_method(self):
        self.classifier = KeywordClassifier()

    def test_empty_keywords_match_nothing(self, make_item):
        items = [make_item()]
        assert self.classifier.classify(items, _feed([]), []) == []

    def test_non_matching_items_dropped(self, make_item):
        items = [
            make_item(title="Rovo Agent launch", description=""),
            make_item(title="Gardening tips", link="https://x/garden", description="Tomatoes"),
        ]
        result = self.classifier.classify(items, _feed(["Rovo Agent"]), [])
        assert [item.title for item in result] == ["Rovo Agent launch"]

    def test_matches_in_content(self, make_item):
        item = make_item(title="Weekly digest", description="Misc", content="<p>Rovo Agent is here</p>")
        result = self.classifier.classify([item], _feed(["Rovo Agent"]), [])
        assert len(result) == 1
        assert result[0].matched_keywords == ["Rovo Agent"]

    def test_topics_are_routed_keywords_in_route_order(self, make_item):
        item = make_item(title="AI and Rovo Agent news", description="")
        routes = [
            TopicRoute(topic="Rovo Agent", target_space="AI"),
            TopicRoute(topic="AI", target_space="AI"),
        ]
        result = self.classifier.classify([item], _feed(["AI", "Rovo Agent"]), routes)

        assert result[0].matched_keywords == ["AI", "Rovo Agent"]
        assert result[0].topics == ["Rovo Agent", "AI"]
        assert result[0].primary_topic == "Rovo Agent"

    def test_topics_fall_back_to_matched_keywords(self, make_item):
        item = make_item(title="Forge and AI", description="")
        routes = [TopicRoute(topic="Rovo Agent", target_space="AI")]
        result = self.classifier.classify([item], _feed(["Forge", "AI"]), routes)
        assert result[0].topics == ["Forge", "AI"]

    def test_input_items_not_mutated(self, make_item):
        item = make_item(title="Rovo Agent launch")
        self.classifier.classify([item], _feed(["Rovo Agent"]), [])
        assert item.matched_keywords == []
        assert item.topics == []

    def test_every_result_has_keywords_and_topics(self, make_item):
        items = [make_item(title=f"AI story {i}", link=f"https://x/{i}") for i in range(5)]
        for item in self.classifier.classify(items, _feed(["AI"]), []):
            assert item.matched_keywords
            assert item.topics


class TestGroupByTopic:
    def test_groups_by_first_topic(self, make_item):
        a = make_item(title="a", link="https://x/a", topics=["Rovo Agent", "AI"])
        b = make_item(title="b", link="https://x/b", topics=["AI"])
        c = make_item(title="c", link="https://x/c", topics=["Rovo Agent"])

        grouped = group_by_topic([a, b, c])

        assert list(grouped) == ["Rovo Agent", "AI"]
        assert [i.title for i in grouped["Rovo Agent"]] == ["a", "c"]
        assert [i.title for i in grouped["AI"]] == ["b"]

    def test_item_without_topics_is_uncategorized(self, make_item):
        grouped = group_by_topic([make_item(topics=[])])
        assert list(grouped) == [UNCATEGORIZED_TOPIC]

    def test_each_item_in_exactly_one_group(self, make_item):
        items = [make_item(title=str(i), link=f"https://x/{i}", topics=["AI", "Forge"]) for i in range(4)]
        grouped = group_by_topic(items)
        assert sum(len(group) for group in grouped.values()) == len(items)

    def test_empty_input(self):
        assert group_by_topic([]) == {}
