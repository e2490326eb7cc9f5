"""Unit tests for budget suggestions."""

import pytest

from quote_engine.models import RateCardItem
from quote_engine.services.suggestions import build_suggestions


@pytest.fixture
def items():
    return [
        RateCardItem(shot_type="Wide", category="scene", hours=3),
        RateCardItem(shot_type="Close", category="scene", hours=2),
        RateCardItem(shot_type="Comp", category="post", hours=4),
        RateCardItem(shot_type="AnimLoop", category="animation", hours=5),
    ]


class TestBuildSuggestions:
    def test_post_ranks_highest(self, items):
        suggestions = build_suggestions(12, items)

        top = suggestions[0]
        assert top.name == "Comp"
        assert top.quantity == 3
        assert top.total_hours == 12
        assert top.score == 36

    def test_ranking_and_cap(self, items):
        suggestions = build_suggestions(12, items)
        assert len(suggestions) == 5
        assert [s.score for s in suggestions] == [36, 24, 24, 20, 16]
        assert {s.name for s in suggestions[1:3]} == {"Additional Editing", "Creative Direction"}
        assert suggestions[3].name == "AnimLoop"
        assert suggestions[4].name == "Pre-Production"

    def test_line_item_templates_flagged(self, items):
        suggestions = build_suggestions(12, items)
        line_items = [s for s in suggestions if s.is_line_item]
        assert all(s.category == "service" for s in line_items)

    @pytest.mark.parametrize("remaining", [None, 0, -5])
    def test_empty_without_room(self, items, remaining):
        assert build_suggestions(remaining, items) == []

    def test_candidates_that_do_not_fit_are_skipped(self, items):
        suggestions = build_suggestions(2.5, items)
        assert [s.name for s in suggestions] == ["Close"]

    def test_zero_hour_items_skipped(self):
        free = [RateCardItem(shot_type="Free", category="post", hours=0)]
        names = [s.name for s in build_suggestions(100, free)]
        assert "Free" not in names

    def test_explicit_limit(self, items):
        assert len(build_suggestions(12, items, limit=2)) == 2
