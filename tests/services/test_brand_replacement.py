"""
Tests for brand_replacement: competitor names and brand marker checks.
"""

from copycat.services.brand_replacement import (
    contains_marker,
    replace_competitor_brands,
)

COMPETITORS = ["kodland", "skill academy", "course-net"]


class TestReplaceCompetitorBrands:
    def test_replaces_any_case(self):
        text = "Learn coding at KODLAND. Kodland is fun!"

        result = replace_competitor_brands(text, "Algonova", COMPETITORS)

        assert result == "Learn coding at Algonova. Algonova is fun!"

    def test_whole_words_only(self):
        assert replace_competitor_brands("Kodlanders unite", "Algonova", COMPETITORS) == "Kodlanders unite"

    def test_multi_word_and_hyphenated_names(self):
        text = "Skill Academy and course-net courses"

        result = replace_competitor_brands(text, "Algonova", COMPETITORS)

        assert result == "Algonova and Algonova courses"

    def test_empty_text(self):
        assert replace_competitor_brands("", "Algonova", COMPETITORS) == ""


class TestContainsMarker:
    def test_case_insensitive(self):
        assert contains_marker("use the ALGONOVA logo", "Algonova")

    def test_missing(self):
        assert not contains_marker("use the new logo", "Algonova")

    def test_empty_text(self):
        assert not contains_marker(None, "Algonova")

    def test_no_marker_always_satisfied(self):
        assert contains_marker("anything", None)
        assert contains_marker("", "")
