"""
Unit tests for edit distance and token overlap.

Run: pytest tests/unit/test_similarity.py -v
"""

import pytest

from utils.similarity import levenshtein, edit_similarity, token_overlap


class TestLevenshtein:
    """Tests for levenshtein()"""

    @pytest.mark.parametrize("a,b,expected", [
        ("KITTEN", "SITTING", 3),
        ("", "ABC", 3),
        ("ROUPEIRO", "ROUPEIRO", 0),
        (None, "AB", 2),
    ])
    def test_distance(self, a, b, expected):
        assert levenshtein(a, b) == expected


class TestEditSimilarity:
    """Tests for edit_similarity()"""

    def test_both_empty_is_identical(self):
        assert edit_similarity("", "") == 1.0
        assert edit_similarity(None, None) == 1.0

    @pytest.mark.parametrize("text", ["A", "CRIADO MUDO", "COMODA GIARDINO 4 GAVETAS"])
    def test_identical_strings(self, text):
        assert edit_similarity(text, text) == 1.0

    def test_one_substitution(self):
        assert edit_similarity("ABCD", "ABCE") == pytest.approx(0.75)

    def test_symmetric(self):
        a, b = "COMODA GIARDINO", "COMODA GIARDINI 4"
        assert edit_similarity(a, b) == edit_similarity(b, a)

    def test_disjoint_is_zero(self):
        assert edit_similarity("ABC", "XYZ") == 0.0
        assert edit_similarity("ABC", "") == 0.0


class TestTokenOverlap:
    """Tests for token_overlap()"""

    def test_counts_each_occurrence_in_first_sequence(self):
        # Arrange
        entry_tokens = ["MESA", "140", "MESA"]
        candidate_tokens = ["MESA", "NOGAL"]

        # Act
        overlap = token_overlap(entry_tokens, candidate_tokens)

        # Assert
        assert overlap.count == 2
        assert overlap.ratio == pytest.approx(2 / 3)

    def test_same_tokens_full_ratio(self):
        tokens = ["ROUPEIRO", "BLANCO"]
        assert token_overlap(tokens, tokens).ratio == 1.0

    def test_order_insensitive(self):
        overlap = token_overlap(["BLANCO", "ROUPEIRO"], ["ROUPEIRO", "BLANCO"])
        assert overlap.count == 2

    @pytest.mark.parametrize("a,b", [([], ["MESA"]), (None, ["MESA"]), (None, None)])
    def test_empty_first_sequence(self, a, b):
        overlap = token_overlap(a, b)
        assert overlap.count == 0
        assert overlap.ratio == 0.0

    def test_empty_second_sequence(self):
        overlap = token_overlap(["MESA", "LUZ"], [])
        assert overlap.count == 0
        assert overlap.ratio == 0.0
