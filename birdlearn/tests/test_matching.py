"""
Tests for the fuzzy answer matcher.
"""

import unittest

from birdlearn.matching import (
    MatchOptions, MatchType, advanced_match, get_suggestions, is_close_match,
    is_reasonable_attempt, levenshtein_distance, similarity, strip_accents
)


class TestLevenshteinDistance(unittest.TestCase):
    """Test the edit distance."""

    def test_known_distances(self):
        self.assertEqual(levenshtein_distance("kitten", "sitting"), 3)
        self.assertEqual(levenshtein_distance("amzel", "Amsel"), 1)
        self.assertEqual(levenshtein_distance("", "abc"), 3)
        self.assertEqual(levenshtein_distance("Amsel", "Amsel"), 0)

    def test_case_and_whitespace_are_ignored(self):
        self.assertEqual(levenshtein_distance("  AMSEL ", "amsel"), 0)

    def test_symmetric(self):
        pairs = [("Kohlmeise", "Blaumeise"), ("Star", "Stare"), ("", "Amsel")]
        for a, b in pairs:
            self.assertEqual(levenshtein_distance(a, b), levenshtein_distance(b, a))

    def test_absent_counts_as_empty(self):
        self.assertEqual(levenshtein_distance(None, "abc"), 3)


class TestSimilarity(unittest.TestCase):
    """Test the normalised similarity score."""

    def test_identical_strings(self):
        self.assertEqual(similarity("Amsel", "amsel"), 1.0)

    def test_one_typo(self):
        self.assertAlmostEqual(similarity("amzel", "Amsel"), 0.8)

    def test_both_empty(self):
        self.assertEqual(similarity("", ""), 1.0)
        self.assertEqual(similarity("   ", ""), 1.0)

    def test_absent_input(self):
        self.assertEqual(similarity(None, "Amsel"), 0.0)
        self.assertEqual(similarity("Amsel", 42), 0.0)

    def test_bounded_and_symmetric(self):
        pairs = [("xyz", "Amsel"), ("Buchfink", "Grünfink"), ("a", "abcdefgh")]
        for a, b in pairs:
            score = similarity(a, b)
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)
            self.assertEqual(score, similarity(b, a))


class TestIsCloseMatch(unittest.TestCase):
    """Test the recall game verdict."""

    def test_exact_match_ignoring_case(self):
        self.assertTrue(is_close_match("amsel", "Amsel"))
        self.assertTrue(is_close_match("  Amsel ", "amsel"))

    def test_single_typo_accepted(self):
        self.assertTrue(is_close_match("amzel", "Amsel"))

    def test_unrelated_rejected(self):
        self.assertFalse(is_close_match("xyz", "Amsel"))

    def test_reflexive(self):
        for text in ["Amsel", "Turdus merula", "", "  "]:
            self.assertTrue(is_close_match(text, text))

    def test_absent_input_rejected(self):
        self.assertFalse(is_close_match(None, "Amsel"))
        self.assertFalse(is_close_match("Amsel", None))

    def test_custom_threshold(self):
        self.assertFalse(is_close_match("amzel", "Amsel", threshold=0.9))


class TestAdvancedMatch(unittest.TestCase):
    """Test the layered matching strategies."""

    def test_exact(self):
        result = advanced_match("AMSEL", "Amsel")
        self.assertTrue(result.is_match)
        self.assertEqual(result.match_type, MatchType.EXACT)
        self.assertEqual(result.similarity, 1.0)

    def test_accents_ignored_by_default(self):
        result = advanced_match("Grunfink", "Grünfink")
        self.assertEqual(result.match_type, MatchType.EXACT)

    def test_accents_respected_when_disabled(self):
        result = advanced_match("Grunfink", "Grünfink", MatchOptions(ignore_accents=False))
        self.assertTrue(result.is_match)
        self.assertEqual(result.match_type, MatchType.SIMILAR)
        self.assertAlmostEqual(result.similarity, 7 / 8)

    def test_partial(self):
        result = advanced_match("Blaumeis", "Blaumeise")
        self.assertTrue(result.is_match)
        self.assertEqual(result.match_type, MatchType.PARTIAL)
        self.assertAlmostEqual(result.similarity, 8 / 9)

    def test_partial_too_short(self):
        result = advanced_match("Amsel", "Schwarzamsel")
        self.assertNotEqual(result.match_type, MatchType.PARTIAL)
        self.assertFalse(result.is_match)

    def test_abbreviation(self):
        for typed in ["T. merula", "t.merula", "T.M", "t. m"]:
            result = advanced_match(typed, "Turdus merula")
            self.assertTrue(result.is_match, typed)
            self.assertEqual(result.match_type, MatchType.ABBREVIATION)
            self.assertEqual(result.similarity, 0.9)

    def test_abbreviation_disabled(self):
        result = advanced_match("T. merula", "Turdus merula", MatchOptions(allow_abbreviations=False))
        self.assertNotEqual(result.match_type, MatchType.ABBREVIATION)

    def test_different(self):
        result = advanced_match("xyz", "Amsel")
        self.assertFalse(result.is_match)
        self.assertEqual(result.match_type, MatchType.DIFFERENT)

    def test_absent_input(self):
        result = advanced_match(None, "Amsel")
        self.assertFalse(result.is_match)
        self.assertEqual(result.match_type, MatchType.NONE)
        self.assertEqual(result.similarity, 0.0)

    def test_to_dict(self):
        data = advanced_match("Amsel", "Amsel").to_dict()
        self.assertEqual(data, {"is_match": True, "similarity": 1.0, "match_type": "exact"})

    def test_strip_accents(self):
        self.assertEqual(strip_accents("Grünfink"), "Grunfink")
        self.assertEqual(strip_accents("Mönchsgrasmücke"), "Monchsgrasmucke")


class TestSuggestions(unittest.TestCase):
    """Test "did you mean" ranking."""

    def test_ranked_by_similarity(self):
        suggestions = get_suggestions("Amzel", ["qqqqqqqq", "Amsel", "Amseln"])
        self.assertEqual(suggestions[0].text, "Amsel")
        scores = [s.similarity for s in suggestions]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertNotIn("qqqqqqqq", [s.text for s in suggestions])

    def test_limited(self):
        suggestions = get_suggestions("Amzel", ["Amsel", "Amseln", "Amsl"], max_suggestions=1)
        self.assertEqual(len(suggestions), 1)

    def test_threshold_inclusive(self):
        # "abc" vs "abcdefghij": 3 of 10 characters survive, similarity 0.3
        suggestions = get_suggestions("abc", ["abcdefghij"])
        self.assertEqual(len(suggestions), 1)

    def test_no_input(self):
        self.assertEqual(get_suggestions(None, ["Amsel"]), [])
        self.assertEqual(get_suggestions("Amsel", []), [])
        self.assertEqual(get_suggestions("Amsel", None), [])


class TestReasonableAttempt(unittest.TestCase):
    """Test the plausibility check."""

    def test_plausible(self):
        self.assertTrue(is_reasonable_attempt("Amsl", "Amsel"))
        self.assertTrue(is_reasonable_attempt("Grünfink", "Grünfink"))

    def test_too_short(self):
        self.assertFalse(is_reasonable_attempt("A", "Amsel"))

    def test_too_long(self):
        self.assertFalse(is_reasonable_attempt("AmselAmselAmsel", "Amsel"))

    def test_mostly_non_letters(self):
        self.assertFalse(is_reasonable_attempt("12345", "Amsel"))
        self.assertFalse(is_reasonable_attempt("a 1 2", "Amsel"))

    def test_absent(self):
        self.assertFalse(is_reasonable_attempt(None, "Amsel"))
        self.assertFalse(is_reasonable_attempt("", "Amsel"))


if __name__ == '__main__':
    unittest.main()
