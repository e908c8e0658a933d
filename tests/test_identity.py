import unittest

from core import SurfaceForms
from history.identity import matches, normalize_title, same_concept, stored_key_matches


class TestMatches(unittest.TestCase):
    """Tests for exact, case-insensitive identity matching."""

    def test_occurrence_form(self):
        forms = SurfaceForms("Lookouts", "lookout")

        self.assertTrue(matches(forms, "lookouts"))
        self.assertTrue(matches(forms, "LOOKOUTS"))

    def test_canonical_form(self):
        forms = SurfaceForms("lookouts", "Lookout")

        self.assertTrue(matches(forms, "lookout"))

    def test_empty_canonical_form_never_matches(self):
        forms = SurfaceForms("lookouts", "")

        self.assertFalse(matches(forms, ""))
        self.assertFalse(matches(forms, "lookout"))

    def test_no_substring_matching(self):
        forms = SurfaceForms("give the cold shoulder")

        self.assertFalse(matches(forms, "cold shoulder"))
        self.assertFalse(matches(forms, "give the cold shoulders"))

    def test_surrounding_whitespace_ignored(self):
        self.assertTrue(matches(SurfaceForms("lookout"), "  lookout "))


class TestStoredKeyMatches(unittest.TestCase):

    def test_key_written_under_either_form(self):
        forms = SurfaceForms("run some ideas by us", "run some ideas by someone")

        self.assertTrue(stored_key_matches("run some ideas by us", forms))
        self.assertTrue(stored_key_matches("Run Some Ideas By Someone", forms))
        self.assertFalse(stored_key_matches("run some ideas", forms))


class TestSameConcept(unittest.TestCase):

    def test_same_occurrence_form(self):
        self.assertTrue(same_concept(SurfaceForms("Test"), SurfaceForms("test")))

    def test_occurrence_matches_other_canonical(self):
        a = SurfaceForms("lookouts", "lookout")
        b = SurfaceForms("lookout")

        self.assertTrue(same_concept(a, b))
        self.assertTrue(same_concept(b, a))

    def test_shared_canonical_form(self):
        a = SurfaceForms("gave them the cold shoulder", "give the cold shoulder")
        b = SurfaceForms("giving her the cold shoulder", "Give the cold shoulder")

        self.assertTrue(same_concept(a, b))

    def test_different_concepts(self):
        self.assertFalse(same_concept(SurfaceForms("lookout", ""), SurfaceForms("outlook", "")))


class TestNormalizeTitle(unittest.TestCase):

    def test_collapses_whitespace(self):
        self.assertEqual(normalize_title("  The   first\nscene "), "The first scene")
        self.assertEqual(normalize_title(""), "")


if __name__ == "__main__":
    unittest.main()
