import pytest

from uwguessr.services.sanitizer import ObscenityMatcher, censor_spans, sanitize_name


class TestSanitizeName:
    @pytest.mark.parametrize("name", ["Alice", "Goose Lover 42", "grapes"])
    def test_clean_names_unchanged(self, name):
        assert sanitize_name(name) == name

    def test_trims_and_bounds_length(self):
        assert sanitize_name("   Alice   ") == "Alice"
        assert sanitize_name("x" * 40) == "x" * 20
        assert sanitize_name("x" * 40, max_length=25) == "x" * 25

    def test_dictionary_words_are_censored(self):
        cleaned = sanitize_name("what the fuck")
        assert "fuck" not in cleaned
        assert cleaned.startswith("what the ")
        assert "*" in cleaned

    def test_dictionary_censoring_keeps_length(self):
        assert sanitize_name("ass") == "***"
        cleaned = sanitize_name("ass ass ass ass ass")
        assert cleaned == "*** *** *** *** ***"

    def test_censored_name_stays_within_bound(self):
        raw = "xx xx xx xx xx xx xx"
        assert len(raw) == 20
        assert len(sanitize_name(raw)) <= 20
        assert len(sanitize_name("ass " * 10, max_length=20)) <= 20

    @pytest.mark.parametrize("name", ["f.u.c.k", "sh1t head", "b1tchy", "FuUuCk"])
    def test_disguised_words_are_censored(self, name):
        cleaned = sanitize_name(name)
        assert not ObscenityMatcher().has_match(cleaned)
        assert "*" in cleaned


class TestObscenityMatcher:
    def test_spans(self):
        matcher = ObscenityMatcher()
        assert matcher.find_all("hi shit") == [(3, 7)]

    def test_leetspeak_and_separators(self):
        matcher = ObscenityMatcher()
        assert matcher.has_match("5h1t")
        assert matcher.has_match("s-h-i-t")
        assert matcher.has_match("fvck")

    def test_whole_word_terms(self):
        matcher = ObscenityMatcher()
        assert matcher.has_match("big dick")
        assert matcher.has_match("dicks")
        assert not matcher.has_match("Dickinson")
        assert not matcher.has_match("cumulative")

    def test_custom_terms(self):
        matcher = ObscenityMatcher(terms=["goose"], words=[])
        assert matcher.find_all("g00se!") == [(0, 5)]
        assert not matcher.has_match("shit")


class TestCensorSpans:
    def test_equal_length_replacement(self):
        assert censor_spans("abcdef", [(1, 3)]) == "a**def"

    def test_multiple_spans_any_order(self):
        text = "one bad two bad"
        assert censor_spans(text, [(4, 7), (12, 15)]) == "one *** two ***"
        assert censor_spans(text, [(12, 15), (4, 7)]) == "one *** two ***"

    def test_overlapping_spans(self):
        assert censor_spans("abcdef", [(1, 4), (2, 5)]) == "a****f"

    def test_no_spans(self):
        assert censor_spans("clean", []) == "clean"
