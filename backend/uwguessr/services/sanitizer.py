"""Display-name cleanup for the daily leaderboard.

Best effort only: it keeps casual profanity off the leaderboard and is not a
moderation boundary.
"""

import re
from typing import Dict, Iterable, List, Tuple

from better_profanity import profanity

profanity.load_censor_words()

# Letters and the characters commonly typed in their place
LOOKALIKES: Dict[str, str] = {
    "a": "a4@",
    "b": "b8",
    "e": "e3",
    "g": "g9",
    "i": "i1!|l",
    "l": "l1|",
    "o": "o0",
    "s": "s5$z",
    "t": "t7+",
    "u": "uv",
}

# Matched anywhere, including inside longer words
OBSCENE_TERMS = (
    "fuck", "shit", "bitch", "cunt", "pussy", "asshole", "bastard", "slut",
    "whore", "wank", "twat", "nigger", "nigga",
)

# Too common inside innocent words (peacock, grapes, cumulative); whole words only
OBSCENE_WORDS = (
    "dick", "cock", "prick", "fag", "retard", "rape", "penis", "vagina",
    "tits", "boob", "cum",
)

# Separators players put between letters to dodge filters
_GAP = r"[\W_]*"
_NOT_LETTER_BEFORE = r"(?<![^\W\d_])"
_NOT_LETTER_AFTER = r"(?![^\W\d_])"


def _term_pattern(term: str, whole_word: bool = False) -> str:
    parts = []
    for ch in term:
        chars = LOOKALIKES.get(ch, ch)
        parts.append("[" + re.escape(chars) + "]+")
    pattern = _GAP.join(parts)
    if whole_word:
        pattern = _NOT_LETTER_BEFORE + pattern + r"(?:[s5$z]+)?" + _NOT_LETTER_AFTER
    return pattern


class ObscenityMatcher:
    """Finds obscene spans, tolerating lookalike characters, repeats and separators."""

    def __init__(
        self,
        terms: Iterable[str] = OBSCENE_TERMS,
        words: Iterable[str] = OBSCENE_WORDS,
    ):
        self._patterns = [re.compile(_term_pattern(t), re.IGNORECASE) for t in terms]
        self._patterns += [re.compile(_term_pattern(w, whole_word=True), re.IGNORECASE) for w in words]

    def find_all(self, text: str) -> List[Tuple[int, int]]:
        """(start, end) spans of every match, in no particular order."""
        spans = []
        for pattern in self._patterns:
            spans.extend(m.span() for m in pattern.finditer(text))
        return spans

    def has_match(self, text: str) -> bool:
        return any(p.search(text) for p in self._patterns)


_matcher = ObscenityMatcher()


def censor_spans(text: str, spans: Iterable[Tuple[int, int]]) -> str:
    """Replace each span with as many asterisks as it is long.

    Spans are applied from the highest start index down, so earlier offsets
    stay valid while later ones are rewritten.
    """
    for start, end in sorted(spans, key=lambda s: s[0], reverse=True):
        text = text[:start] + "*" * (end - start) + text[end:]
    return text


def censor_dictionary_words(text: str) -> str:
    """Star out whitespace-separated tokens the word list flags, keeping their length."""
    return re.sub(
        r"\S+",
        lambda m: "*" * len(m.group()) if profanity.contains_profanity(m.group()) else m.group(),
        text,
    )


def sanitize_name(raw: str, max_length: int = 20, matcher: ObscenityMatcher = _matcher) -> str:
    name = raw.strip()[:max_length]
    name = censor_dictionary_words(name)
    if matcher.has_match(name):
        name = censor_spans(name, matcher.find_all(name))
    return name[:max_length]
