import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Tuple, Union

from keyword_detector.ocr.words import DetectedWord

log_handle = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"[^\w\s]")
_NON_WORD_STRICT_RE = re.compile(r"[^\w]")
# Only sentence punctuation is trimmed; + and # stay part of terms like c++ and c#
_EDGE_PUNCTUATION = ".,:;!?\"'()[]{}<>"


class MatchMode(str, Enum):
    SUBSTRING = "substring"
    EXACT = "exact"

    @classmethod
    def parse(cls, value: Union[str, "MatchMode", None]) -> "MatchMode":
        if value is None:
            return cls.SUBSTRING
        if isinstance(value, MatchMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown match mode '{value}'. Expected one of {[m.value for m in cls]}")


def normalize_word(text: str) -> str:
    """Lower-cases and strips everything that is not a word character or whitespace."""
    return _NON_WORD_RE.sub("", text.lower())


def trim_term(text: str) -> str:
    """Lower-cases and trims whitespace and sentence punctuation from both ends."""
    return text.lower().strip().strip(_EDGE_PUNCTUATION).strip()


def parse_keywords(raw: Union[str, Iterable[str], None]) -> List[str]:
    """
    Turns user keyword input into a clean list.

    Accepts "hello, World ,text" or ["hello", "World"]. Keywords are
    lower-cased and trimmed of surrounding whitespace and sentence
    punctuation ("total:" becomes "total"). Inner characters are kept, so
    "c++" and "e-mail" stay whole. Empty entries and repeats are dropped;
    the first occurrence order is kept.
    """
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)

    keywords = []
    for part in parts:
        keyword = trim_term(str(part))
        if keyword and keyword not in keywords:
            keywords.append(keyword)
    return keywords


@dataclass
class MatchedWord:
    word: DetectedWord
    keywords: List[str]


@dataclass
class MatchResult:
    matches: List[MatchedWord] = field(default_factory=list)
    matched_keywords: List[str] = field(default_factory=list)

    @property
    def instances(self) -> int:
        return len(self.matches)


class KeywordMatcher:
    """
    Case-insensitive keyword filter over OCR words.

    In substring mode a keyword matches any word containing it ("invoice"
    matches "Invoices"); in exact mode the trimmed or normalised word must
    equal it. A keyword with inner symbols such as "c++" only matches words
    that contain them.
    """

    def __init__(self, keywords: Union[str, Iterable[str]], mode: Union[str, MatchMode] = MatchMode.SUBSTRING):
        self._keywords = parse_keywords(keywords)
        self._mode = MatchMode.parse(mode)

    @property
    def keywords(self) -> List[str]:
        return list(self._keywords)

    @property
    def mode(self) -> MatchMode:
        return self._mode

    def _matches(self, forms: Tuple[str, ...], keyword: str) -> bool:
        if self._mode is MatchMode.EXACT:
            return any(form == keyword for form in forms)
        return any(keyword in form for form in forms)

    def match_word(self, text: str) -> List[str]:
        # The trimmed text keeps symbols for keywords like c++; the normalised text drops them
        forms = tuple(form for form in (trim_term(text), normalize_word(text).strip()) if form)
        if not forms:
            return []
        return [k for k in self._keywords if self._matches(forms, k)]

    def filter_words(self, words: Iterable[DetectedWord]) -> MatchResult:
        result = MatchResult()
        for word in words:
            hits = self.match_word(word.text)
            if not hits:
                continue
            log_handle.verbose(f"BBOX MATCH FOUND! Word: {word.text} matches keywords: {hits}")
            result.matches.append(MatchedWord(word=word, keywords=hits))
            for keyword in hits:
                if keyword not in result.matched_keywords:
                    result.matched_keywords.append(keyword)

        log_handle.info(f"Matched {result.instances} words for keywords {result.matched_keywords}")
        return result

    def match_text(self, text: str) -> List[str]:
        """Text-only matching for when the engine returned no word boxes."""
        matched = []
        if not text or not text.strip():
            return matched
        for token in text.lower().split():
            forms = tuple(form for form in (trim_term(token), _NON_WORD_STRICT_RE.sub("", token)) if form)
            if not forms:
                continue
            for keyword in self._keywords:
                if keyword not in matched and self._matches(forms, keyword):
                    log_handle.verbose(f"Text-based match found: {token} contains {keyword}")
                    matched.append(keyword)
        # Keep keyword list order, not text order
        return [k for k in self._keywords if k in matched]
