"""
Ordered match cascade over one vocabulary snapshot:
  1) exact   - normalized input equals a canonical name
  2) synonym - normalized input equals a synonym
  3) fuzzy   - substring either way, or a shared significant word
  4) none
Exact and synonym hits come from curated data (high confidence). Fuzzy hits
are ambiguous ("sodium propionate" vs "calcium propionate") and always low.
"""
from difflib import SequenceMatcher
from typing import Callable, Iterable, Optional, Tuple
import logging

from regcheck.models.results import MatchResult, MatchType
from regcheck.normalization.normalizer import word_tokens
from regcheck.vocabulary.snapshot import FuzzyTerm, VocabularySnapshot

logger = logging.getLogger(__name__)

# Words too generic to link two ingredients on their own.
DEFAULT_STOPWORDS = frozenset({
    "extract", "powder", "concentrate", "isolate", "blend", "complex",
    "root", "seed", "seeds", "leaf", "leaves", "fruit", "berry",
    "acid", "natural", "organic", "flavor", "flavoring", "from", "with",
    "contains", "derived", "other", "less", "than", "dried",
})

MIN_SIGNIFICANT_LENGTH = 4

FuzzyRank = Callable[[str, str], Tuple]


def longest_common_substring(a: str, b: str) -> int:
    if not a or not b:
        return 0
    return SequenceMatcher(None, a, b, autojunk=False).find_longest_match(0, len(a), 0, len(b)).size


def rank_longest_substring(normalized_input: str, term: str) -> Tuple:
    """Sort key, lower wins: longest common substring with the input, then the shortest term."""
    return (-longest_common_substring(normalized_input, term), len(term))


def rank_contained_then_longest_substring(normalized_input: str, term: str) -> Tuple:
    """
    Alternative key: a term contained in the input (or containing it) beats a
    shared-word candidate before substring length is compared.
    """
    contained = term in normalized_input or normalized_input in term
    return (0 if contained else 1, -longest_common_substring(normalized_input, term), len(term))


def contains_whole_words(text: str, part: str) -> bool:
    """part occurs in text with no letter or digit directly before or after it."""
    start = text.find(part)
    while start != -1:
        end = start + len(part)
        if (start == 0 or not text[start - 1].isalnum()) and (end == len(text) or not text[end].isalnum()):
            return True
        start = text.find(part, start + 1)
    return False


class Matcher:
    """
    match(normalized_input, snapshot) -> MatchResult.
    The fuzzy ranking is pluggable: rank(input, candidate_key) returns a sort key,
    lowest wins, store order breaks remaining ties.

    Fuzzy candidates by default: the input contains a term, a term contains the
    input, or both share a significant word. Narrower modes:
      either_direction=False  only terms found inside the input
      shared_words=False      no word-overlap candidates
      whole_words=True        containment must fall on word boundaries
    """

    def __init__(
        self,
        stopwords: Iterable[str] = DEFAULT_STOPWORDS,
        min_word_length: int = MIN_SIGNIFICANT_LENGTH,
        rank: FuzzyRank = rank_longest_substring,
        either_direction: bool = True,
        shared_words: bool = True,
        whole_words: bool = False,
    ):
        self._stopwords = frozenset(stopwords)
        self._min_len = min_word_length
        self._rank = rank
        self._either_direction = either_direction
        self._shared_words = shared_words
        self._whole_words = whole_words

    def significant_words(self, normalized: str) -> frozenset:
        return frozenset(
            w for w in word_tokens(normalized)
            if len(w) >= self._min_len and w not in self._stopwords
        )

    def _contains(self, text: str, part: str) -> bool:
        # one- to three-letter fragments ("c", "oil") are contained in too many names
        if len(part) < self._min_len:
            return False
        if self._whole_words:
            return contains_whole_words(text, part)
        return part in text

    def _is_candidate(self, normalized_input: str, words: frozenset, term: FuzzyTerm) -> bool:
        if self._contains(normalized_input, term.key):
            return True
        if self._either_direction and self._contains(term.key, normalized_input):
            return True
        return bool(words) and not words.isdisjoint(term.words)

    def best_fuzzy(self, normalized_input: str, snapshot: VocabularySnapshot) -> Optional[FuzzyTerm]:
        words = self.significant_words(normalized_input) if self._shared_words else frozenset()
        best: Optional[FuzzyTerm] = None
        best_key = None
        for term in snapshot.fuzzy_terms:
            if not self._is_candidate(normalized_input, words, term):
                continue
            key = self._rank(normalized_input, term.key)
            if best_key is None or key < best_key:
                best, best_key = term, key
        return best

    def match(self, normalized_input: str, snapshot: VocabularySnapshot, raw: Optional[str] = None) -> MatchResult:
        display = normalized_input if raw is None else raw
        vid = snapshot.vocabulary_id
        if not normalized_input:
            return MatchResult(input=display, vocabulary_id=vid)

        entry = snapshot.lookup(normalized_input)
        if entry is not None:
            return MatchResult(
                input=display,
                match_type=MatchType.EXACT if entry.is_canonical else MatchType.SYNONYM,
                matched_record=entry.record,
                matched_term=entry.term,
                normalized=normalized_input,
                vocabulary_id=vid,
            )

        term = self.best_fuzzy(normalized_input, snapshot)
        if term is not None:
            logger.debug(
                "MATCH fuzzy vocabulary=%s input=%s candidate=%s record=%s",
                vid, normalized_input, term.key, term.record.canonical_name,
            )
            return MatchResult(
                input=display,
                match_type=MatchType.FUZZY,
                matched_record=term.record,
                matched_term=term.key,
                normalized=normalized_input,
                vocabulary_id=vid,
            )
        return MatchResult(input=display, normalized=normalized_input, vocabulary_id=vid)
