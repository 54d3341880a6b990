from .matcher import (
    DEFAULT_STOPWORDS,
    Matcher,
    contains_whole_words,
    longest_common_substring,
    rank_contained_then_longest_substring,
    rank_longest_substring,
)
from .allergen_resolver import AllergenResolver, allergen_matcher, parse_categories

__all__ = [
    "DEFAULT_STOPWORDS",
    "contains_whole_words",
    "Matcher",
    "longest_common_substring",
    "rank_contained_then_longest_substring",
    "rank_longest_substring",
    "allergen_matcher",
    "AllergenResolver",
    "parse_categories",
]
