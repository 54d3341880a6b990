"""
Deterministic normalization only. No lookups, no fuzzy logic.
Produces the comparison form used by the vocabulary index and the matcher.
"""
import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

# Label noise seen at either end of an ingredient: footnote marks, list bullets,
# trailing punctuation, trademark signs. Parentheses are never stripped.
DEFAULT_STRIP_CHARS = "*†‡§¶#.,;:!?'\"`~^_-–—•·®™©"

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PERCENT = re.compile(r"\s*\d+(?:\.\d+)?\s*%$")
_STEREO_PREFIX = re.compile(r"\b(?:dl|d|l)-")
_PAREN_OPEN_SPACE = re.compile(r"\(\s+")
_PAREN_CLOSE_SPACE = re.compile(r"\s+\)")


@dataclass(frozen=True)
class NormalizerConfig:
    strip_chars: str = DEFAULT_STRIP_CHARS
    strip_trailing_percent: bool = True
    strip_stereo_prefixes: bool = False


DEFAULT_CONFIG = NormalizerConfig()


def _pass(t: str, config: NormalizerConfig) -> str:
    t = _WHITESPACE.sub(" ", t)
    t = t.strip(config.strip_chars + " ")
    if config.strip_trailing_percent:
        t = _TRAILING_PERCENT.sub("", t)
    if config.strip_stereo_prefixes:
        t = _STEREO_PREFIX.sub("", t)
    # qualifier text like "(root)" keeps its parentheses
    t = _PAREN_OPEN_SPACE.sub("(", t)
    t = _PAREN_CLOSE_SPACE.sub(")", t)
    return t.strip(config.strip_chars + " ")


def normalize(raw: object, config: Optional[NormalizerConfig] = None) -> str:
    """
    Normalize a raw ingredient string for comparison.
    - Trim, lowercase, collapse whitespace runs to one space.
    - Strip configured symbol characters at both ends.
    - Drop a trailing percentage ("1%") and, if configured, d-/l-/dl- prefixes.
    - Parenthetical groups are lowercased but kept.
    Total: non-string or empty input returns "". Idempotent by construction
    (passes repeat until the text stops changing).
    """
    if not raw or not isinstance(raw, str):
        return ""
    cfg = config or DEFAULT_CONFIG
    t = raw.strip().lower()
    prev = None
    while t != prev:
        prev = t
        t = _pass(t, cfg)
    return t


_WORD = re.compile(r"[^\W_]+")


def word_tokens(normalized: str) -> List[str]:
    """Alphanumeric words of a normalized name ('calcium d-pantothenate' -> ['calcium', 'd', 'pantothenate'])."""
    return _WORD.findall(normalized or "")


def split_compound(normalized: str) -> Tuple[str, List[str]]:
    """
    Split a normalized compound ingredient into its head and the
    sub-ingredients listed in its parenthetical groups.

    'chocolate (sugar, cocoa butter, milk)' -> ('chocolate', ['sugar', 'cocoa butter', 'milk'])
    'ginseng (root)'                        -> ('ginseng', ['root'])
    'sugar'                                 -> ('sugar', [])
    """
    if "(" not in normalized:
        return normalized, []
    head_chars: List[str] = []
    subs: List[str] = []
    current: List[str] = []
    depth = 0
    for ch in normalized:
        if ch == "(":
            if depth > 0:
                current.append(ch)
            depth += 1
            continue
        if ch == ")" and depth > 0:
            depth -= 1
            if depth == 0:
                subs.append("".join(current))
                current = []
            else:
                current.append(ch)
            continue
        if depth == 0:
            head_chars.append(ch)
        else:
            current.append(ch)
    if current:
        # unbalanced "(" runs to the end of the string
        subs.append("".join(current))

    parts: List[str] = []
    for group in subs:
        for piece in re.split(r"[,;]", group):
            piece = normalize(piece)
            if piece and piece not in parts:
                parts.append(piece)
    head = normalize("".join(head_chars))
    logger.debug("SPLIT_COMPOUND raw=%s head=%s subs=%s", normalized, head, parts)
    return head, parts
