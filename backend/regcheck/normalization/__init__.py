from .normalizer import (
    DEFAULT_STRIP_CHARS,
    NormalizerConfig,
    normalize,
    split_compound,
    word_tokens,
)

__all__ = [
    "DEFAULT_STRIP_CHARS",
    "NormalizerConfig",
    "normalize",
    "split_compound",
    "word_tokens",
]
