"""
Text utilities for matching Spanish/Portuguese furniture names.

normalize() strips accents, case and punctuation. TextNormalizer adds the
synonym rules that fold ES/PT furniture vocabulary onto one canonical
term, and Tokenizer turns canonical text into comparable tokens:

    "Ropero 3 Puertas Blanco" -> canonicalize -> "ROUPEIRO BLANCO"
    "Mesa de luz c/espejo"    -> canonicalize -> "CRIADO MUDO"
    "Sillas Eucalipto x4"     -> tokenize     -> ["SILLA", "EUCALIPTU", "X4"]

None of these functions raise on None or empty input.
"""

import re
import unicodedata
from functools import lru_cache
from typing import Optional, Union

from config.matching import MatchingConfig, DEFAULT_MATCHING_CONFIG

_NON_ALNUM = re.compile(r"[^A-Z0-9 ]")
_WHITESPACE = re.compile(r"\s+")
# "1,40" and "1.40" are the same measure as "140"
_MEASURE_SEPARATOR = re.compile(r"(?<=\d)[,.](?=\d)")


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize(text: Optional[Union[str, int, float]]) -> str:
    """
    Normalize text for comparison.

    - "Cômoda Giardino" → "COMODA GIARDINO"
    - "ARMARIO C/ESPEJO (Joy)" → "ARMARIO C ESPEJO JOY"
    - "  1,40 x 1,90 " → "1 40 X 1 90"

    Args:
        text: Raw text; numbers are converted to their string form

    Returns:
        Uppercase ASCII letters, digits and single spaces ("" for None)
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    # NFD separates base chars from accents (category 'Mn')
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")

    return _collapse(_NON_ALNUM.sub(" ", stripped.upper()))


def stem(token: str) -> str:
    """Drop a plural trailing S from tokens longer than 3 characters."""
    if len(token) > 3 and token.endswith("S"):
        return token[:-1]
    return token


class TextNormalizer:
    """
    Applies the configured synonym rule groups on top of normalize().

    Groups run in order and every rule sees the previous rule's output,
    so door counts are stripped only after "2 PUERTAS ROPERO" has become
    "2 PUERTAS ROUPEIRO".
    """

    def __init__(self, config: MatchingConfig = DEFAULT_MATCHING_CONFIG):
        self.config = config
        self._rules = [
            (re.compile(rule.pattern), rule.replacement)
            for group in config.rule_groups
            for rule in group
        ]
        # Catalog names are canonicalized once per entry otherwise
        self.canonicalize = lru_cache(maxsize=16384)(self._canonicalize)

    def _canonicalize(self, text: Optional[str]) -> str:
        if text is None:
            return ""
        # Measures are joined before punctuation turns "1,40" into "1 40"
        result = normalize(_MEASURE_SEPARATOR.sub("", str(text)))
        for pattern, replacement in self._rules:
            if not result:
                break
            result = _collapse(pattern.sub(replacement, result))
        return result

    def slug(self, text: Optional[str]) -> str:
        """Canonical text with all whitespace removed ("MESA 1,40" → "MESA140")."""
        return self.canonicalize(text).replace(" ", "")


class Tokenizer:
    """Splits canonical text into stemmed, stopword-free tokens."""

    def __init__(
        self,
        normalizer: Optional[TextNormalizer] = None,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG
    ):
        self.normalizer = normalizer or TextNormalizer(config)
        self.stopwords = config.stopwords

    def tokenize(self, text: Optional[str]) -> list[str]:
        """
        Tokenize text in input order.

        Short tokens are dropped unless numeric: "80" and "1" are
        dimensions and always kept, "C" (from "C/PATAS") is noise.
        """
        tokens = []
        for token in self.normalizer.canonicalize(text).split(" "):
            if not token or token in self.stopwords:
                continue
            if len(token) < 2 and not token.isdigit():
                continue
            tokens.append(stem(token))
        return tokens


# Default instances for convenient imports
_default_normalizer = TextNormalizer()
_default_tokenizer = Tokenizer(_default_normalizer)


def canonicalize(text: Optional[str]) -> str:
    """canonicalize() with the default matching configuration."""
    return _default_normalizer.canonicalize(text)


def tokenize(text: Optional[str]) -> list[str]:
    """tokenize() with the default matching configuration."""
    return _default_tokenizer.tokenize(text)
