"""
Candidate matcher: resolves one sheet entry to catalog products.

Passes run in order and stop at the first one that finds something:

1. Brand narrowing (whole catalog when the brand matches nothing)
2. Exact canonical name
3. Scored fuzzy match with per-brand thresholds
4. Relaxed fallback (containment, slug, loose overlap)

No match is a normal outcome, never an exception.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import structlog

from config.matching import MatchingConfig, DEFAULT_MATCHING_CONFIG
from models.product import ProductResponse
from models.reconciliation import (
    MatchOptions,
    MatchOutcome,
    MatchResult,
    MatchType,
    SheetEntry,
    ValueMode,
)
from utils.similarity import edit_similarity, token_overlap
from utils.text_utils import TextNormalizer, Tokenizer, normalize

logger = structlog.get_logger(__name__)

MIN_SEARCH_LENGTH = 2
DEFAULT_SEARCH_LIMIT = 10


@dataclass
class _Candidate:
    """Catalog product with its canonical name and tokens."""
    product: ProductResponse
    canonical: str
    brand_key: str
    tokens: list[str]


@dataclass
class _Scored:
    candidate: _Candidate
    score: float


def current_value(product: ProductResponse, mode: ValueMode) -> float:
    """The catalog value a sheet in this mode would replace."""
    if mode == ValueMode.COST:
        return product.cost or 0
    return product.price or 0


class CandidateMatcher:
    """
    Matches sheet entries against a catalog snapshot.

    Stateless apart from its configuration; one instance can be shared
    across runs.
    """

    def __init__(
        self,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
        normalizer: Optional[TextNormalizer] = None
    ):
        self.config = config
        self.normalizer = normalizer or TextNormalizer(config)
        self.tokenizer = Tokenizer(self.normalizer, config)

    # ===================
    # MATCHING
    # ===================

    def match(
        self,
        entry: SheetEntry,
        catalog: Sequence[ProductResponse],
        options: Optional[MatchOptions] = None
    ) -> MatchOutcome:
        """
        Match one entry.

        Args:
            entry: Validated sheet entry (non-empty name, positive value)
            catalog: Catalog snapshot
            options: apply_all_variants and value mode

        Returns:
            MatchOutcome, with no results when nothing cleared the thresholds
        """
        options = options or MatchOptions()
        entry_canonical = self.normalizer.canonicalize(entry.name)
        entry_brand = self.normalizer.canonicalize(entry.brand)
        candidates = self.narrow_candidates(entry_brand, catalog)

        if not candidates:
            return MatchOutcome()

        entry_tokens = self.tokenizer.tokenize(entry.name)

        exact = self._exact_pass(
            entry_canonical, entry_tokens, entry_brand, candidates, options
        )
        if exact:
            return self._outcome(entry, exact, MatchType.EXACT, options)

        fuzzy = self._fuzzy_pass(
            entry_canonical, entry_tokens, entry_brand, candidates, options
        )
        if fuzzy:
            return self._outcome(entry, fuzzy, MatchType.FUZZY, options)

        fallback = self._fallback_pass(entry_canonical, entry_tokens, candidates)
        if fallback:
            return self._outcome(entry, [fallback], MatchType.FALLBACK, options)

        logger.debug("entry_unmatched", name=entry.name, brand=entry.brand)
        return MatchOutcome()

    def narrow_candidates(
        self,
        brand_key: str,
        catalog: Sequence[ProductResponse]
    ) -> list[_Candidate]:
        """
        Candidates of the entry's brand, or the whole catalog.

        Brand is a hint: an unknown or missing brand never empties the
        candidate list.
        """
        candidates = [self._candidate(p) for p in catalog]
        if brand_key:
            same_brand = [c for c in candidates if c.brand_key == brand_key]
            if same_brand:
                return same_brand
        return candidates

    def _candidate(self, product: ProductResponse) -> _Candidate:
        return _Candidate(
            product=product,
            canonical=self.normalizer.canonicalize(product.name),
            brand_key=self.normalizer.canonicalize(product.brand),
            tokens=self.tokenizer.tokenize(product.name),
        )

    def _exact_pass(
        self,
        entry_canonical: str,
        entry_tokens: list[str],
        entry_brand: str,
        candidates: list[_Candidate],
        options: MatchOptions
    ) -> list[_Scored]:
        if not entry_canonical:
            return []

        exact = [c for c in candidates if c.canonical == entry_canonical]
        if not exact:
            return []

        if not options.apply_all_variants:
            preferred = next(
                (c for c in exact if entry_brand and c.brand_key == entry_brand),
                exact[0]
            )
            exact = [preferred]

        return [
            _Scored(c, self.score(entry_canonical, entry_tokens, c.canonical, c.tokens))
            for c in exact
        ]

    def _fuzzy_pass(
        self,
        entry_canonical: str,
        entry_tokens: list[str],
        entry_brand: str,
        candidates: list[_Candidate],
        options: MatchOptions
    ) -> list[_Scored]:
        eligible: list[_Scored] = []

        for candidate in candidates:
            thresholds = self.config.thresholds_for(entry_brand or candidate.brand_key)
            overlap = token_overlap(entry_tokens, candidate.tokens)
            if overlap.count < thresholds.min_overlap_count:
                continue

            similarity = edit_similarity(entry_canonical, candidate.canonical)
            if (
                overlap.ratio < thresholds.min_overlap_ratio
                and similarity < thresholds.min_similarity
            ):
                continue

            eligible.append(_Scored(
                candidate,
                self.score(entry_canonical, entry_tokens, candidate.canonical, candidate.tokens)
            ))

        if not eligible:
            return []

        if options.apply_all_variants:
            # Stable sort keeps catalog order among equal scores
            return sorted(eligible, key=lambda s: s.score, reverse=True)

        best = eligible[0]
        for scored in eligible[1:]:
            if scored.score > best.score:
                best = scored
        return [best]

    def _fallback_pass(
        self,
        entry_canonical: str,
        entry_tokens: list[str],
        candidates: list[_Candidate]
    ) -> Optional[_Scored]:
        """First candidate satisfying any relaxed rule, rules tried in order."""
        config = self.config
        entry_slug = entry_canonical.replace(" ", "")

        def contains(c: _Candidate) -> bool:
            if len(entry_canonical) <= config.min_containment_length:
                return False
            if len(c.canonical) <= config.min_containment_length:
                return False
            return entry_canonical in c.canonical or c.canonical in entry_canonical

        def slug_match(c: _Candidate) -> bool:
            candidate_slug = c.canonical.replace(" ", "")
            if not entry_slug or not candidate_slug:
                return False
            if entry_slug == candidate_slug:
                return True
            return (
                (len(entry_slug) > config.min_slug_length and entry_slug in candidate_slug)
                or (len(candidate_slug) > config.min_slug_length and candidate_slug in entry_slug)
            )

        def loose_overlap(c: _Candidate) -> bool:
            overlap = token_overlap(entry_tokens, c.tokens)
            return (
                overlap.count >= config.relaxed_min_overlap_count
                and edit_similarity(entry_canonical, c.canonical) >= config.relaxed_min_similarity
            )

        for rule in (contains, slug_match, loose_overlap):
            for candidate in candidates:
                if rule(candidate):
                    logger.debug(
                        "fallback_match",
                        rule=rule.__name__,
                        entry=entry_canonical,
                        product_id=candidate.product.id
                    )
                    return _Scored(
                        candidate,
                        self.score(entry_canonical, entry_tokens, candidate.canonical, candidate.tokens)
                    )
        return None

    # ===================
    # SCORING
    # ===================

    def score(
        self,
        entry_canonical: str,
        entry_tokens: list[str],
        candidate_canonical: str,
        candidate_tokens: list[str]
    ) -> float:
        """
        Weighted match score. Higher is better.

        Containment and numeric bonuses reward the candidate; the token
        count and length bonuses reward more specific entries, which
        decides between entries competing for the same product.
        """
        weights = self.config.weights
        score = 0.0

        if entry_canonical and candidate_canonical:
            padded_entry = f" {entry_canonical} "
            padded_candidate = f" {candidate_canonical} "
            if padded_entry in padded_candidate or padded_candidate in padded_entry:
                score += weights.whole_word_containment
            if entry_canonical in candidate_canonical or candidate_canonical in entry_canonical:
                score += weights.substring_containment

        overlap = token_overlap(entry_tokens, candidate_tokens)
        score += overlap.ratio * weights.overlap_ratio
        score += edit_similarity(entry_canonical, candidate_canonical) * weights.similarity

        entry_numbers = {t for t in entry_tokens if any(ch.isdigit() for ch in t)}
        if entry_numbers & set(candidate_tokens):
            score += weights.numeric_match

        score += min(len(entry_tokens), weights.token_count_cap)
        score += min(len(entry_canonical) / weights.length_divisor, weights.length_cap)
        return round(score, 4)

    def _outcome(
        self,
        entry: SheetEntry,
        scored: list[_Scored],
        match_type: MatchType,
        options: MatchOptions
    ) -> MatchOutcome:
        results: list[MatchResult] = []
        seen: set[int] = set()

        for item in scored:
            product = item.candidate.product
            if product.id in seen:
                continue
            seen.add(product.id)
            results.append(MatchResult(
                product_id=product.id,
                product_name=product.name,
                brand=product.brand,
                current_value=current_value(product, options.mode),
                proposed_value=entry.value,
                score=item.score,
                match_type=match_type,
                sheet_name=entry.name,
            ))

        logger.debug(
            "entry_matched",
            name=entry.name,
            match_type=match_type.value,
            product_ids=[r.product_id for r in results]
        )
        return MatchOutcome(matched=results)


def search_catalog(
    term: Optional[str],
    catalog: Sequence[ProductResponse],
    limit: int = DEFAULT_SEARCH_LIMIT
) -> list[ProductResponse]:
    """
    Manual search for binding unmatched entries.

    Every search token must appear in the normalized product name.
    Terms shorter than 2 characters return nothing.
    """
    normalized = normalize(term)
    if len(normalized) < MIN_SEARCH_LENGTH:
        return []

    tokens = normalized.split(" ")
    found = []
    for product in catalog:
        name = normalize(product.name)
        if all(token in name for token in tokens):
            found.append(product)
            if len(found) >= limit:
                break
    return found


# Singleton instance for convenience
_matcher: Optional[CandidateMatcher] = None


def get_matcher() -> CandidateMatcher:
    """Get or create the default CandidateMatcher."""
    global _matcher
    if _matcher is None:
        _matcher = CandidateMatcher()
    return _matcher
