"""
Matching configuration for spreadsheet-to-catalog reconciliation.

Synonym tables, stopwords, thresholds and header candidates are plain
immutable data. The normalizer, tokenizer and matcher receive a
MatchingConfig at construction, so adding a synonym or loosening a brand
never touches matching logic.

All patterns run against normalize() output: uppercase ASCII letters,
digits and single spaces.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class SynonymRule:
    """One whole-word regex replacement applied by canonicalize()."""
    pattern: str
    replacement: str = ""


@dataclass(frozen=True)
class MatchThresholds:
    """Eligibility floor for the scored fuzzy pass."""
    min_overlap_count: int = 2
    min_overlap_ratio: float = 0.45
    min_similarity: float = 0.86


@dataclass(frozen=True)
class ScoreWeights:
    """Weights of the fuzzy-pass score. Higher score wins."""
    whole_word_containment: float = 5.0
    substring_containment: float = 5.0
    overlap_ratio: float = 30.0
    similarity: float = 10.0
    numeric_match: float = 10.0
    token_count_cap: int = 5
    length_divisor: float = 5.0
    length_cap: float = 5.0


# =============================================================================
# SYNONYM RULES (applied in group order, whitespace collapsed after each)
# =============================================================================

# Material spellings and plural furniture types
MATERIAL_RULES = (
    SynonymRule(r"\bESCALIPTUS\b", "EUCALIPTUS"),
    SynonymRule(r"\bEUCALIPTOS?\b", "EUCALIPTUS"),
    SynonymRule(r"\bSILLONES\b", "SILLON"),
    SynonymRule(r"\bSILLAS\b", "SILLA"),
    SynonymRule(r"\bBANQUETAS\b", "BANQUETA"),
    SynonymRule(r"\bMESAS\b", "MESA"),
    SynonymRule(r"\bMESITAS\b", "MESITA"),
    SynonymRule(r"\bCADEIRAS\b", "CADEIRA"),
)

# Spanish/Portuguese furniture terms folded to one canonical term.
# Multi-word phrases come before the single words they contain.
CROSS_LANGUAGE_RULES = (
    # nightstand
    SynonymRule(r"\bMESA DE CABECEIRA\b", "CRIADO MUDO"),
    SynonymRule(r"\bMESINHA DE CABECEIRA\b", "CRIADO MUDO"),
    SynonymRule(r"\bMESITA DE LUZ\b", "CRIADO MUDO"),
    SynonymRule(r"\bMESA DE LUZ\b", "CRIADO MUDO"),
    SynonymRule(r"\bMESITA LUZ\b", "CRIADO MUDO"),
    SynonymRule(r"\bMESA LUZ\b", "CRIADO MUDO"),
    SynonymRule(r"\bVELADOR\b", "CRIADO MUDO"),
    # headboard
    SynonymRule(r"\bCABECE(?:IR|R)A DE CAMA\b", "CABECEIRA"),
    SynonymRule(r"\bCABECERO DE CAMA\b", "CABECEIRA"),
    SynonymRule(r"\bCABECERA\b", "CABECEIRA"),
    SynonymRule(r"\bCABECERO\b", "CABECEIRA"),
    SynonymRule(r"\bRESPALDO\b", "CABECEIRA"),
    # wardrobe
    SynonymRule(r"\bGUARDA ?R?ROPAS?\b", "ROUPEIRO"),
    SynonymRule(r"\bROPEROS?\b", "ROUPEIRO"),
    SynonymRule(r"\bPLACARD\b", "ROUPEIRO"),
    SynonymRule(r"\bARMARIOS?\b", "ROUPEIRO"),
    SynonymRule(r"\bGUARDA ROUPAS?\b", "ROUPEIRO"),
    # dresser
    SynonymRule(r"\bTOCADOR\b", "PENTEADEIRA"),
    SynonymRule(r"\bPEINADOR\b", "PENTEADEIRA"),
    # mirror qualifiers carry no signal: qualifier phrases first, then bare words
    SynonymRule(r"\bCON ESPEJOS?\b"),
    SynonymRule(r"\bC ESPEJOS?\b"),
    SynonymRule(r"\bCOM ESPELHOS?\b"),
    SynonymRule(r"\bC ESPELHOS?\b"),
    SynonymRule(r"\bESPEJOS?\b"),
    SynonymRule(r"\bESPELHOS?\b"),
)

# Door counts ("6 PUERTAS", "6 PTAS", "6P", "2 PORTAS") become one "<n>P"
# marker, then the marker is dropped.
DOOR_COUNT_RULES = (
    SynonymRule(r"\b(\d+) ?(?:PUERTAS|PUERTA|PTAS|PTA|PTS|PORTAS|PORTA|P)\b", r"\1P"),
    SynonymRule(r"\b\d+P\b"),
)

# Feet, legs and LED strips. The "+" separator never reaches these rules:
# normalize() already turns it into a space.
ACCESSORY_RULES = (
    SynonymRule(r"\bPES\b"),
    SynonymRule(r"\bPIES\b"),
    SynonymRule(r"\bPATAS\b"),
    SynonymRule(r"\bPERNAS\b"),
    SynonymRule(r"\bLED\b"),
)

DEFAULT_RULE_GROUPS = (
    MATERIAL_RULES,
    CROSS_LANGUAGE_RULES,
    DOOR_COUNT_RULES,
    ACCESSORY_RULES,
)

# Common Spanish/Portuguese function words
DEFAULT_STOPWORDS = frozenset({
    "DE", "DEL", "LA", "EL", "LOS", "LAS", "Y", "CON", "PARA", "EN", "AL", "A", "POR",
    "DA", "DO", "DAS", "DOS", "E", "COM", "EM", "AO", "AOS", "PRA",
})


# =============================================================================
# THRESHOLDS
# =============================================================================

DEFAULT_THRESHOLDS = MatchThresholds()

# Brands with historically noisy naming in supplier sheets
LOOSE_THRESHOLDS = MatchThresholds(
    min_overlap_count=1,
    min_overlap_ratio=0.30,
    min_similarity=0.80,
)

# Keys are canonicalized brand names
DEFAULT_BRAND_OVERRIDES = MappingProxyType({
    "MOVAL": LOOSE_THRESHOLDS,
})


# =============================================================================
# SHEET HEADERS
# =============================================================================

NAME_HEADER_CANDIDATES = (
    "articulo", "producto", "descripcion", "modelo", "nombre", "name",
)

PRICE_HEADER_CANDIDATES = (
    "web", "unitario", "precio", "price", "valor", "monto",
)

COST_HEADER_CANDIDATES = (
    "costo", "cost", "compra", "valor compra", "precio compra", "costo unitario",
)

BRAND_HEADER_CANDIDATES = ("marca", "brand")

# Keyed by ValueMode value
DEFAULT_VALUE_HEADER_CANDIDATES = MappingProxyType({
    "price": PRICE_HEADER_CANDIDATES,
    "cost": COST_HEADER_CANDIDATES,
})

# Any of these in a row marks it as the header row of a sheet export
HEADER_ROW_KEYWORDS = frozenset(
    NAME_HEADER_CANDIDATES + PRICE_HEADER_CANDIDATES + COST_HEADER_CANDIDATES
)


@dataclass(frozen=True)
class MatchingConfig:
    """Everything the normalizer, tokenizer and matcher are tuned by."""
    rule_groups: tuple = DEFAULT_RULE_GROUPS
    stopwords: frozenset = DEFAULT_STOPWORDS
    default_thresholds: MatchThresholds = DEFAULT_THRESHOLDS
    brand_overrides: Mapping[str, MatchThresholds] = field(
        default_factory=lambda: DEFAULT_BRAND_OVERRIDES
    )
    weights: ScoreWeights = field(default_factory=ScoreWeights)

    # Relaxed fallback pass
    relaxed_min_overlap_count: int = 1
    relaxed_min_similarity: float = 0.80
    min_containment_length: int = 3   # names must be longer than this
    min_slug_length: int = 5          # slugs must be longer than this

    # Header resolution
    name_header_candidates: tuple = NAME_HEADER_CANDIDATES
    value_header_candidates: Mapping[str, tuple] = field(
        default_factory=lambda: DEFAULT_VALUE_HEADER_CANDIDATES
    )
    brand_header_candidates: tuple = BRAND_HEADER_CANDIDATES

    def thresholds_for(self, brand_key: Optional[str]) -> MatchThresholds:
        """Thresholds for a canonicalized brand, defaulting to the global ones."""
        if brand_key and brand_key in self.brand_overrides:
            return self.brand_overrides[brand_key]
        return self.default_thresholds


DEFAULT_MATCHING_CONFIG = MatchingConfig()
