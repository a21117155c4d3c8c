"""
Unit tests for CandidateMatcher.

The matcher is pure: no database, catalog snapshots built in memory.

Run: pytest tests/unit/test_matcher_service.py -v
"""

import pytest

from config.matching import MatchingConfig, MatchThresholds
from models.reconciliation import MatchOptions, MatchType, ValueMode
from services.matcher_service import CandidateMatcher, search_catalog, current_value

from tests.factories import ProductFactory, entry


@pytest.fixture
def matcher() -> CandidateMatcher:
    return CandidateMatcher()


ALL_VARIANTS = MatchOptions(apply_all_variants=True)
SINGLE_VARIANT = MatchOptions(apply_all_variants=False)


class TestExactPass:
    """Exact canonical name matches"""

    def test_spanish_wardrobe_matches_portuguese_name(self, matcher):
        # Arrange
        catalog = ProductFactory.catalog(
            ("ROUPEIRO 3P BLANCO", "Moval"),
            ("Criado Mudo", "Moval"),
        )

        # Act
        outcome = matcher.match(
            entry("ROPERO 3 PUERTAS BLANCO", brand="Moval", value=150000),
            catalog
        )

        # Assert
        assert not outcome.unmatched
        assert [r.product_id for r in outcome.matched] == [1]
        assert outcome.matched[0].match_type == MatchType.EXACT
        assert outcome.matched[0].proposed_value == 150000

    def test_nightstand_with_mirror_matches_criado_mudo(self, matcher):
        catalog = ProductFactory.catalog(
            ("Roupeiro Blanco", "Moval"),
            ("Criado Mudo", "Moval"),
        )

        outcome = matcher.match(entry("Mesa de luz con espejo", brand="Moval"), catalog)

        assert [r.product_id for r in outcome.matched] == [2]
        assert outcome.matched[0].match_type == MatchType.EXACT

    def test_apply_all_variants_matches_every_exact_product(self, matcher):
        # Arrange: same canonical name, different brands
        catalog = ProductFactory.catalog(
            ("Criado Mudo", "Moval"),
            ("CRIADO-MUDO", "Demobile"),
            ("Cômoda Giardino", "Demobile"),
        )

        # Act
        outcome = matcher.match(entry("Criado Mudo"), catalog, ALL_VARIANTS)

        # Assert
        assert sorted(r.product_id for r in outcome.matched) == [1, 2]

    def test_single_variant_prefers_entry_brand(self, matcher):
        catalog = ProductFactory.catalog(
            ("Criado Mudo", "Moval"),
            ("Criado Mudo", "Demobile"),
        )

        no_brand = matcher.match(entry("Criado Mudo"), catalog, SINGLE_VARIANT)

        assert len(no_brand.matched) == 1
        assert no_brand.matched[0].product_id == 1

    def test_single_variant_with_brand_narrowing(self, matcher):
        catalog = ProductFactory.catalog(
            ("Criado Mudo", "Moval"),
            ("Criado Mudo", "Demobile"),
        )

        outcome = matcher.match(entry("Criado Mudo", brand="DEMOBILE"), catalog, SINGLE_VARIANT)

        assert [r.product_id for r in outcome.matched] == [2]

    def test_exact_wins_even_below_fuzzy_thresholds(self):
        # Arrange: thresholds no candidate could ever clear
        config = MatchingConfig(
            default_thresholds=MatchThresholds(
                min_overlap_count=99, min_overlap_ratio=2.0, min_similarity=2.0
            ),
            brand_overrides={}
        )
        matcher = CandidateMatcher(config)
        catalog = ProductFactory.catalog(("Criado Mudo", "Moval"))

        # Act
        outcome = matcher.match(entry("criado-mudo"), catalog)

        # Assert
        assert outcome.matched[0].match_type == MatchType.EXACT


class TestMeasures:
    """Decimal-comma sizes must not match a different size"""

    @pytest.mark.parametrize("options", [ALL_VARIANTS, SINGLE_VARIANT])
    def test_comma_size_matches_joined_size_only(self, matcher, options):
        # Arrange
        catalog = ProductFactory.catalog(
            ("CAMA ANDES 1,60", "Piero"),
            ("CAMA ANDES 140", "Piero"),
        )

        # Act
        outcome = matcher.match(entry("CAMA ANDES 1,40"), catalog, options)

        # Assert
        assert [r.product_id for r in outcome.matched] == [2]
        assert outcome.matched[0].match_type == MatchType.EXACT

    def test_same_size_wins_fuzzy_pass(self, matcher):
        catalog = ProductFactory.catalog(
            ("CAMA ANDES 1,60 NOGAL", "Piero"),
            ("CAMA ANDES 140", "Piero"),
        )

        outcome = matcher.match(entry("CAMA ANDES 1,40 NOGAL"), catalog, SINGLE_VARIANT)

        assert [r.product_id for r in outcome.matched] == [2]
        assert outcome.matched[0].match_type == MatchType.FUZZY


class TestBrandNarrowing:
    """Brand is a hint, never a hard filter"""

    def test_unknown_brand_falls_back_to_whole_catalog(self, matcher):
        catalog = ProductFactory.catalog(("Criado Mudo", "Moval"))

        outcome = matcher.match(entry("Criado Mudo", brand="Marca Nueva"), catalog)

        assert [r.product_id for r in outcome.matched] == [1]

    def test_brand_narrows_candidates(self, matcher):
        catalog = ProductFactory.catalog(
            ("Criado Mudo", "Moval"),
            ("Criado Mudo", "Demobile"),
        )

        outcome = matcher.match(entry("Criado Mudo", brand="Moval"), catalog, ALL_VARIANTS)

        assert [r.product_id for r in outcome.matched] == [1]

    def test_brand_comparison_ignores_case_and_accents(self, matcher):
        catalog = ProductFactory.catalog(("Criado Mudo", "San José"))

        candidates = matcher.narrow_candidates("SAN JOSE", catalog)

        assert len(candidates) == 1


class TestFuzzyPass:
    """Scored fuzzy matches"""

    def test_token_overlap_match(self, matcher):
        # Arrange
        catalog = ProductFactory.catalog(
            ("Silla Eucalipto Tapizada", "Mosconi"),
            ("Roupeiro Blanco", "Moval"),
        )

        # Act
        outcome = matcher.match(entry("SILLAS EUCALIPTO TAPIZADA GRIS"), catalog)

        # Assert
        assert [r.product_id for r in outcome.matched] == [1]
        assert outcome.matched[0].match_type == MatchType.FUZZY

    def test_all_variants_ordered_by_score(self, matcher):
        # Arrange
        catalog = ProductFactory.catalog(
            ("Silla Eucalipto", "Mosconi"),
            ("Silla Eucalipto Tapizada Gris", "Mosconi"),
        )

        # Act
        outcome = matcher.match(entry("SILLA EUCALIPTO TAPIZADA"), catalog, ALL_VARIANTS)

        # Assert
        assert [r.product_id for r in outcome.matched] == [2, 1]
        assert outcome.matched[0].score > outcome.matched[1].score

    def test_single_variant_takes_best(self, matcher):
        catalog = ProductFactory.catalog(
            ("Silla Eucalipto", "Mosconi"),
            ("Silla Eucalipto Tapizada Gris", "Mosconi"),
        )

        outcome = matcher.match(entry("SILLA EUCALIPTO TAPIZADA"), catalog, SINGLE_VARIANT)

        assert [r.product_id for r in outcome.matched] == [2]

    def test_loose_brand_uses_override_thresholds(self, matcher):
        # Arrange: one shared token is enough only for the loose brand
        moval = ProductFactory.catalog(("Penteadeira Milao", "Moval"))
        demobile = ProductFactory.catalog(("Penteadeira Milao", "Demobile"))

        # Act
        loose = matcher.match(entry("Tocador", brand="Moval"), moval)
        strict = matcher.match(entry("Tocador", brand="Demobile"), demobile)

        # Assert
        assert loose.matched[0].match_type == MatchType.FUZZY
        assert strict.matched[0].match_type == MatchType.FALLBACK

    def test_override_table_is_configurable(self):
        config = MatchingConfig(
            brand_overrides={"DEMOBILE": MatchThresholds(1, 0.30, 0.80)}
        )
        matcher = CandidateMatcher(config)
        catalog = ProductFactory.catalog(("Penteadeira Milao", "Demobile"))

        outcome = matcher.match(entry("Tocador", brand="Demobile"), catalog)

        assert outcome.matched[0].match_type == MatchType.FUZZY


class TestFallbackPass:
    """Relaxed fallback rules"""

    def test_containment(self, matcher):
        catalog = ProductFactory.catalog(("Penteadeira Milao", "Demobile"))

        outcome = matcher.match(entry("Penteadeira", brand="Demobile"), catalog)

        assert outcome.matched[0].match_type == MatchType.FALLBACK
        assert outcome.matched[0].product_id == 1

    def test_slug(self, matcher):
        catalog = ProductFactory.catalog(("CAMA BOX 140", "Piero"))

        outcome = matcher.match(entry("CAMA BOX140", brand="Piero"), catalog)

        assert outcome.matched[0].match_type == MatchType.FALLBACK

    def test_loose_similarity(self, matcher):
        catalog = ProductFactory.catalog(("Comoda Giardini", "Demobile"))

        outcome = matcher.match(entry("Comoda Giardino", brand="Demobile"), catalog)

        assert outcome.matched[0].match_type == MatchType.FALLBACK

    def test_fallback_returns_single_result(self, matcher):
        catalog = ProductFactory.catalog(
            ("Penteadeira Milao", "Demobile"),
            ("Penteadeira Roma", "Demobile"),
        )

        outcome = matcher.match(entry("Penteadeira", brand="Demobile"), catalog, ALL_VARIANTS)

        assert [r.product_id for r in outcome.matched] == [1]


class TestUnmatched:
    """No match is a normal outcome"""

    def test_unrelated_names(self, matcher):
        catalog = ProductFactory.catalog(("Roupeiro Blanco", "Moval"))

        outcome = matcher.match(entry("Sofa Retratil"), catalog)

        assert outcome.unmatched
        assert outcome.matched == []

    def test_empty_catalog(self, matcher):
        outcome = matcher.match(entry("Criado Mudo"), [])

        assert outcome.unmatched

    def test_name_of_only_noise_never_matches_everything(self, matcher):
        catalog = ProductFactory.catalog(("Roupeiro 2P", "Moval"))

        outcome = matcher.match(entry("6 puertas"), catalog)

        assert outcome.unmatched


class TestScore:
    """Tests for CandidateMatcher.score()"""

    def test_shared_dimension_scores_higher(self, matcher):
        entry_tokens = ["MESA", "140"]

        same_size = matcher.score("MESA 140", entry_tokens, "MESA 140 NOGAL", ["MESA", "140", "NOGAL"])
        other_size = matcher.score("MESA 140", entry_tokens, "MESA 160 NOGAL", ["MESA", "160", "NOGAL"])

        assert same_size > other_size

    def test_more_specific_entry_scores_higher_for_same_product(self, matcher):
        exact = matcher.score("ROUPEIRO BLANCO", ["ROUPEIRO", "BLANCO"], "ROUPEIRO BLANCO", ["ROUPEIRO", "BLANCO"])
        vague = matcher.score("ROUPEIRO", ["ROUPEIRO"], "ROUPEIRO BLANCO", ["ROUPEIRO", "BLANCO"])

        assert exact > vague

    def test_empty_inputs_score_without_error(self, matcher):
        assert matcher.score("", [], "", []) >= 0


class TestMatchResultFields:
    """Values copied onto MatchResult"""

    def test_cost_mode_reports_current_cost(self, matcher):
        catalog = [ProductFactory.build(id=7, name="Criado Mudo", brand="Moval", price=45000, cost=30000)]

        outcome = matcher.match(
            entry("Criado Mudo", value=32000),
            catalog,
            MatchOptions(mode=ValueMode.COST)
        )

        result = outcome.matched[0]
        assert result.current_value == 30000
        assert result.proposed_value == 32000
        assert result.selected is True
        assert result.manually_edited is False
        assert result.sheet_name == "Criado Mudo"

    def test_current_value_missing_cost_is_zero(self):
        product = ProductFactory.build(cost=None)
        assert current_value(product, ValueMode.COST) == 0


class TestSearchCatalog:
    """Tests for search_catalog()"""

    def test_all_tokens_must_match(self):
        catalog = ProductFactory.catalog(
            ("ROUPEIRO 3P BLANCO", "Moval"),
            ("ROUPEIRO 2P NOGAL", "Moval"),
        )

        found = search_catalog("roup bla", catalog)

        assert [p.id for p in found] == [1]

    def test_accent_insensitive(self):
        catalog = ProductFactory.catalog(("Cômoda Giardino", "Demobile"))

        assert len(search_catalog("comoda", catalog)) == 1

    @pytest.mark.parametrize("term", [None, "", "c", " r "])
    def test_short_terms_return_nothing(self, term):
        catalog = ProductFactory.catalog(("Criado Mudo", "Moval"))
        assert search_catalog(term, catalog) == []

    def test_limit(self):
        catalog = ProductFactory.catalog(*[(f"Mesa {n}", "Moval") for n in range(20)])

        assert len(search_catalog("mesa", catalog)) == 10
        assert len(search_catalog("mesa", catalog, limit=3)) == 3
