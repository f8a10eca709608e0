"""
Unit tests for CatalogMatcher.

Fuzzy scoring is injected where a test needs exact scores; raw scores map
to normalized ones as (raw + 1000) / 1000.
"""

import pytest
from unittest.mock import MagicMock

from models.product import Category
from models.stock_import import MatchType
from services.catalog_matcher import (
    CatalogMatcher,
    normalize_score,
    wratio_raw_score,
)
from tests.factories import CatalogProductFactory, ImportCandidateFactory


def table_scorer(scores: dict):
    """Scorer reading raw scores from a {(query, name): raw} table."""
    return lambda query, name: scores.get((query, name))


# ===================
# SCORE SCALE
# ===================

class TestScoreScale:
    """Tests for normalize_score() and the default scorer."""

    def test_perfect_raw_score_is_one(self):
        assert normalize_score(0) == 1.0

    def test_threshold_point(self):
        assert normalize_score(-700) == pytest.approx(0.3)

    def test_clamped_at_zero(self):
        assert normalize_score(-5000) == 0.0

    def test_identical_names_score_zero_raw(self):
        assert wratio_raw_score("Leffe Blonde", "Leffe Blonde") == 0

    def test_accents_and_case_ignored(self):
        assert wratio_raw_score("CHATEAU MARGAUX", "Château Margaux") == 0

    def test_raw_scores_are_never_positive(self):
        raw = wratio_raw_score("Chablis", "Chablis Premier Cru")
        assert raw is not None
        assert raw <= 0

    def test_nothing_in_common_is_none(self):
        assert wratio_raw_score("", "Leffe") is None


# ===================
# EXACT MATCHING
# ===================

class TestExactMatch:
    """Tests for exact name matching."""

    def test_exact_official_wins_without_scoring(self, sample_catalog):
        scorer = MagicMock(return_value=0)
        matcher = CatalogMatcher(threshold=0.3, scorer=scorer)
        candidate = ImportCandidateFactory.create(official_name="Chablis Premier Cru")

        match = matcher.find_match(candidate, sample_catalog)

        assert match.product.id == "p-chablis"
        assert match.score == 1.0
        assert match.match_type == MatchType.EXACT_OFFICIAL
        scorer.assert_not_called()

    def test_exact_match_ignores_case_and_outer_spaces(self, sample_catalog):
        matcher = CatalogMatcher(threshold=0.3)
        candidate = ImportCandidateFactory.create(official_name="  leffe blonde 33CL ")

        match = matcher.find_match(candidate, sample_catalog)

        assert match.product.id == "p-leffe"
        assert match.match_type == MatchType.EXACT_OFFICIAL

    def test_exact_origin_when_official_differs(self, sample_catalog):
        scorer = MagicMock(return_value=0)
        matcher = CatalogMatcher(threshold=0.3, scorer=scorer)
        candidate = ImportCandidateFactory.create(
            official_name="Coca Cola canette",
            origin_name="Coca-Cola 33cl"
        )

        match = matcher.find_match(candidate, sample_catalog)

        assert match.product.id == "p-coca"
        assert match.match_type == MatchType.EXACT_ORIGIN
        scorer.assert_not_called()

    def test_official_exact_beats_origin_exact(self, sample_catalog):
        candidate = ImportCandidateFactory.create(
            official_name="Chablis Premier Cru",
            origin_name="Leffe Blonde 33cl"
        )

        match = CatalogMatcher(threshold=0.3).find_match(candidate, sample_catalog)

        assert match.product.id == "p-chablis"

    def test_products_without_name_never_match_exactly(self):
        catalog = [CatalogProductFactory.create(id="blank", name="")]
        candidate = ImportCandidateFactory.create(official_name="Leffe")

        match = CatalogMatcher(threshold=0.3, scorer=lambda q, n: None).find_match(candidate, catalog)

        assert match is None


# ===================
# FUZZY MATCHING
# ===================

class TestFuzzyMatch:
    """Tests for fuzzy matching, threshold and category filter."""

    def test_threshold_just_below(self):
        catalog = [CatalogProductFactory.create(id="a", name="Margaux")]
        candidate = ImportCandidateFactory.create(official_name="Mrgx")
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer({("Mrgx", "Margaux"): -710}))

        assert matcher.find_match(candidate, catalog) is None

    def test_threshold_exactly_reached(self):
        catalog = [CatalogProductFactory.create(id="a", name="Margaux")]
        candidate = ImportCandidateFactory.create(official_name="Mrgx")
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer({("Mrgx", "Margaux"): -700}))

        match = matcher.find_match(candidate, catalog)

        assert match.product.id == "a"
        assert match.match_type == MatchType.FUZZY
        assert match.score == pytest.approx(0.3)
        assert match.raw_score == -700

    def test_best_of_both_passes(self):
        catalog = [
            CatalogProductFactory.create(id="a", name="Alpha"),
            CatalogProductFactory.create(id="b", name="Beta"),
        ]
        candidate = ImportCandidateFactory.create(official_name="off", origin_name="orig")
        scores = {("off", "Alpha"): -400, ("orig", "Beta"): -100}
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer(scores))

        match = matcher.find_match(candidate, catalog)

        assert match.product.id == "b"
        assert match.score == pytest.approx(0.9)

    def test_category_filter_prefers_same_category(self):
        catalog = [
            CatalogProductFactory.create(id="beer", name="Blonde", category=Category.BEER),
            CatalogProductFactory.create(id="white", name="Blanc", category=Category.WINE_WHITE),
        ]
        candidate = ImportCandidateFactory.create(official_name="Bln", category=Category.WINE_WHITE)
        scores = {("Bln", "Blonde"): -50, ("Bln", "Blanc"): -300}
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer(scores))

        match = matcher.find_match(candidate, catalog)

        assert match.product.id == "white"

    def test_category_filter_falls_back_to_all(self):
        catalog = [
            CatalogProductFactory.create(id="beer", name="Blonde", category=Category.BEER),
            CatalogProductFactory.create(id="soft", name="Blanc", category=Category.SOFT),
        ]
        candidate = ImportCandidateFactory.create(official_name="Bln", category=Category.WINE_WHITE)
        scores = {("Bln", "Blonde"): -50, ("Bln", "Blanc"): -300}
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer(scores))

        match = matcher.find_match(candidate, catalog)

        assert match.product.id == "beer"

    def test_other_category_does_not_filter(self):
        catalog = [
            CatalogProductFactory.create(id="beer", name="Blonde", category=Category.BEER),
            CatalogProductFactory.create(id="other", name="Blanc", category=Category.OTHER),
        ]
        candidate = ImportCandidateFactory.create(official_name="Bln", category=Category.OTHER)
        scores = {("Bln", "Blonde"): -50, ("Bln", "Blanc"): -300}
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer(scores))

        assert matcher.find_match(candidate, catalog).product.id == "beer"

    def test_filtered_best_still_needs_threshold(self):
        catalog = [
            CatalogProductFactory.create(id="beer", name="Blonde", category=Category.BEER),
            CatalogProductFactory.create(id="white", name="Blanc", category=Category.WINE_WHITE),
        ]
        candidate = ImportCandidateFactory.create(official_name="Bln", category=Category.WINE_WHITE)
        scores = {("Bln", "Blonde"): -50, ("Bln", "Blanc"): -900}
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer(scores))

        assert matcher.find_match(candidate, catalog) is None

    def test_ties_keep_catalog_order(self):
        catalog = [
            CatalogProductFactory.create(id="first", name="One"),
            CatalogProductFactory.create(id="second", name="Two"),
        ]
        candidate = ImportCandidateFactory.create(official_name="q")
        matcher = CatalogMatcher(threshold=0.3, scorer=lambda q, n: -100)

        assert matcher.find_match(candidate, catalog).product.id == "first"

    def test_ties_prefer_official_pass(self):
        """On equal scores the official name beats the origin name."""
        catalog = [
            CatalogProductFactory.create(id="early", name="Early"),
            CatalogProductFactory.create(id="late", name="Late"),
        ]
        candidate = ImportCandidateFactory.create(official_name="off", origin_name="orig")
        scores = {("off", "Late"): -200, ("orig", "Early"): -200}
        matcher = CatalogMatcher(threshold=0.3, scorer=table_scorer(scores))

        match = matcher.find_match(candidate, catalog)

        assert match.product.id == "late"
        assert match.score == pytest.approx(0.8)

    def test_unscored_and_unnamed_products_are_dropped(self):
        catalog = [
            CatalogProductFactory.create(id="blank", name=""),
            CatalogProductFactory.create(id="named", name="Perrier"),
        ]
        candidate = ImportCandidateFactory.create(official_name="Perier")
        scorer = MagicMock(return_value=None)

        match = CatalogMatcher(threshold=0.3, scorer=scorer).find_match(candidate, catalog)

        assert match is None
        names = {call.args[1] for call in scorer.call_args_list}
        assert names == {"Perrier"}

    def test_empty_catalog(self):
        candidate = ImportCandidateFactory.create(official_name="Leffe")

        assert CatalogMatcher(threshold=0.3).find_match(candidate, []) is None

    def test_default_scorer_finds_close_name(self, sample_catalog):
        candidate = ImportCandidateFactory.create(official_name="Chateau Margaux")

        match = CatalogMatcher(threshold=0.3).find_match(candidate, sample_catalog)

        assert match.product.id == "p-margaux"
        assert match.match_type == MatchType.FUZZY
        assert 0.3 <= match.score < 1.0

    def test_default_scorer_rejects_unrelated_name(self, sample_catalog):
        candidate = ImportCandidateFactory.create(official_name="Saucisson sec")

        assert CatalogMatcher(threshold=0.3).find_match(candidate, sample_catalog) is None

    def test_catalog_not_modified(self, sample_catalog):
        before = [p.model_dump() for p in sample_catalog]
        candidate = ImportCandidateFactory.create(official_name="Chateau Margaux")

        CatalogMatcher(threshold=0.3).find_match(candidate, sample_catalog)

        assert [p.model_dump() for p in sample_catalog] == before
