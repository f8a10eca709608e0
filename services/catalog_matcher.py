"""
Catalog matcher: pairs an import candidate with an existing product.

Order of attempts, stopping at the first hit:
    1. exact name match on the official name   (score 1.0)
    2. exact name match on the origin name     (score 1.0)
    3. fuzzy match on both names, pooled

Fuzzy scores live on a raw scale where 0 is a perfect match and worse
matches are more negative. A raw score is normalized with
max(0, (raw + 1000) / 1000) and must reach the confidence threshold (0.3).
The default scorer maps rapidfuzz's WRatio (0-100) onto that raw scale with
raw = (ratio - 100) * 20, which puts the 0.3 threshold at WRatio 65. A
different scorer must come with its own raw scale; reusing 0.3 against a
new score range changes how strict matching is.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence
import structlog

from rapidfuzz import fuzz, utils as fuzz_utils

from config.settings import settings
from models.product import CatalogProduct, Category
from models.stock_import import ImportCandidate, MatchResult, MatchType
from utils.text_utils import fold_accents

logger = structlog.get_logger(__name__)

# Raw points per WRatio point below 100
RAW_POINTS_PER_RATIO = 20.0

# (query, product name) → raw score, or None when the pair does not match at all
FuzzyScorer = Callable[[str, str], Optional[float]]


def normalize_score(raw_score: float) -> float:
    """Map a raw fuzzy score onto 0..1."""
    return max(0.0, (raw_score + 1000) / 1000)


def _fuzzy_key(text: str) -> str:
    """Case, accents and punctuation do not count towards similarity."""
    return fuzz_utils.default_process(fold_accents(text))


def wratio_raw_score(query: str, name: str) -> Optional[float]:
    """
    Default scorer: rapidfuzz WRatio on accent-folded names.

    Returns None when the names share nothing (ratio 0).
    """
    ratio = fuzz.WRatio(query, name, processor=_fuzzy_key)
    if ratio <= 0:
        return None
    return (ratio - 100.0) * RAW_POINTS_PER_RATIO


def _same_name(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


@dataclass
class _Scored:
    product: CatalogProduct
    raw_score: float


class CatalogMatcher:
    """
    Finds the best catalog product for an import candidate.

    The catalog passed to find_match is read, never modified.

    Usage:
        matcher = CatalogMatcher()
        match = matcher.find_match(candidate, catalog)
        if match is None:
            ...  # create a new product
    """

    def __init__(
        self,
        threshold: Optional[float] = None,
        scorer: Optional[FuzzyScorer] = None
    ):
        self.threshold = settings.match_confidence_threshold if threshold is None else threshold
        self.scorer = scorer or wratio_raw_score

    def find_match(
        self,
        candidate: ImportCandidate,
        catalog: Sequence[CatalogProduct]
    ) -> Optional[MatchResult]:
        """
        Find the best match for a candidate.

        Args:
            candidate: Extracted import row
            catalog: Catalog snapshot

        Returns:
            MatchResult, or None when nothing clears the threshold
        """
        exact = self._exact_match(candidate.official_name, catalog)
        if exact is not None:
            return MatchResult(product=exact, score=1.0, match_type=MatchType.EXACT_OFFICIAL)

        exact = self._exact_match(candidate.origin_name, catalog)
        if exact is not None:
            return MatchResult(product=exact, score=1.0, match_type=MatchType.EXACT_ORIGIN)

        return self._fuzzy_match(candidate, catalog)

    def _exact_match(
        self,
        name: str,
        catalog: Sequence[CatalogProduct]
    ) -> Optional[CatalogProduct]:
        if not name:
            return None
        for product in catalog:
            if product.name and _same_name(product.name, name):
                return product
        return None

    def _fuzzy_pass(
        self,
        query: str,
        catalog: Sequence[CatalogProduct]
    ) -> list[_Scored]:
        """Score one name against every product, in catalog order."""
        if not query:
            return []

        scored = []
        for product in catalog:
            if not product.name:
                continue
            raw = self.scorer(query, product.name)
            if raw is not None:
                scored.append(_Scored(product=product, raw_score=raw))
        return scored

    def _fuzzy_match(
        self,
        candidate: ImportCandidate,
        catalog: Sequence[CatalogProduct]
    ) -> Optional[MatchResult]:
        official_results = self._fuzzy_pass(candidate.official_name, catalog)
        origin_results = self._fuzzy_pass(candidate.origin_name, catalog)

        # sorted() is stable: ties keep catalog order, official pass first
        pooled = sorted(
            official_results + origin_results,
            key=lambda s: s.raw_score,
            reverse=True
        )
        if not pooled:
            return None

        if candidate.category != Category.OTHER:
            same_category = [s for s in pooled if s.product.category == candidate.category]
            if same_category:
                pooled = same_category

        best = pooled[0]
        score = normalize_score(best.raw_score)

        if score < self.threshold:
            logger.debug(
                "fuzzy_match_below_threshold",
                name=candidate.official_name,
                best=best.product.name,
                score=round(score, 3),
                threshold=self.threshold
            )
            return None

        return MatchResult(
            product=best.product,
            score=score,
            match_type=MatchType.FUZZY,
            raw_score=best.raw_score
        )
