"""Opportunity scoring engine.

Turns a raw ticker into four sub-scores, a weighted composite, a risk bucket
and a recommendation. Sub-scores come from a SubScoreProvider; the default
provider draws them at random and is a placeholder for real analysis.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from ..models import RiskLevel
from .market_data_gateway import RawTicker

DEFAULT_WEIGHTS: Dict[str, float] = {
    "technical": 0.40,
    "fundamental": 0.30,
    "sentiment": 0.15,
    "on_chain": 0.15,
}

# Anti-FOMO: assets that already pumped are penalized
FOMO_CHANGE_THRESHOLD = 40.0
FOMO_PENALTY = 0.4

STRONG_BUY_THRESHOLD = 85.0
ACCUMULATE_THRESHOLD = 75.0
DIP_CHANGE_THRESHOLD = -15.0

LOW_RISK_THRESHOLD = 80.0
MEDIUM_RISK_THRESHOLD = 60.0

# Market-wide risk from the Fear & Greed Index
GREED_THRESHOLD = 70
FEAR_THRESHOLD = 30

MSG_FOMO = "Late entry - Wait for a pullback (FOMO risk)"
MSG_STRONG_BUY = "Strong BUY signal - Fundamentals and technicals aligned"
MSG_ACCUMULATE = "Excellent medium-term accumulation opportunity"
MSG_BUY_THE_DIP = "Possible 'Buy the Dip' - Check supports"
MSG_MONITOR = "Monitor closely"


@dataclass
class SubScores:
    """The four component scores of an asset (nominally 0-100)."""
    technical: float
    fundamental: float
    sentiment: float
    on_chain: float


@dataclass
class ScoredAsset:
    """A fully scored asset, ready to be stored."""
    symbol: str
    name: str
    price: float
    change_24h: float
    volume_24h: float
    scores: SubScores
    final_score: float
    risk_level: RiskLevel
    recommendation: str


class SubScoreProvider(ABC):
    """Source of sub-scores for a ticker."""

    @abstractmethod
    def sub_scores(self, ticker: RawTicker) -> SubScores:
        """Return the sub-scores for a ticker."""
        pass


class RandomSubScoreProvider(SubScoreProvider):
    """Placeholder provider: each score is base + random() * span.

    Scores are not reproducible across calls unless a seeded Random is passed.
    """

    RANGES = {
        "technical": (40.0, 50.0),
        "fundamental": (50.0, 40.0),
        "sentiment": (30.0, 60.0),
        "on_chain": (20.0, 70.0),
    }

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def _draw(self, name: str) -> float:
        base, span = self.RANGES[name]
        return base + self._rng.random() * span

    def sub_scores(self, ticker: RawTicker) -> SubScores:
        return SubScores(
            technical=self._draw("technical"),
            fundamental=self._draw("fundamental"),
            sentiment=self._draw("sentiment"),
            on_chain=self._draw("on_chain"),
        )


def composite_score(scores: SubScores, weights: Dict[str, float] = DEFAULT_WEIGHTS) -> float:
    """Weighted sum of the sub-scores."""
    return (
        scores.technical * weights["technical"]
        + scores.fundamental * weights["fundamental"]
        + scores.sentiment * weights["sentiment"]
        + scores.on_chain * weights["on_chain"]
    )


def classify_risk(final_score: float) -> RiskLevel:
    """Map a final score to a risk bucket. Thresholds are strict."""
    if final_score > LOW_RISK_THRESHOLD:
        return RiskLevel.LOW
    if final_score > MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def classify_market_risk(fear_greed: int) -> RiskLevel:
    """Market risk from the Fear & Greed Index: greed is risky, fear is not."""
    if fear_greed > GREED_THRESHOLD:
        return RiskLevel.HIGH
    if fear_greed < FEAR_THRESHOLD:
        return RiskLevel.LOW
    return RiskLevel.MEDIUM


def select_recommendation(final_score: float, change_24h: float) -> str:
    """First matching rule wins; the FOMO rule is applied before this."""
    if final_score > STRONG_BUY_THRESHOLD:
        return MSG_STRONG_BUY
    if final_score > ACCUMULATE_THRESHOLD:
        return MSG_ACCUMULATE
    if change_24h < DIP_CHANGE_THRESHOLD:
        return MSG_BUY_THE_DIP
    return MSG_MONITOR


def display_name(symbol: str, quote_currency: str) -> str:
    """Strip the quote currency suffix from a pair symbol."""
    if quote_currency and symbol.endswith(quote_currency) and len(symbol) > len(quote_currency):
        return symbol[: -len(quote_currency)]
    return symbol


class ScoringEngine:
    """Scores raw tickers. Performs no I/O."""

    def __init__(
        self,
        provider: Optional[SubScoreProvider] = None,
        weights: Optional[Dict[str, float]] = None,
        quote_currency: str = "EUR",
    ):
        """Initialize scoring engine.

        Args:
            provider: Sub-score source, random placeholder by default
            weights: Sub-score weights, must cover all four scores and sum to 1.0
            quote_currency: Suffix stripped from symbols for display names

        Raises:
            ValueError: If the weights are incomplete or do not sum to 1.0
        """
        weights = dict(weights or DEFAULT_WEIGHTS)
        missing = set(DEFAULT_WEIGHTS) - set(weights)
        if missing:
            raise ValueError(f"Missing weights for: {sorted(missing)}")
        total = sum(weights[k] for k in DEFAULT_WEIGHTS)
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Sub-score weights must sum to 1.0, got {total}")

        self.provider = provider or RandomSubScoreProvider()
        self.weights = weights
        self.quote_currency = quote_currency

    def score(self, ticker: RawTicker) -> ScoredAsset:
        """Score a single ticker."""
        scores = self.provider.sub_scores(ticker)
        final_score = composite_score(scores, self.weights)
        change = ticker.change_percent

        if change > FOMO_CHANGE_THRESHOLD:
            final_score *= FOMO_PENALTY
            recommendation = MSG_FOMO
        else:
            recommendation = select_recommendation(final_score, change)

        return ScoredAsset(
            symbol=ticker.symbol,
            name=display_name(ticker.symbol, self.quote_currency),
            price=ticker.last_price,
            change_24h=change,
            volume_24h=ticker.quote_volume,
            scores=scores,
            final_score=final_score,
            risk_level=classify_risk(final_score),
            recommendation=recommendation,
        )
