"""
Domain service: Market regime classification.

Labels the current market state of a pool from aggregate volume
statistics over a fixed history window. Recomputed from scratch on every
call; there are no transitions between labels.
"""

from dataclasses import dataclass
from typing import Sequence

from app.domain.analytics import volume_series
from app.domain.analytics.entities import (
    MarketRegime,
    RegimeType,
    RiskLevel,
    TransactionRecord,
)

REGIME_WINDOW_HOURS = 48


@dataclass(frozen=True)
class _RegimeProfile:
    risk_level: RiskLevel
    characteristics: tuple[str, ...]
    optimal_strategies: tuple[str, ...]


_PROFILES = {
    RegimeType.QUIET: _RegimeProfile(
        RiskLevel.HIGH,
        ("Low trading volume", "Limited liquidity"),
        ("Wait for volume increase", "Avoid large positions"),
    ),
    RegimeType.VOLATILE: _RegimeProfile(
        RiskLevel.HIGH,
        ("High volume variability", "Unpredictable movements"),
        ("Short-term scalping", "Tight risk management"),
    ),
    RegimeType.TRENDING: _RegimeProfile(
        RiskLevel.LOW,
        ("Strong directional bias", "Consistent volume patterns"),
        ("Trend following", "Position building"),
    ),
    RegimeType.RANGING: _RegimeProfile(
        RiskLevel.MEDIUM,
        ("Sideways movement", "Range-bound trading"),
        ("Mean reversion", "Support/resistance trading"),
    ),
}


class RegimeClassifier:
    """Classifies a pool's volume behavior as quiet, volatile, trending or ranging."""

    def __init__(
        self,
        min_transactions: int = 20,
        quiet_volume: float = 10.0,
        volatile_variation: float = 0.8,
        trending_strength: float = 0.6,
    ) -> None:
        self._min_transactions = min_transactions
        self._quiet_volume = quiet_volume
        self._volatile_variation = volatile_variation
        self._trending_strength = trending_strength

    def classify(self, transactions: Sequence[TransactionRecord]) -> MarketRegime:
        """Classify the regime from a window of transactions.

        Thresholds are checked in order: quiet, volatile, trending, with
        ranging as the fallback. Too little data yields a low-confidence
        quiet regime.
        """
        if len(transactions) < self._min_transactions:
            return MarketRegime(
                regime=RegimeType.QUIET,
                confidence=0.5,
                characteristics=["Insufficient data"],
                optimal_strategies=["Wait for more activity"],
                risk_level=RiskLevel.MEDIUM,
            )

        hourly = volume_series.group_by_hour(transactions)
        regime = self.classify_series(hourly)
        profile = _PROFILES[regime]
        return MarketRegime(
            regime=regime,
            confidence=0.6,
            characteristics=list(profile.characteristics),
            optimal_strategies=list(profile.optimal_strategies),
            risk_level=profile.risk_level,
        )

    def classify_series(self, hourly_volumes: Sequence[float]) -> RegimeType:
        """Pick the regime label for a most-recent-first hourly series."""
        if volume_series.mean(hourly_volumes) < self._quiet_volume:
            return RegimeType.QUIET
        if volume_series.variability(hourly_volumes) > self._volatile_variation:
            return RegimeType.VOLATILE
        if volume_series.trend_strength(hourly_volumes) > self._trending_strength:
            return RegimeType.TRENDING
        return RegimeType.RANGING
