"""
Market Signal Detection

Compares current vs prior metric values per geo/segment and emits typed
market signals with severity and confidence.
"""
import hashlib
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from config.settings import settings
from src.dealflow.models.market import (
    MetricName,
    MetricSnapshot,
    PortalSnapshot,
    Severity,
    SignalType,
    SourceType,
    Trend,
)
from src.dealflow.pipelines.metric_aggregation import MetricAggregator, MetricPair
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


# metric -> (signal when rising, signal when falling)
SIGNAL_TYPE_BY_METRIC = {
    MetricName.MEDIAN_PRICE_PSF: (SignalType.PRICE_CHANGE, SignalType.PRICE_CHANGE),
    MetricName.MEDIAN_RENT_ANNUAL: (SignalType.RENT_CHANGE, SignalType.RENT_CHANGE),
    MetricName.GROSS_YIELD: (SignalType.YIELD_OPPORTUNITY, SignalType.RISK_FLAG),
    MetricName.ACTIVE_LISTINGS: (SignalType.SUPPLY_SPIKE, None),
    MetricName.PRICE_CUTS_COUNT: (SignalType.DISCOUNTING_SPIKE, None),
    MetricName.STALE_LISTINGS_COUNT: (SignalType.STALENESS_RISE, None),
}


def compute_delta(current: Optional[float], prior: Optional[float]) -> Optional[float]:
    """
    Relative change (current - prior) / prior.

    Returns None when either value is missing or prior is zero.
    """
    if current is None or prior is None or prior == 0:
        return None
    return (current - prior) / prior


def classify_trend(delta: Optional[float], threshold: float = 0.03) -> Optional[Trend]:
    """Rising/falling beyond +-threshold, else stable; None when there is no delta."""
    if delta is None:
        return None
    if delta > threshold:
        return Trend.RISING
    if delta < -threshold:
        return Trend.FALLING
    return Trend.STABLE


def classify_severity(delta: float, watch_pct: float = 0.10, urgent_pct: float = 0.25) -> Severity:
    magnitude = abs(delta)
    if magnitude > urgent_pct:
        return Severity.URGENT
    if magnitude >= watch_pct:
        return Severity.WATCH
    return Severity.INFO


def make_signal_key(
    source_type: str,
    source: str,
    signal_type: str,
    geo_type: str,
    geo_id: str,
    segment: str,
    timeframe: str,
    anchor: str,
) -> str:
    """Deterministic dedupe key for a signal."""
    raw = "|".join([source_type, source, signal_type, geo_type, geo_id, segment, timeframe, anchor])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass
class DetectedSignal:
    """
    Signal produced by the detector, not yet stored.

    Attributes:
        signal_key: Dedupe key (same inputs produce the same key)
        delta_pct: Relative change as a fraction (0.12 == +12%)
        confidence_score: 0..1, grows with sample size
        evidence: Snapshot ids, windows and sample size behind the signal
    """
    source_type: SourceType
    source: str
    type: SignalType
    severity: Severity
    geo_type: str
    geo_id: str
    geo_name: Optional[str]
    segment: str
    metric: MetricName
    timeframe: str
    current_value: float
    prev_value: float
    delta_value: float
    delta_pct: float
    confidence_score: float
    signal_key: str
    evidence: Dict[str, Any] = field(default_factory=dict)

    def to_row(self, org_id: str) -> Dict[str, Any]:
        """Column dict for the market_signal table."""
        return {
            "id": str(uuid.uuid4()),
            "org_id": org_id,
            "source_type": self.source_type.value,
            "source": self.source,
            "type": self.type.value,
            "severity": self.severity.value,
            "status": "new",
            "geo_type": self.geo_type,
            "geo_id": self.geo_id,
            "geo_name": self.geo_name,
            "segment": self.segment,
            "metric": self.metric.value,
            "timeframe": self.timeframe,
            "current_value": self.current_value,
            "prev_value": self.prev_value,
            "delta_value": self.delta_value,
            "delta_pct": self.delta_pct,
            "confidence_score": self.confidence_score,
            "evidence": self.evidence,
            "signal_key": self.signal_key,
        }


class SignalDetector:
    """
    Emits market signals from current/prior metric pairs.

    Rules:
    - prior == 0 or missing: no signal
    - |delta| <= trend threshold: stable, no signal
    - signal type follows the metric that moved and its direction
    - severity: info below the watch threshold, urgent above the urgent threshold
    - confidence: source base + 0.35 * sample_size / min_sample_size, capped at 1.0
    """

    def __init__(
        self,
        trend_threshold: float = settings.trend_threshold_pct,
        watch_pct: float = settings.severity_watch_pct,
        urgent_pct: float = settings.severity_urgent_pct,
        min_sample_size: int = settings.signal_min_sample_size,
        official_confidence_base: float = settings.official_confidence_base,
        portal_confidence_base: float = settings.portal_confidence_base,
        portal_min_active_listings: int = settings.portal_min_active_listings,
        aggregator: Optional[MetricAggregator] = None,
    ):
        if urgent_pct < watch_pct:
            raise ValueError("urgent_pct must be >= watch_pct")
        self.trend_threshold = trend_threshold
        self.watch_pct = watch_pct
        self.urgent_pct = urgent_pct
        self.min_sample_size = max(min_sample_size, 1)
        self.official_confidence_base = official_confidence_base
        self.portal_confidence_base = portal_confidence_base
        self.portal_min_active_listings = portal_min_active_listings
        self.aggregator = aggregator or MetricAggregator()

    def confidence(self, sample_size: Optional[int], source_type: SourceType) -> float:
        base = (
            self.portal_confidence_base
            if source_type == SourceType.PORTAL
            else self.official_confidence_base
        )
        n = max(sample_size or 0, 0)
        return round(min(1.0, base + 0.35 * n / self.min_sample_size), 4)

    def detect_truth(self, snapshots: Sequence[MetricSnapshot]) -> List[DetectedSignal]:
        """Detect signals from official snapshots."""
        official = [s for s in snapshots if s.source_type == SourceType.OFFICIAL]
        signals = self.detect(self.aggregator.pairs(official))
        logger.info("truth_signals_detected", snapshots=len(official), signals=len(signals))
        return signals

    def detect_portal(self, portal_snapshots: Sequence[PortalSnapshot]) -> List[DetectedSignal]:
        """Detect supply, discounting and staleness signals from portal inventory."""
        metric_rows: List[MetricSnapshot] = []
        for snapshot in portal_snapshots:
            metric_rows.extend(snapshot.to_metric_snapshots())
        signals = self.detect(self.aggregator.pairs(metric_rows))
        logger.info("portal_signals_detected", snapshots=len(portal_snapshots), signals=len(signals))
        return signals

    def detect(self, pairs: Sequence[MetricPair]) -> List[DetectedSignal]:
        signals = []
        for pair in pairs:
            signal = self.evaluate(pair)
            if signal is not None:
                signals.append(signal)
        return signals

    def evaluate(self, pair: MetricPair) -> Optional[DetectedSignal]:
        """
        Evaluate one metric pair.

        Args:
            pair: Current and prior snapshot of one series

        Returns:
            DetectedSignal, or None for stable/unguarded series
        """
        current, prior = pair.current, pair.prior
        if prior is None:
            return None

        if (
            current.source_type == SourceType.PORTAL
            and (current.sample_size or 0) < self.portal_min_active_listings
        ):
            return None

        delta = compute_delta(current.value, prior.value)
        trend = classify_trend(delta, self.trend_threshold)
        if trend is None or trend == Trend.STABLE:
            return None

        rising_type, falling_type = SIGNAL_TYPE_BY_METRIC[current.metric]
        signal_type = rising_type if trend == Trend.RISING else falling_type
        if signal_type is None:
            return None

        anchor = current.window_end.isoformat()
        signal_key = make_signal_key(
            current.source_type.value,
            current.source,
            signal_type.value,
            current.geo_type,
            current.geo_id,
            current.segment,
            current.timeframe,
            anchor,
        )

        return DetectedSignal(
            source_type=current.source_type,
            source=current.source,
            type=signal_type,
            severity=classify_severity(delta, self.watch_pct, self.urgent_pct),
            geo_type=current.geo_type,
            geo_id=current.geo_id,
            geo_name=current.geo_name or prior.geo_name,
            segment=current.segment,
            metric=current.metric,
            timeframe=current.timeframe,
            current_value=current.value,
            prev_value=prior.value,
            delta_value=current.value - prior.value,
            delta_pct=round(delta, 6),
            confidence_score=self.confidence(current.sample_size, current.source_type),
            signal_key=signal_key,
            evidence={
                "snapshot_current_id": current.snapshot_id,
                "snapshot_prev_id": prior.snapshot_id,
                "sample_size": current.sample_size,
                "window_current": anchor,
                "window_prev": prior.window_end.isoformat(),
                "trend": trend.value,
            },
        )
