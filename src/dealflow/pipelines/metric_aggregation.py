"""
Metric Aggregation

Collapses metric snapshot rows into the latest value per geo/segment/metric
and into current/prior pairs for trend detection.
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from src.dealflow.models.market import MetricName, MetricSnapshot, PortalSnapshot, TRUTH_METRICS
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

GroupKey = Tuple[str, str]

_FRAME_COLUMNS = ["position", "geo_id", "segment", "metric", "source", "source_type", "window_end"]


@dataclass
class AggregatedMetrics:
    """
    Latest official metrics for one geo/segment.

    Metrics without a snapshot stay None.
    """
    geo_id: str
    segment: str
    geo_name: Optional[str] = None
    window_end: Optional[date] = None
    median_price_psf: Optional[float] = None
    median_rent_annual: Optional[float] = None
    gross_yield: Optional[float] = None
    sample_size_sales: Optional[int] = None
    sample_size_rentals: Optional[int] = None

    @property
    def key(self) -> GroupKey:
        return (self.geo_id, self.segment)


@dataclass
class MetricPair:
    """Current and prior snapshot of one metric series."""
    current: MetricSnapshot
    prior: Optional[MetricSnapshot] = None

    @property
    def key(self) -> GroupKey:
        return self.current.key

    @property
    def metric(self) -> MetricName:
        return self.current.metric


@dataclass
class InventoryPair:
    """Current and prior portal inventory snapshot for one geo/segment."""
    current: PortalSnapshot
    prior: Optional[PortalSnapshot] = None


class MetricAggregator:
    """
    Groups snapshots by (geo_id, segment) and keeps the latest value per metric.

    "Latest" is window end descending; among rows with the same window end the
    first one seen wins. No interpolation or smoothing is applied.
    """

    def _frame(self, snapshots: Sequence[MetricSnapshot]) -> pd.DataFrame:
        records = [
            {
                "position": position,
                "geo_id": snapshot.geo_id,
                "segment": snapshot.segment,
                "metric": snapshot.metric.value,
                "source": snapshot.source,
                "source_type": snapshot.source_type.value,
                "window_end": snapshot.window_end,
            }
            for position, snapshot in enumerate(snapshots)
        ]
        df = pd.DataFrame.from_records(records, columns=_FRAME_COLUMNS)
        if df.empty:
            return df
        df["window_end"] = pd.to_datetime(df["window_end"])
        # mergesort is stable, so input order breaks window_end ties
        return df.sort_values("window_end", ascending=False, kind="mergesort")

    def latest(self, snapshots: Sequence[MetricSnapshot]) -> List[AggregatedMetrics]:
        """
        Merge official snapshots into one record per geo/segment.

        Args:
            snapshots: Snapshot rows for one tenant

        Returns:
            Merged records ordered by geo_id, segment
        """
        truth = [s for s in snapshots if s.metric in TRUTH_METRICS]
        df = self._frame(truth)
        if df.empty:
            logger.debug("metric_aggregation_empty")
            return []

        latest = df.drop_duplicates(subset=["geo_id", "segment", "metric"], keep="first")

        merged: List[AggregatedMetrics] = []
        for (geo_id, segment), group in latest.groupby(["geo_id", "segment"], sort=True):
            record = AggregatedMetrics(geo_id=geo_id, segment=segment)
            for position in group["position"]:
                snapshot = truth[int(position)]
                self._apply(record, snapshot)
            merged.append(record)

        logger.info(
            "metrics_aggregated",
            snapshots=len(truth),
            groups=len(merged)
        )
        return merged

    def _apply(self, record: AggregatedMetrics, snapshot: MetricSnapshot) -> None:
        if record.geo_name is None and snapshot.geo_name:
            record.geo_name = snapshot.geo_name
        if record.window_end is None or snapshot.window_end > record.window_end:
            record.window_end = snapshot.window_end

        if snapshot.metric == MetricName.MEDIAN_PRICE_PSF:
            record.median_price_psf = snapshot.value
            record.sample_size_sales = snapshot.sample_size
        elif snapshot.metric == MetricName.MEDIAN_RENT_ANNUAL:
            record.median_rent_annual = snapshot.value
            record.sample_size_rentals = snapshot.sample_size
        elif snapshot.metric == MetricName.GROSS_YIELD:
            record.gross_yield = snapshot.value

    def pairs(self, snapshots: Sequence[MetricSnapshot]) -> List[MetricPair]:
        """
        Build current/prior pairs per (geo_id, segment, metric, source).

        The prior is the latest snapshot from an earlier window. Series with a
        single window yield a pair without a prior.
        """
        df = self._frame(snapshots)
        if df.empty:
            return []

        series_key = ["geo_id", "segment", "metric", "source"]
        windows = df.drop_duplicates(subset=series_key + ["window_end"], keep="first").copy()
        windows["rank"] = windows.groupby(series_key, sort=False).cumcount()
        windows = windows[windows["rank"] < 2]

        result: List[MetricPair] = []
        for _, group in windows.groupby(series_key, sort=True):
            ordered = group.sort_values("rank")
            positions = [int(p) for p in ordered["position"]]
            current = snapshots[positions[0]]
            prior = snapshots[positions[1]] if len(positions) > 1 else None
            result.append(MetricPair(current=current, prior=prior))

        logger.debug("metric_pairs_built", series=len(result))
        return result

    def inventory(self, portal_snapshots: Sequence[PortalSnapshot]) -> Dict[GroupKey, InventoryPair]:
        """
        Latest and prior portal inventory per geo/segment.

        Several portals reporting the same geo/segment are collapsed to the
        row seen first for the latest day.
        """
        if not portal_snapshots:
            return {}

        df = pd.DataFrame.from_records(
            [
                {
                    "position": position,
                    "geo_id": snapshot.geo_id,
                    "segment": snapshot.segment,
                    "as_of_date": pd.Timestamp(snapshot.as_of_date),
                }
                for position, snapshot in enumerate(portal_snapshots)
            ]
        )
        df = df.sort_values("as_of_date", ascending=False, kind="mergesort")
        df = df.drop_duplicates(subset=["geo_id", "segment", "as_of_date"], keep="first").copy()
        df["rank"] = df.groupby(["geo_id", "segment"], sort=False).cumcount()

        result: Dict[GroupKey, InventoryPair] = {}
        for (geo_id, segment), group in df[df["rank"] < 2].groupby(["geo_id", "segment"], sort=True):
            positions = [int(p) for p in group.sort_values("rank")["position"]]
            result[(geo_id, segment)] = InventoryPair(
                current=portal_snapshots[positions[0]],
                prior=portal_snapshots[positions[1]] if len(positions) > 1 else None,
            )
        return result
