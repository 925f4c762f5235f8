"""
Pipelines Package

Market data pipelines:
- Metric aggregation: latest values and current/prior pairs per geo/segment
- Signal detection: typed market signals from metric movements
- Signal mapping: signal relevance per investor mandate
- Summaries: compact AI market summaries
- Investor summaries: mandate, portfolio and signal activity per investor

Batch entry points live in signals_pipeline and summary_pipeline.
"""
from src.dealflow.pipelines.metric_aggregation import MetricAggregator, AggregatedMetrics, MetricPair
from src.dealflow.pipelines.signal_detection import SignalDetector, DetectedSignal
from src.dealflow.pipelines.signal_mapping import SignalTargetMapper, InvestorProfile
from src.dealflow.pipelines.summaries import SummaryCompiler, MarketSummary
from src.dealflow.pipelines.investor_summaries import InvestorSummaryCompiler, InvestorSummary

__all__ = [
    "MetricAggregator",
    "AggregatedMetrics",
    "MetricPair",
    "SignalDetector",
    "DetectedSignal",
    "SignalTargetMapper",
    "InvestorProfile",
    "SummaryCompiler",
    "MarketSummary",
    "InvestorSummaryCompiler",
    "InvestorSummary",
]
