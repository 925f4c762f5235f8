"""
Market Signals Pipeline

Batch entry point run per tenant:
1. Load official and portal snapshots
2. Detect truth and portal signals
3. Store new signals (deduplicated by signal_key)
4. Map stored signals to investor mandates

Stage failures are recorded in the result instead of raised. A cancel event
is checked between stages; nothing is written for a stage that has not
started.
"""
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from src.dealflow.pipelines.signal_detection import DetectedSignal, SignalDetector
from src.dealflow.pipelines.signal_mapping import SignalTargetMapper
from src.dealflow.services.datastore import DataStore
from src.dealflow.services.lookups import Lookup
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SignalsPipelineResult:
    org_id: str
    truth_created: int = 0
    portal_created: int = 0
    mappings_created: int = 0
    targets_skipped: int = 0
    signals_processed: int = 0
    cancelled: bool = False
    duration_ms: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        data = asdict(self)
        data["success"] = self.success
        return data


class SignalsPipeline:
    """Detects, stores and maps market signals for one tenant at a time."""

    def __init__(
        self,
        store: Optional[DataStore] = None,
        detector: Optional[SignalDetector] = None,
        mapper: Optional[SignalTargetMapper] = None,
    ):
        self.store = store or DataStore()
        self.detector = detector or SignalDetector()
        self.mapper = mapper or SignalTargetMapper()

    def run(self, tenant_id: str, cancel_event: Optional[threading.Event] = None) -> SignalsPipelineResult:
        """
        Run every stage for ``tenant_id``.

        Args:
            tenant_id: Tenant (org) identifier
            cancel_event: When set, the run stops at the next stage boundary

        Returns:
            SignalsPipelineResult (never raises)
        """
        started = time.monotonic()
        result = SignalsPipelineResult(org_id=tenant_id)
        logger.info("signals_pipeline_started", org_id=tenant_id)

        try:
            self._run_stages(tenant_id, result, cancel_event)
        except Exception as e:
            logger.error(
                "signals_pipeline_failed",
                org_id=tenant_id,
                error=str(e),
                error_type=type(e).__name__
            )
            result.errors.append(f"pipeline failed: {e}")

        result.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "signals_pipeline_completed",
            org_id=tenant_id,
            truth_created=result.truth_created,
            portal_created=result.portal_created,
            mappings_created=result.mappings_created,
            cancelled=result.cancelled,
            errors=len(result.errors),
            duration_ms=result.duration_ms
        )
        return result

    def _cancelled(self, cancel_event: Optional[threading.Event], result: SignalsPipelineResult, stage: str) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            logger.warning("signals_pipeline_cancelled", org_id=result.org_id, before_stage=stage)
            return True
        return False

    def _run_stages(self, tenant_id: str, result: SignalsPipelineResult, cancel_event: Optional[threading.Event]) -> None:
        if self._cancelled(cancel_event, result, "load"):
            return

        loaded = self.store.lookups([
            Lookup("truth_snapshots", lambda s: self.store.metric_snapshots(s, tenant_id), []),
            Lookup("portal_snapshots", lambda s: self.store.portal_snapshots(s, tenant_id), []),
        ])
        result.errors.extend(loaded.errors)

        if self._cancelled(cancel_event, result, "detect"):
            return

        truth_signals = self._stage(result, "truth detection", lambda: self.detector.detect_truth(loaded["truth_snapshots"]), [])
        portal_signals = self._stage(result, "portal detection", lambda: self.detector.detect_portal(loaded["portal_snapshots"]), [])

        if self._cancelled(cancel_event, result, "store"):
            return

        result.truth_created = self._stage(result, "truth upsert", lambda: self._store_signals(tenant_id, truth_signals), 0)
        result.portal_created = self._stage(result, "portal upsert", lambda: self._store_signals(tenant_id, portal_signals), 0)

        if self._cancelled(cancel_event, result, "map"):
            return

        self._stage(result, "signal mapping", lambda: self._map_signals(tenant_id, result), None)

    def _stage(self, result: SignalsPipelineResult, name: str, func, default):
        try:
            return func()
        except Exception as e:
            logger.error(
                "signals_pipeline_stage_failed",
                org_id=result.org_id,
                stage=name,
                error=str(e),
                error_type=type(e).__name__
            )
            result.errors.append(f"{name} failed: {e}")
            return default

    def _store_signals(self, tenant_id: str, signals: List[DetectedSignal]) -> int:
        if not signals:
            return 0
        with self.store.session() as session:
            return self.store.signals_repo.insert_new(
                session, tenant_id, [signal.to_row(tenant_id) for signal in signals]
            )

    def _map_signals(self, tenant_id: str, result: SignalsPipelineResult) -> None:
        with self.store.session() as session:
            signals = self.store.active_signals(session, tenant_id)
            investors = self.store.investor_profiles(session, tenant_id)

            mapping = self.mapper.map_signals(signals, investors)
            result.signals_processed = len(signals)
            result.targets_skipped = mapping.skipped
            result.mappings_created = self.store.targets_repo.insert_new(
                session, tenant_id, [target.to_row(tenant_id) for target in mapping.targets]
            )


def run_signals_pipeline(
    tenant_id: str,
    cancel_event: Optional[threading.Event] = None,
    store: Optional[DataStore] = None,
) -> SignalsPipelineResult:
    """Run the signals pipeline for one tenant."""
    return SignalsPipeline(store=store).run(tenant_id, cancel_event=cancel_event)
