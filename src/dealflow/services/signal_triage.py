"""
Market Signal Triage

Acknowledge, dismiss and route stored market signals. Applying the status a
signal already has is a no-op; dismissed is terminal.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from src.dealflow.models.market import SignalStatus
from src.dealflow.services.datastore import DataStore
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    SignalStatus.NEW: {SignalStatus.ACKNOWLEDGED, SignalStatus.DISMISSED, SignalStatus.ROUTED},
    SignalStatus.ACKNOWLEDGED: {SignalStatus.DISMISSED, SignalStatus.ROUTED},
    SignalStatus.ROUTED: {SignalStatus.ACKNOWLEDGED, SignalStatus.DISMISSED},
    SignalStatus.DISMISSED: set(),
}


@dataclass
class StatusChangeResult:
    """
    Outcome of a triage action.

    Attributes:
        found: Signal exists for the tenant
        changed: A new status was written
        status: Status after the call (None when not found)
        error: Reason the transition was refused
    """
    found: bool
    changed: bool = False
    status: Optional[str] = None
    error: Optional[str] = None


def can_transition(current: SignalStatus, target: SignalStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def update_signal_status(
    store: DataStore,
    tenant_id: str,
    signal_id: str,
    status: SignalStatus,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StatusChangeResult:
    """
    Move a signal to ``status``.

    Args:
        store: Data store
        tenant_id: Tenant owning the signal
        signal_id: Signal identifier
        status: Target status
        actor_id: User performing the action
        now: Timestamp override

    Returns:
        StatusChangeResult; never raises for unknown signals or refused transitions
    """
    status = SignalStatus(status)
    try:
        with store.session() as session:
            signal = store.signals_repo.get_for_org(session, tenant_id, signal_id)
            if signal is None:
                logger.warning("signal_not_found", tenant_id=tenant_id, signal_id=signal_id)
                return StatusChangeResult(found=False, error=f"signal not found: {signal_id}")

            current = SignalStatus(signal.status)
            if current == status:
                logger.debug("signal_status_unchanged", signal_id=signal_id, status=status.value)
                return StatusChangeResult(found=True, changed=False, status=current.value)

            if not can_transition(current, status):
                logger.warning(
                    "signal_status_transition_refused",
                    signal_id=signal_id,
                    current=current.value,
                    requested=status.value
                )
                return StatusChangeResult(
                    found=True,
                    changed=False,
                    status=current.value,
                    error=f"cannot change status from {current.value} to {status.value}"
                )

            store.signals_repo.set_status(
                session, signal, status.value, actor_id=actor_id, now=now or datetime.now(timezone.utc)
            )
            if status == SignalStatus.DISMISSED:
                dismissed = store.targets_repo.dismiss_for_signal(session, signal_id)
                logger.debug("signal_targets_dismissed", signal_id=signal_id, count=dismissed)

        logger.info(
            "signal_status_changed",
            tenant_id=tenant_id,
            signal_id=signal_id,
            previous=current.value,
            status=status.value,
            actor_id=actor_id
        )
        return StatusChangeResult(found=True, changed=True, status=status.value)

    except Exception as e:
        logger.error(
            "signal_status_update_failed",
            signal_id=signal_id,
            error=str(e),
            error_type=type(e).__name__
        )
        return StatusChangeResult(found=False, error=f"status update failed: {e}")


def acknowledge_signal(store: DataStore, tenant_id: str, signal_id: str, actor_id: Optional[str] = None) -> StatusChangeResult:
    return update_signal_status(store, tenant_id, signal_id, SignalStatus.ACKNOWLEDGED, actor_id)


def dismiss_signal(store: DataStore, tenant_id: str, signal_id: str, actor_id: Optional[str] = None) -> StatusChangeResult:
    return update_signal_status(store, tenant_id, signal_id, SignalStatus.DISMISSED, actor_id)


def route_signal(store: DataStore, tenant_id: str, signal_id: str, actor_id: Optional[str] = None) -> StatusChangeResult:
    return update_signal_status(store, tenant_id, signal_id, SignalStatus.ROUTED, actor_id)
