"""
Concurrent Read Lookups

Runs independent read-only queries side by side, each in its own session and
each with its own timeout. A failed or timed-out lookup falls back to its
default value and is reported; the others still return their results.

A lookup's clock starts when a worker picks it up, so lookups queued behind a
full pool are not charged for the wait. A lookup that never gets a worker
times out once every wave of the pool could have used its full timeout.
"""
import math
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.dealflow.db.session import get_db_session
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Lookup:
    """
    One independent read.

    Attributes:
        name: Label used in results and error messages
        query: Callable receiving an open session
        default: Value used when the query fails or times out
    """
    name: str
    query: Callable[[Session], Any]
    default: Any = None


@dataclass
class LookupResults:
    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def __getitem__(self, name: str) -> Any:
        return self.values[name]


def _run(session_factory: sessionmaker, lookup: Lookup) -> Any:
    with get_db_session(session_factory, read_only=True) as session:
        return lookup.query(session)


def run_lookups(
    session_factory: sessionmaker,
    lookups: Sequence[Lookup],
    max_workers: int = settings.lookup_max_workers,
    timeout: Optional[float] = settings.query_timeout_seconds,
) -> LookupResults:
    """
    Execute lookups and collect their values.

    Args:
        session_factory: Factory each lookup opens its own session from
        lookups: Independent reads
        max_workers: Thread pool size
        timeout: Seconds each lookup may run; None waits indefinitely and,
            with one worker or one lookup, runs the lookups inline in order

    Returns:
        LookupResults with one value per lookup name and an error per failure
    """
    results = LookupResults()
    started = time.monotonic()

    if not lookups:
        return results

    if timeout is None and (max_workers <= 1 or len(lookups) <= 1):
        for lookup in lookups:
            try:
                results.values[lookup.name] = _run(session_factory, lookup)
            except Exception as e:
                _record_failure(results, lookup, f"failed: {e}", e)
        logger.debug("lookups_completed", count=len(lookups), mode="sequential")
        return results

    workers = max(1, min(max_workers, len(lookups)))
    queue_deadline = None
    if timeout is not None:
        queue_deadline = started + timeout * math.ceil(len(lookups) / workers)

    run_started: Dict[int, float] = {}

    def run_timed(index: int, lookup: Lookup) -> Any:
        run_started[index] = time.monotonic()
        return _run(session_factory, lookup)

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lookup")
    try:
        pending: Dict[int, Future] = {
            index: executor.submit(run_timed, index, lookup)
            for index, lookup in enumerate(lookups)
        }

        while pending:
            for index, future in list(pending.items()):
                if future.done():
                    del pending[index]
                    _collect(results, lookups[index], future)

            now = time.monotonic()
            deadlines = []
            for index, future in list(pending.items()):
                if future.done():
                    continue
                deadline = _deadline(run_started.get(index), timeout, queue_deadline)
                if deadline is not None and now >= deadline:
                    del pending[index]
                    future.cancel()
                    _record_failure(results, lookups[index], f"timed out after {timeout}s", None)
                elif deadline is not None:
                    deadlines.append(deadline)

            if pending:
                remaining = max(min(deadlines) - now, 0) if deadlines else None
                wait(list(pending.values()), timeout=remaining, return_when=FIRST_COMPLETED)
    finally:
        # do not block on lookups that are still running
        executor.shutdown(wait=False, cancel_futures=True)

    logger.debug(
        "lookups_completed",
        count=len(lookups),
        mode="concurrent",
        failed=len(results.errors),
        duration_ms=int((time.monotonic() - started) * 1000)
    )
    return results


def _deadline(run_started: Optional[float], timeout: Optional[float], queue_deadline: Optional[float]) -> Optional[float]:
    if timeout is None:
        return None
    if run_started is None:
        return queue_deadline
    return run_started + timeout


def _collect(results: LookupResults, lookup: Lookup, future: Future) -> None:
    try:
        results.values[lookup.name] = future.result()
    except Exception as e:
        _record_failure(results, lookup, f"failed: {e}", e)


def _record_failure(results: LookupResults, lookup: Lookup, message: str, error: Optional[Exception]) -> None:
    results.values[lookup.name] = lookup.default
    results.errors.append(f"{lookup.name} {message}")
    logger.warning(
        "lookup_failed",
        lookup=lookup.name,
        error=message,
        error_type=type(error).__name__ if error else "TimeoutError"
    )
