"""
Progress tracking for evidence graph builds.

Holds per-job progress state in memory while a build runs and sweeps
abandoned jobs in a background thread. Clients poll progress by job id;
callers never receive the underlying record, only copies.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional, Union

from evigraph.core import constants

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Graph build phases, in order."""

    INIT = "init"
    RESEARCH = "research"
    ANSWER = "answer"
    GRAPH = "graph"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressState:
    """
    Snapshot of a job's progress.

    Attributes:
        job_id: Caller-assigned job identifier
        progress: Percentage 0-100, never decreases
        status: Human-readable status message
        phase: Current build phase
        created_at: Clock reading when the job was created
        updated_at: Clock reading of the last change
    """

    job_id: str
    progress: int
    status: str
    phase: Phase
    created_at: float
    updated_at: float

    def to_dict(self) -> dict:
        """Polling payload."""
        return {
            "jobId": self.job_id,
            "progress": self.progress,
            "status": self.status,
            "phase": self.phase.value,
        }


class ProgressTracker:
    """
    Thread-safe registry of in-flight job progress.

    Progress updates are monotonic: an update can raise the percentage but
    never lower it. Jobs idle for longer than the retention window are
    removed by a periodic sweep started with start() and stopped with
    shutdown().
    """

    def __init__(
        self,
        sweep_interval: Optional[float] = None,
        retention: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            sweep_interval: Seconds between sweeps (default from constants)
            retention: Idle seconds before a job is swept (default from constants)
            clock: Time source, injectable for tests
        """
        self.sweep_interval = sweep_interval if sweep_interval is not None else constants.PROGRESS_SWEEP_INTERVAL
        self.retention = retention if retention is not None else constants.PROGRESS_RETENTION
        self._clock = clock
        self._jobs: Dict[str, ProgressState] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def create_job(self, job_id: str) -> ProgressState:
        """Register a job with fresh state, replacing any previous entry."""
        now = self._clock()
        state = ProgressState(
            job_id=job_id,
            progress=0,
            status="Starting...",
            phase=Phase.INIT,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job_id] = state
        logger.info("Created job: %s", job_id)
        return state

    def update_progress(
        self,
        job_id: str,
        progress: int,
        status: str,
        phase: Union[Phase, str],
    ) -> Optional[ProgressState]:
        """
        Update progress for an existing job.

        Args:
            job_id: Job to update
            progress: Requested percentage; lower values than the current
                one are ignored and values above 100 are capped
            status: Status message
            phase: New phase; an unrecognised phase keeps the current one

        Returns:
            Updated state, or None if the job is unknown
        """
        with self._lock:
            state = self._jobs.get(job_id)
            if state is None:
                logger.warning("Job not found: %s", job_id)
                return None

            new_progress = max(state.progress, min(100, max(0, int(progress))))
            new_phase = _coerce_phase(phase)
            if new_phase is None:
                logger.warning("Unknown phase %r for job %s, keeping %s", phase, job_id, state.phase.value)
                new_phase = state.phase

            state = replace(
                state,
                progress=new_progress,
                status=status,
                phase=new_phase,
                updated_at=self._clock(),
            )
            self._jobs[job_id] = state

        logger.info("Updated job %s: %d%% - %s", job_id, new_progress, status)
        return state

    def get_progress(self, job_id: str) -> Optional[ProgressState]:
        """Get current progress for a job, or None if unknown."""
        with self._lock:
            return self._jobs.get(job_id)

    def complete_job(self, job_id: str) -> Optional[ProgressState]:
        """Mark a job as complete (100%, phase complete, status Ready)."""
        with self._lock:
            state = self._jobs.get(job_id)
            if state is None:
                logger.warning("Cannot complete - job not found: %s", job_id)
                return None
            state = replace(
                state,
                progress=100,
                status="Ready",
                phase=Phase.COMPLETE,
                updated_at=self._clock(),
            )
            self._jobs[job_id] = state

        logger.info("Completed job: %s", job_id)
        return state

    def remove_job(self, job_id: str) -> bool:
        """Remove a job immediately. Returns True if it existed."""
        with self._lock:
            removed = self._jobs.pop(job_id, None) is not None
        if removed:
            logger.info("Removed job: %s", job_id)
        return removed

    def active_job_count(self) -> int:
        """Number of jobs currently tracked."""
        with self._lock:
            return len(self._jobs)

    def sweep(self) -> int:
        """Remove jobs idle for longer than the retention window.

        Returns:
            Number of jobs removed
        """
        now = self._clock()
        with self._lock:
            expired = [job_id for job_id, state in self._jobs.items() if now - state.updated_at > self.retention]
            for job_id in expired:
                del self._jobs[job_id]

        if expired:
            logger.info("Cleaned up %d old job(s)", len(expired))
        return len(expired)

    def start(self) -> None:
        """Start the background sweep thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="progress-sweep", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            self.sweep()

    def shutdown(self) -> None:
        """Stop the sweep thread for graceful termination."""
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)
        self._thread = None
        logger.info("Progress tracker shutdown complete")

    @property
    def running(self) -> bool:
        """Whether the sweep thread is alive."""
        return self._thread is not None and self._thread.is_alive()


def _coerce_phase(phase: Union[Phase, str]) -> Optional[Phase]:
    if isinstance(phase, Phase):
        return phase
    try:
        return Phase(str(phase).lower())
    except ValueError:
        return None
