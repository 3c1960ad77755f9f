"""
Upload progress state machine

Five ordered phases, each with a percentage floor. Percentages never go down
within one attempt. States emitted on phase entry carry simulated=True: they
are step estimates, not measured transfer progress. Byte counts from the
storage transfer callback produce measured states (simulated=False) inside
the uploading range.
"""

from typing import Callable, List, Optional

from edulearn.models.upload import UploadPhase, UploadProgressState
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)

PHASE_ORDER = [
    UploadPhase.VALIDATING,
    UploadPhase.UPLOADING_MEDIA,
    UploadPhase.GENERATING_THUMBNAIL,
    UploadPhase.PERSISTING_RECORD,
    UploadPhase.FINALIZING,
]

PHASE_FLOORS = {
    UploadPhase.VALIDATING: 0,
    UploadPhase.UPLOADING_MEDIA: 20,
    UploadPhase.GENERATING_THUMBNAIL: 40,
    UploadPhase.PERSISTING_RECORD: 80,
    UploadPhase.FINALIZING: 95,
}

ProgressSubscriber = Callable[[UploadProgressState], None]


def phase_ceiling(phase: UploadPhase) -> int:
    """Highest percentage reportable while still inside `phase`"""
    index = PHASE_ORDER.index(phase)
    if index + 1 < len(PHASE_ORDER):
        return PHASE_FLOORS[PHASE_ORDER[index + 1]] - 1
    return 99


class ProgressReporter:

    def __init__(self, upload_id: str):
        self.upload_id = upload_id
        self.phase: Optional[UploadPhase] = None
        self.percentage = 0
        self.status = "pending"
        self.history: List[UploadProgressState] = []
        self._subscribers: List[ProgressSubscriber] = []

    def subscribe(self, subscriber: ProgressSubscriber) -> None:
        self._subscribers.append(subscriber)

    @property
    def current(self) -> Optional[UploadProgressState]:
        return self.history[-1] if self.history else None

    def advance(self, phase: UploadPhase) -> UploadProgressState:
        """Enter the next phase; phases cannot be revisited"""
        if self.phase is not None and PHASE_ORDER.index(phase) < PHASE_ORDER.index(self.phase):
            raise ValueError(f"Cannot move from {self.phase.value} back to {phase.value}")

        self.phase = phase
        self.status = "in_progress"
        self.percentage = max(self.percentage, PHASE_FLOORS[phase])
        return self._emit(simulated=True)

    def report(self, percentage: float) -> Optional[UploadProgressState]:
        """Report progress inside the current phase; lower values are ignored"""
        if self.phase is None:
            raise ValueError("report() called before the first phase")

        clamped = int(min(max(percentage, PHASE_FLOORS[self.phase]), phase_ceiling(self.phase)))
        if clamped <= self.percentage:
            return None

        self.percentage = clamped
        return self._emit(simulated=False)

    def report_bytes(self, transferred: int, total: int) -> Optional[UploadProgressState]:
        """Map a byte count onto the current phase's percentage range"""
        if total <= 0 or self.phase is None:
            return None

        floor = PHASE_FLOORS[self.phase]
        span = phase_ceiling(self.phase) - floor
        fraction = min(transferred / total, 1.0)
        return self.report(floor + span * fraction)

    def complete(self) -> UploadProgressState:
        self.phase = UploadPhase.FINALIZING
        self.percentage = 100
        self.status = "completed"
        return self._emit(simulated=False)

    def fail(self, message: str) -> UploadProgressState:
        """Terminal failure; keeps the last percentage"""
        self.status = "failed"
        return self._emit(simulated=False, error_message=message)

    def _emit(self, simulated: bool, error_message: Optional[str] = None) -> UploadProgressState:
        state = UploadProgressState(
            upload_id=self.upload_id,
            phase=self.phase or UploadPhase.VALIDATING,
            percentage=self.percentage,
            simulated=simulated,
            status=self.status,
            error_message=error_message,
        )
        self.history.append(state)
        logger.debug(f"Upload {self.upload_id}: {state.phase.value} {state.percentage}%")

        for subscriber in self._subscribers:
            try:
                subscriber(state)
            except Exception as e:
                logger.warning(f"Progress subscriber failed for {self.upload_id}: {e}")

        return state
