"""Progress estimation for validation and processing sessions.

Work is counted in units (one file validated, one clip trimmed, the
concat step, the mux step). Each phase owns a fixed slice of the overall
0-100 range, so overall progress never depends on how long a phase takes.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from beatcut.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Top-level phase reported to clients."""

    VALIDATION = "validation"
    PROCESSING = "processing"


class Stage(str, Enum):
    """Finer-grained position inside a phase."""

    VALIDATION = "validation"
    TRIM = "trim"
    CONCAT = "concat"
    MUX = "mux"
    DONE = "done"


class StatusChannel(Protocol):
    """Where status and progress messages go. Delivery is best effort."""

    async def send(self, message: dict[str, Any]) -> None: ...


class NullChannel:
    """Channel for callers without a connected client."""

    async def send(self, message: dict[str, Any]) -> None:
        return None


def create_status_message(message: str) -> dict[str, Any]:
    """Create a human-readable milestone message."""
    return {"type": "status", "message": message}


@dataclass(frozen=True)
class ProgressEvent:
    """Snapshot of progress after a unit of work."""

    phase: Phase
    stage: Stage
    percent: float
    elapsed_seconds: float
    eta_seconds: float
    overall_percent: float
    overall_elapsed_seconds: float

    def to_message(self) -> dict[str, Any]:
        """Wire format for the status channel."""
        return {
            "type": "progress-update",
            "phase": self.phase.value,
            "stage": self.stage.value,
            "percent": self.percent,
            "elapsedTime": self.elapsed_seconds,
            "estimatedTimeLeft": self.eta_seconds,
            "overallPercent": self.overall_percent,
            "overallElapsedTime": self.overall_elapsed_seconds,
        }


@dataclass
class PhaseTracker:
    """Unit counter for one phase."""

    phase: Phase
    total_units: int
    seconds_per_unit: float
    overall_start: float
    overall_span: float
    started_at: float
    finishing_units: int = 0
    finishing_seconds: float = 0.0
    completed_units: int = 0

    @property
    def percent(self) -> float:
        if self.total_units <= 0:
            return 100.0
        return 100.0 * self.completed_units / self.total_units

    @property
    def overall_percent(self) -> float:
        return self.overall_start + self.percent * self.overall_span / 100.0

    def elapsed(self, now: float) -> float:
        return max(0.0, now - self.started_at)

    def eta(self, now: float) -> float:
        """Seconds left, from the fixed estimate until real timings exist."""
        remaining = max(0, self.total_units - self.completed_units)
        if self.completed_units == 0:
            work_units = max(0, remaining - self.finishing_units)
            return self.seconds_per_unit * work_units + self.finishing_seconds
        per_unit = self.elapsed(now) / self.completed_units
        return max(0.0, per_unit * remaining)


class ProgressReporter:
    """Tracks one session's phases and pushes events to its channel."""

    def __init__(
        self,
        channel: Optional[StatusChannel] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._channel: StatusChannel = channel or NullChannel()
        self._settings = settings or get_settings()
        self._clock = clock
        self._started_at = clock()
        self._tracker: Optional[PhaseTracker] = None
        self.stage: Optional[Stage] = None
        self.events: list[ProgressEvent] = []

    def _phase_window(self, phase: Phase) -> tuple[float, float, float]:
        """(overall start, overall span, seconds per unit) for a phase."""
        share = self._settings.validation_overall_share
        if phase is Phase.VALIDATION:
            return 0.0, share, self._settings.validation_seconds_per_file
        return share, 100.0 - share, self._settings.processing_seconds_per_clip

    def _snapshot(self) -> ProgressEvent:
        tracker = self._tracker
        if tracker is None or self.stage is None:
            raise RuntimeError("No phase has been started")
        now = self._clock()
        return ProgressEvent(
            phase=tracker.phase,
            stage=self.stage,
            percent=tracker.percent,
            elapsed_seconds=tracker.elapsed(now),
            eta_seconds=tracker.eta(now),
            overall_percent=tracker.overall_percent,
            overall_elapsed_seconds=max(0.0, now - self._started_at),
        )

    async def _emit(self) -> ProgressEvent:
        event = self._snapshot()
        self.events.append(event)
        await self._channel.send(event.to_message())
        return event

    async def status(self, message: str) -> None:
        """Send a human-readable milestone."""
        logger.info(f"[STATUS] {message}")
        await self._channel.send(create_status_message(message))

    async def start_phase(
        self,
        phase: Phase,
        total_units: int,
        stage: Stage,
        finishing_units: int = 0,
    ) -> ProgressEvent:
        """Begin a phase and emit its 0% event.

        The last ``finishing_units`` units share one fixed estimate
        (settings.finishing_seconds) instead of the per-unit one.
        """
        overall_start, overall_span, per_unit = self._phase_window(phase)
        self._tracker = PhaseTracker(
            phase=phase,
            total_units=total_units,
            seconds_per_unit=per_unit,
            overall_start=overall_start,
            overall_span=overall_span,
            started_at=self._clock(),
            finishing_units=finishing_units,
            finishing_seconds=self._settings.finishing_seconds if finishing_units else 0.0,
        )
        self.stage = stage
        return await self._emit()

    def enter_stage(self, stage: Stage) -> None:
        """Move to another stage of the current phase without emitting."""
        self.stage = stage

    async def advance(self, units: int = 1) -> ProgressEvent:
        """Record completed units and emit an event."""
        if self._tracker is None:
            raise RuntimeError("No phase has been started")
        self._tracker.completed_units = min(
            self._tracker.total_units, self._tracker.completed_units + units
        )
        return await self._emit()

    async def complete(self) -> ProgressEvent:
        """Mark the current phase finished and emit the final event."""
        if self._tracker is None:
            raise RuntimeError("No phase has been started")
        self._tracker.completed_units = self._tracker.total_units
        if self._tracker.phase is Phase.PROCESSING:
            self.stage = Stage.DONE
        return await self._emit()
