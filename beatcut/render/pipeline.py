"""
Beat-synchronized render pipeline.

This module orchestrates one processing session:
1. Derive interval durations from the beat track
2. Assign a distinct clip to every interval
3. Render each interval to an exact-length conformant segment
4. Concatenate the segments without re-encoding
5. Mux the original audio track onto the result

Steps run strictly in sequence inside a scratch workspace that is removed
when the session ends, whether it succeeded or not. Every ffmpeg call runs
on a worker thread, so separate sessions proceed concurrently.
"""

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from beatcut.config import Settings, get_settings
from beatcut.exceptions import BeatcutError, InvalidRequestError
from beatcut.models import Assignment, MediaAsset, RenderedSegment, TargetFormat
from beatcut.render.audio_muxer import AudioMuxer
from beatcut.render.concatenator import Concatenator
from beatcut.render.segment_renderer import SegmentRenderer
from beatcut.services.clip_assigner import assign_clips, build_intervals, total_surplus
from beatcut.services.progress import Phase, ProgressReporter, Stage, StatusChannel
from beatcut.services.workspace import Session, session_workspace

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """What a finished session hands back to the caller."""

    session_id: str
    output_path: str
    intervals: list[float]
    assignments: list[Assignment]
    segments: list[RenderedSegment] = field(default_factory=list)

    @property
    def output_file(self) -> str:
        return Path(self.output_path).name

    @property
    def underruns(self) -> list[RenderedSegment]:
        return [s for s in self.segments if s.underrun]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "session_id": self.session_id,
            "output_path": self.output_path,
            "intervals": self.intervals,
            "assignments": [a.to_dict() for a in self.assignments],
            "underruns": [s.index for s in self.underruns],
        }


def final_output_path(output_dir: Path, session_id: str) -> Path:
    """Where a session's finished video lives."""
    return Path(output_dir) / f"final_{session_id}.mp4"


class BeatSyncPipeline:
    """Runs beat-synchronized sessions for one target format."""

    def __init__(
        self,
        temp_dir: Path,
        output_dir: Path,
        target: TargetFormat,
        channel: Optional[StatusChannel] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)
        self.target = target
        self.channel = channel
        self.settings = settings or get_settings()
        self.rng = rng
        self.reporter: Optional[ProgressReporter] = None

    async def run(
        self,
        beats: Sequence[float],
        pool: Sequence[MediaAsset],
        audio_path: str,
        randomize: bool = False,
        session_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Execute a full session.

        Args:
            beats: Ascending beat timestamps in seconds
            pool: Candidate clips; invalid ones are ignored
            audio_path: Soundtrack muxed onto the final video
            randomize: Shuffle the clip scan order once for this session
            session_id: Optional fixed id (defaults to a new UUID)

        Returns:
            PipelineResult with the final path and the assignment

        Raises:
            BeatcutError: Any fatal step; a terminal status has been sent and
                the workspace removed by the time it propagates
        """
        self.reporter = ProgressReporter(self.channel, self.settings)
        reporter = self.reporter

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        with session_workspace(self.temp_dir, session_id) as session:
            try:
                return await self._run_session(session, reporter, beats, pool, audio_path, randomize)
            except Exception as e:
                message = e.message if isinstance(e, BeatcutError) else str(e)
                logger.error(f"[PIPELINE] Session {session.id} failed: {message}")
                final_output_path(self.output_dir, session.id).unlink(missing_ok=True)
                await reporter.status(f"Error: {message}")
                raise

    async def _run_session(
        self,
        session: Session,
        reporter: ProgressReporter,
        beats: Sequence[float],
        pool: Sequence[MediaAsset],
        audio_path: str,
        randomize: bool,
    ) -> PipelineResult:
        await reporter.status("Starting video processing...")
        logger.info(f"[PIPELINE] Session {session.id}: {len(beats)} beats, {len(pool)} clips")

        intervals = build_intervals(beats, self.settings.tail_interval_seconds)
        # Trim units, then one unit each for concat and mux
        await reporter.start_phase(Phase.PROCESSING, len(intervals) + 2, Stage.TRIM, finishing_units=2)

        valid_pool = [asset for asset in pool if asset.is_valid]
        assets_by_id = {asset.id: asset for asset in valid_pool}
        if len(assets_by_id) != len(valid_pool):
            raise InvalidRequestError("Video files must have unique ids")

        assignments = assign_clips(intervals, valid_pool, randomize, self.rng)
        logger.info(
            f"[PIPELINE] Assigned {len(assignments)} clips, "
            f"total surplus {total_surplus(assignments):.3f}s"
        )

        renderer = SegmentRenderer(session.workspace_dir, self.target, self.settings)
        segments: list[RenderedSegment] = []
        for assignment in assignments:
            asset = assets_by_id[assignment.asset_id]
            await reporter.status(
                f"Trimming clip {assignment.interval_index + 1}/{len(assignments)}: "
                f"{asset.original_name}"
            )
            segment = await renderer.render(
                asset, assignment.interval_duration, assignment.interval_index
            )
            if segment.underrun:
                await reporter.status(
                    f"Warning: clip {asset.original_name} is too short for interval "
                    f"{assignment.interval_index + 1}; segment is "
                    f"{segment.rendered_duration:.2f}s instead of "
                    f"{segment.requested_duration:.2f}s"
                )
            segments.append(segment)
            await reporter.advance()

        reporter.enter_stage(Stage.CONCAT)
        await reporter.status("Merging video clips...")
        merged_path = session.path("merged.mp4")
        await Concatenator(session.workspace_dir, self.settings).concatenate(
            [s.path for s in segments], str(merged_path)
        )
        await reporter.advance()

        reporter.enter_stage(Stage.MUX)
        await reporter.status("Adding original audio track...")
        output_path = final_output_path(self.output_dir, session.id)
        await AudioMuxer(self.settings).mux(str(merged_path), audio_path, str(output_path))
        await reporter.advance()

        await reporter.complete()
        await reporter.status("Video processing complete!")
        logger.info(f"[PIPELINE] Session {session.id} complete: {output_path}")

        return PipelineResult(
            session_id=session.id,
            output_path=str(output_path),
            intervals=intervals,
            assignments=assignments,
            segments=segments,
        )
