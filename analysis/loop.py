from __future__ import annotations

import logging
import threading
import time
from contextlib import ExitStack
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from pose.backend import Pose, PoseBackend, ResourceAcquisitionError
from pose.camera import Camera

from .analyzer import FormAnalyzer, MetricsSnapshot
from .utils import TICK_INTERVAL_S


logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    IDLE = "idle"          # no camera/model
    READY = "ready"        # model loaded, camera attached, not sampling
    SAMPLING = "sampling"  # producing snapshots at a fixed interval
    STOPPED = "stopped"    # camera/model released


class LoopStateError(RuntimeError):
    pass


class DetectionLoop:
    """
    Owns the camera and the pose detector for one coaching session and turns
    them into a MetricsSnapshot every `interval_s` seconds.

    Both resources are acquired together in open() and released together in
    close(), on every exit path. Ticks never overlap: a tick that starts while
    another is in flight is skipped rather than queued.

    Counters: `ticks` produced a snapshot, `dropped_ticks` ran but produced
    nothing (no frame, detector error, or the exercise changed mid-detection),
    `skipped_ticks` never ran because a detection was still in flight, and
    `missed_slots` are cadence slots run() let pass after a slow tick.
    """

    def __init__(
        self,
        analyzer: Optional[FormAnalyzer] = None,
        *,
        camera_factory: Callable[[], Camera] = Camera,
        detector_factory: Callable[[], PoseBackend] = PoseBackend,
        interval_s: float = TICK_INTERVAL_S,
        on_snapshot: Optional[Callable[[MetricsSnapshot], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.analyzer = analyzer if analyzer is not None else FormAnalyzer()
        self.interval_s = float(interval_s)
        self.on_snapshot = on_snapshot
        self._camera_factory = camera_factory
        self._detector_factory = detector_factory
        self._clock = clock
        self._sleep = sleep

        self.state = LoopState.IDLE
        self.camera: Optional[Camera] = None
        self.detector: Optional[PoseBackend] = None
        self.last_error: Optional[ResourceAcquisitionError] = None
        self.last_frame: Optional[np.ndarray] = None
        self.last_poses: List[Pose] = []

        self.ticks = 0
        self.dropped_ticks = 0
        self.skipped_ticks = 0
        self.missed_slots = 0

        self._stack: Optional[ExitStack] = None
        self._tick_lock = threading.Lock()
        # Guards analyzer updates against exercise switches
        self._analyzer_lock = threading.RLock()
        self._generation = 0

    @property
    def snapshot(self) -> MetricsSnapshot:
        return self.analyzer.snapshot

    def _require(self, *states: LoopState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise LoopStateError(f"expected state in ({allowed}), got {self.state.value}")

    def open(self) -> "DetectionLoop":
        """Idle -> Ready: attach the camera and load the detector."""
        if self.state is LoopState.READY or self.state is LoopState.SAMPLING:
            return self
        self._require(LoopState.IDLE)

        stack = ExitStack()
        try:
            camera = stack.enter_context(self._camera_factory())
            detector = stack.enter_context(self._detector_factory())
        except ResourceAcquisitionError as exc:
            stack.close()
            self.last_error = exc
            logger.error("Coach session could not start: %s", exc)
            raise
        except Exception as exc:
            stack.close()
            self.last_error = ResourceAcquisitionError(str(exc))
            logger.exception("Coach session could not start")
            raise self.last_error from exc

        self._stack = stack
        self.camera = camera
        self.detector = detector
        self.last_error = None
        self.state = LoopState.READY
        return self

    def start(self) -> None:
        """Ready -> Sampling."""
        if self.state is LoopState.SAMPLING:
            return
        self._require(LoopState.READY)
        self.state = LoopState.SAMPLING
        logger.info("Sampling started (%s every %.2fs)", self.analyzer.profile.name, self.interval_s)

    def pause(self) -> None:
        """Sampling -> Ready. Angle history is kept."""
        if self.state is LoopState.SAMPLING:
            self.state = LoopState.READY
            logger.info("Sampling paused")

    def select_exercise(self, exercise: str) -> None:
        """Switch exercise: stops sampling and clears all angle history."""
        if self.state is LoopState.STOPPED:
            raise LoopStateError("loop is stopped")
        with self._analyzer_lock:
            self.analyzer.select_exercise(exercise)
            self._generation += 1
            self.pause()

    def tick(self) -> Optional[MetricsSnapshot]:
        """
        One detection tick: read frame -> detect -> analyze -> publish.
        Returns the published snapshot, or None when the tick produced nothing.
        """
        if self.state is not LoopState.SAMPLING:
            return None
        if not self._tick_lock.acquire(blocking=False):
            self.skipped_ticks += 1
            logger.debug("Previous detection still in flight; tick skipped")
            return None
        try:
            if self.state is not LoopState.SAMPLING:
                return None
            generation = self._generation
            try:
                frame = self.camera.read()
                if frame is None:
                    self.dropped_ticks += 1
                    logger.debug("Camera returned no frame; tick dropped")
                    return None
                poses = self.detector.detect(frame)
            except Exception as exc:
                self.dropped_ticks += 1
                logger.warning("Detection tick dropped: %s", exc)
                return None

            with self._analyzer_lock:
                if self.state is not LoopState.SAMPLING or generation != self._generation:
                    # Frame belongs to the previous exercise or sampling was paused
                    self.dropped_ticks += 1
                    logger.debug("Detection result discarded after exercise switch or pause")
                    return None
                self.last_frame = frame
                self.last_poses = poses
                snapshot = self.analyzer.update(poses)
                self.ticks += 1
        finally:
            self._tick_lock.release()

        if self.on_snapshot is not None:
            self.on_snapshot(snapshot)
        return snapshot

    def preview(self) -> Optional[np.ndarray]:
        """Read a camera frame without detecting, for display while not sampling."""
        if self.state is not LoopState.READY:
            return None
        if not self._tick_lock.acquire(blocking=False):
            return None
        try:
            if self.state is not LoopState.READY:
                return None
            try:
                frame = self.camera.read()
            except Exception as exc:
                logger.warning("Preview frame unavailable: %s", exc)
                return None
            if frame is not None:
                self.last_frame = frame
            return frame
        finally:
            self._tick_lock.release()

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Tick at a fixed cadence until sampling stops or max_ticks is reached.
        Slots missed because a tick overran are skipped, not queued.
        Returns the number of ticks attempted.
        """
        self._require(LoopState.SAMPLING)
        count = 0
        next_at = self._clock()
        while self.state is LoopState.SAMPLING and (max_ticks is None or count < max_ticks):
            self.tick()
            count += 1
            next_at += self.interval_s
            now = self._clock()
            if now > next_at:
                missed = int((now - next_at) // self.interval_s) + 1
                self.missed_slots += missed
                next_at += missed * self.interval_s
            if self.state is LoopState.SAMPLING and (max_ticks is None or count < max_ticks):
                self._sleep(max(0.0, next_at - now))
        return count

    def close(self) -> None:
        """Any state -> Stopped: release the camera and dispose the detector."""
        if self.state is LoopState.STOPPED:
            return
        with self._tick_lock:
            stack, self._stack = self._stack, None
            self.state = LoopState.STOPPED
            self.camera = None
            self.detector = None
            if stack is not None:
                stack.close()
        logger.info("Coach session stopped")

    def __enter__(self) -> "DetectionLoop":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
