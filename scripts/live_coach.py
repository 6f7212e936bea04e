#!/usr/bin/env python3
"""Live webcam form coach: skeleton overlay plus per-angle feedback bars.

Keys: space = start/pause, 1-5 = switch exercise, q = quit.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from analysis.analyzer import FormAnalyzer  # noqa: E402
from analysis.loop import DetectionLoop, LoopState  # noqa: E402
from analysis.profiles import PROFILES  # noqa: E402
from analysis.utils import TICK_INTERVAL_S  # noqa: E402
from pose.backend import PoseBackend, ResourceAcquisitionError  # noqa: E402
from pose.camera import Camera  # noqa: E402
from pose.draw import draw_overlay  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--exercise", default="squat", choices=sorted(PROFILES))
    parser.add_argument("--device", type=int, default=0)
    parser.add_argument("--interval", type=float, default=TICK_INTERVAL_S)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(name)s | %(message)s")
    try:
        import cv2  # type: ignore
    except ImportError as exc:
        raise SystemExit("OpenCV (cv2) is required for the live coach. Install with `pip install opencv-python`") from exc

    names = list(PROFILES)
    loop = DetectionLoop(
        FormAnalyzer(args.exercise),
        camera_factory=lambda: Camera(args.device),
        detector_factory=PoseBackend,
        interval_s=args.interval,
    )
    try:
        loop.open()
    except ResourceAcquisitionError as exc:
        print(f"Could not start the coach: {exc}\nFix the problem and run again.")
        return 1

    with loop:
        loop.start()
        while True:
            if loop.state is LoopState.SAMPLING:
                loop.tick()
                pose = loop.last_poses[0] if loop.last_poses else []
            else:
                # Keep the preview live while paused; no skeleton without detection
                loop.preview()
                pose = []
            if loop.last_frame is not None:
                frame = draw_overlay(loop.last_frame.copy(), pose, loop.snapshot)
                cv2.imshow("Form Friend", frame)
            key = cv2.waitKey(max(1, int(loop.interval_s * 1000))) & 0xFF
            if key == ord("q"):
                break
            if key == ord(" "):
                if loop.state is LoopState.SAMPLING:
                    loop.pause()
                else:
                    loop.start()
            elif ord("1") <= key < ord("1") + len(names):
                loop.select_exercise(names[key - ord("1")])
                loop.start()
    cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
