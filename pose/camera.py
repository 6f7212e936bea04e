from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .backend import ResourceAcquisitionError


logger = logging.getLogger(__name__)


class CameraError(ResourceAcquisitionError):
    """Camera missing or permission denied."""


class Camera:
    """
    Live video source backed by OpenCV.

    - Requests a preferred resolution; the device may pick the closest it supports
    - Device 0 is the built-in (front-facing) webcam on laptops
    - open() failing means permission was denied or no device exists
    """

    def __init__(
        self,
        device_index: int = 0,
        *,
        width: int = 1280,
        height: int = 720,
        capture_factory=None,
    ) -> None:
        self.device_index = int(device_index)
        self.width = int(width)
        self.height = int(height)
        self._capture_factory = capture_factory
        self._cap = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> "Camera":
        if self._cap is not None:
            return self
        if self._capture_factory is not None:
            cap = self._capture_factory(self.device_index)
        else:
            try:
                import cv2  # type: ignore
            except Exception as exc:
                raise CameraError("OpenCV (cv2) is required for camera capture") from exc
            cap = cv2.VideoCapture(self.device_index)
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(self.width))
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self.height))

        if not cap.isOpened():
            cap.release()
            raise CameraError(
                f"Could not open camera {self.device_index}; check that it is connected "
                "and that camera access is allowed"
            )
        self._cap = cap
        logger.info("Camera %d opened", self.device_index)
        return self

    def read(self) -> Optional[np.ndarray]:
        """Grab one frame, or None when the stream yields nothing."""
        if self._cap is None:
            raise CameraError("Camera is not open")
        ok, frame = self._cap.read()
        if not ok:
            return None
        return frame

    def release(self) -> None:
        """Stop the stream. Safe to call more than once."""
        if self._cap is None:
            return
        cap, self._cap = self._cap, None
        cap.release()
        logger.info("Camera %d released", self.device_index)

    def __enter__(self) -> "Camera":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
