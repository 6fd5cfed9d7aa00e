import logging
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CameraFrame:
    frame: Optional[np.ndarray]
    timestamp: float
    ok: bool


class CameraStream:
    def __init__(
        self,
        camera_index: int = 0,
        width: int = 640,
        height: int = 480,
        target_fps: int = 30,
        mirror: bool = True,
        backend: int = cv2.CAP_ANY,
    ):
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.target_fps = target_fps
        self.mirror = mirror
        self.backend = backend
        self._capture: Optional[cv2.VideoCapture] = None
        self._last_time = time.time()

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self) -> bool:
        self._capture = cv2.VideoCapture(self.camera_index, self.backend)
        if not self._capture.isOpened():
            logger.error("Could not open camera %d", self.camera_index)
            self._capture.release()
            self._capture = None
            return False
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._capture.set(cv2.CAP_PROP_FPS, self.target_fps)
        logger.info("Camera %d opened at %dx%d", self.camera_index, self.width, self.height)
        return True

    def read(self) -> CameraFrame:
        if self._capture is None:
            return CameraFrame(None, time.time(), False)

        ok, frame = self._capture.read()
        now = time.time()
        if not ok:
            return CameraFrame(None, now, False)

        if frame.shape[1] != self.width or frame.shape[0] != self.height:
            frame = cv2.resize(frame, (self.width, self.height))
        if self.mirror:
            frame = cv2.flip(frame, 1)

        # Sleep to keep the loop close to target_fps.
        if self.target_fps > 0:
            min_frame_time = 1.0 / float(self.target_fps)
            elapsed = now - self._last_time
            if elapsed < min_frame_time:
                time.sleep(min_frame_time - elapsed)
                now = time.time()
        self._last_time = now
        return CameraFrame(frame, now, True)

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera %d released", self.camera_index)
