import logging
from typing import Callable, List, Optional

import numpy as np

from accessory_registry import AccessoryDescriptor, get_accessory_catalog, load_catalog
from camera import CameraStream
from config import ViewerConfig
from frame_orchestrator import FrameOrchestrator
from landmark_detection import DEFAULT_MODEL_DIR, LandmarkDetector

logger = logging.getLogger(__name__)


class TryOnSession:

    def __init__(
        self,
        config: Optional[ViewerConfig] = None,
        status_callback: Optional[Callable[[str], None]] = None,
        camera: Optional[CameraStream] = None,
        detector_factory: Callable = LandmarkDetector,
    ):
        self.config = config or ViewerConfig()
        cfg = self.config
        self.camera = camera or CameraStream(
            camera_index=cfg.camera_index,
            width=cfg.frame_width,
            height=cfg.frame_height,
            target_fps=cfg.target_fps,
            mirror=cfg.mirror,
        )
        self.detector_factory = detector_factory
        self.detector = None
        self.orchestrator = FrameOrchestrator(cfg, status_callback=status_callback)
        if cfg.catalog_path:
            self.catalog: List[AccessoryDescriptor] = load_catalog(cfg.catalog_path)
        else:
            self.catalog = get_accessory_catalog()
        self.frame_index = 0
        self.running = False

    def open(self) -> bool:
        self.orchestrator.set_status("Requesting camera access...")
        if not self.camera.open():
            self.orchestrator.set_status("Camera access denied")
            return False

        self.orchestrator.set_status("Loading landmark detector...")
        try:
            self.detector = self.detector_factory(
                min_detection_confidence=self.config.min_detection_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
                model_dir=self.config.model_dir or DEFAULT_MODEL_DIR,
            )
        except (AttributeError, ImportError, RuntimeError, OSError) as exc:
            logger.error("Landmark detector failed to load: %s", exc)
            self.detector = None
        self.orchestrator.set_detector_available(self.detector is not None)

        if self.catalog and self.orchestrator.accessory is None:
            self.orchestrator.select_accessory(self.catalog[0])
        self.running = True
        return True

    def select(self, descriptor: AccessoryDescriptor) -> None:
        self.orchestrator.select_accessory(descriptor)

    def step(self) -> Optional[np.ndarray]:
        if not self.running:
            return None
        cam_frame = self.camera.read()
        if not cam_frame.ok:
            self.orchestrator.set_status("Camera error")
            return None

        if self.detector is not None and self.frame_index % max(1, self.config.detect_every_n_frames) == 0:
            raw = self.detector.process(cam_frame.frame)
            self.orchestrator.submit_detection(raw, cam_frame.timestamp)
        self.frame_index += 1
        return self.orchestrator.render_frame(cam_frame.frame, cam_frame.timestamp)

    def close(self) -> None:
        self.running = False
        self.camera.release()
        if self.detector is not None:
            self.detector.close()
            self.detector = None
        self.orchestrator.close()
