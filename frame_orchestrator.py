import logging
import math
import os
from typing import Callable, Dict, List, Optional

import cv2
import numpy as np

from accessories import AccessoryCategory, AlignmentBase
from accessory_registry import AccessoryDescriptor, get_aligners
from assets import load_or_placeholder
from config import ViewerConfig
from landmark_adapter import LandmarkAdapter, RawDetection
from landmark_types import FrameLandmarks, Placement, Rotation
from occlusion import OcclusionMeshBuilder
from projection import DegenerateRayError, PerspectiveCamera, make_unprojector
from renderer import OverlayRenderer
from scene import MeshData, Scene, SceneObject
from smoothing import TemporalSmoother

logger = logging.getLogger(__name__)

DEFAULT_POSITION = (0.0, 0.0, -0.3)
OCCLUDER_NAME = "face-occluder"
FACE_CATEGORIES = (AccessoryCategory.GLASSES, AccessoryCategory.EARRINGS)


def default_placement(instance_count: int = 1) -> Placement:
    return _spread(Placement(position=DEFAULT_POSITION, rotation=Rotation(), scale=1.0), instance_count)


def simulated_placement(t: float, instance_count: int = 1) -> Placement:
    # Slow head-like wobble shown while no detector is available.
    rotation = Rotation(
        pitch=math.sin(t * 0.7) * 0.1,
        yaw=math.sin(t * 0.5) * 0.2,
        roll=math.sin(t * 0.3) * 0.1,
    )
    return _spread(Placement(position=DEFAULT_POSITION, rotation=rotation, scale=1.0), instance_count)


def _spread(placement: Placement, instance_count: int, spacing: float = 0.12) -> Placement:
    if instance_count < 2:
        return placement
    x, y, z = placement.position
    offsets = [spacing * (i - (instance_count - 1) / 2.0) for i in range(instance_count)]
    placement.positions = [(x + dx, y, z) for dx in offsets]
    return placement


class FrameOrchestrator:
    def __init__(
        self,
        config: Optional[ViewerConfig] = None,
        camera: Optional[PerspectiveCamera] = None,
        renderer: Optional[OverlayRenderer] = None,
        aligners: Optional[Dict[AccessoryCategory, AlignmentBase]] = None,
        mesh_loader: Callable = load_or_placeholder,
        status_callback: Optional[Callable[[str], None]] = None,
    ):
        self.config = config or ViewerConfig()
        cfg = self.config
        self.camera = camera or PerspectiveCamera(
            fov_deg=cfg.fov_deg,
            aspect=cfg.aspect,
            near=cfg.near,
            far=cfg.far,
            position=(0.0, 0.0, cfg.camera_z),
        )
        self.unproject = make_unprojector(self.camera)
        self.renderer = renderer or OverlayRenderer(self.camera, cfg.frame_width, cfg.frame_height)
        self.renderer.show_occluder = cfg.show_occluder
        self.adapter = LandmarkAdapter(cfg.image_size, visibility_threshold=cfg.visibility_threshold)
        self.aligners = aligners or get_aligners()
        self.smoother = TemporalSmoother(cfg.smoothing, cfg.max_lost_frames)
        self.occlusion_builder = OcclusionMeshBuilder(
            topology=cfg.occlusion_topology,
            base_depth=cfg.occlusion_depth,
            depth_scale=cfg.occlusion_depth_scale,
        )
        self.mesh_loader = mesh_loader
        self.status_callback = status_callback

        self.scene = Scene()
        self.occluder = SceneObject(OCCLUDER_NAME, None, depth_only=True)
        self.scene.add(self.occluder)

        self.accessory: Optional[AccessoryDescriptor] = None
        self.accessory_objects: List[SceneObject] = []
        self.accessory_loaded = False
        self.detector_available = False
        self.latest: Optional[FrameLandmarks] = None
        self._pending: Optional[FrameLandmarks] = None
        self._out_of_view = False
        self._closed = False

        self.status = ""
        self.debug_info = ""
        self.set_status("Initializing...")

    def set_status(self, text: str) -> None:
        if text == self.status:
            return
        self.status = text
        logger.info("Status: %s", text)
        if self.status_callback is not None:
            self.status_callback(text)

    def set_detector_available(self, available: bool) -> None:
        self.detector_available = available
        if available:
            self.set_status("Landmark detector ready")
        else:
            self.set_status("Simulation mode (model not loaded)")

    def select_accessory(self, descriptor: AccessoryDescriptor) -> None:
        if self._closed:
            raise RuntimeError("orchestrator is closed")
        if descriptor.category not in self.aligners:
            raise ValueError(f"No aligner registered for {descriptor.category.value}")

        self.set_status(f"Loading {descriptor.name}...")
        path = os.path.join(self.config.asset_root, descriptor.asset_path)
        mesh, is_placeholder = self.mesh_loader(path, descriptor.base_extent)
        new_objects = []
        for i in range(descriptor.instance_count):
            obj = SceneObject(f"{descriptor.id}#{i}", mesh, placeholder=is_placeholder)
            new_objects.append(obj)

        # Old objects leave the scene only after the replacements are built.
        for obj in self.accessory_objects:
            self.scene.remove(obj)
            obj.dispose()
        for obj in new_objects:
            self.scene.add(obj)

        self.accessory = descriptor
        self.accessory_objects = new_objects
        self.accessory_loaded = True
        self.smoother.reset()
        self._apply(default_placement(descriptor.instance_count))
        if is_placeholder:
            self.set_status(f"Using placeholder for {descriptor.name}")
        else:
            self.set_status(f"{descriptor.name} loaded")

    def reset_accessory(self) -> None:
        self.smoother.reset()
        if self.accessory is not None:
            self._apply(default_placement(self.accessory.instance_count))

    def submit_detection(self, raw: Optional[RawDetection], timestamp: float) -> FrameLandmarks:
        landmarks = self.adapter.adapt(raw, timestamp)
        self._pending = landmarks
        self.latest = landmarks
        return landmarks

    def update(self, now: float) -> None:
        if self._closed or self.accessory is None:
            return

        if not self.detector_available:
            self._apply(simulated_placement(now, self.accessory.instance_count))
            self.set_status("Simulation mode (model not loaded)")
            return

        if self._pending is None:
            return
        landmarks = self._pending
        self._pending = None

        self._update_occluder(landmarks)
        aligner = self.aligners[self.accessory.category]
        try:
            candidate = aligner.align(landmarks, self.unproject)
        except DegenerateRayError as exc:
            logger.debug("Skipping placement update: %s", exc)
            return

        keys = [(self.accessory.id, i) for i in range(self.accessory.instance_count)]
        if not candidate.visible:
            for key in keys:
                self.smoother.mark_lost(key)
            for obj in self.accessory_objects:
                obj.visible = False
            self.set_status(self._lost_message())
            return

        smoothed = []
        for key, position in zip(keys, candidate.instance_positions()):
            instance = Placement(position=position, rotation=candidate.rotation, scale=candidate.scale)
            smoothed.append(self.smoother.update(key, instance))
        for obj, placement in zip(self.accessory_objects, smoothed):
            obj.apply(placement)

        self._after_apply()
        self.set_status(f"{self.accessory.category.value.capitalize()} aligned")

    def render_frame(self, frame_bgr: np.ndarray, now: float) -> np.ndarray:
        self.update(now)
        width, height = self.config.image_size
        if frame_bgr.shape[1] != width or frame_bgr.shape[0] != height:
            frame_bgr = cv2.resize(frame_bgr, (width, height))
        return self.renderer.render(frame_bgr, self.scene)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.scene.dispose()
        self.accessory_objects = []
        self.accessory = None
        self.accessory_loaded = False
        self.smoother.reset()
        self._pending = None
        logger.info("Scene resources released")

    def _apply(self, placement: Placement) -> None:
        positions = placement.instance_positions()
        for obj, position in zip(self.accessory_objects, positions):
            obj.apply(placement, position)
        self._after_apply()

    def _after_apply(self) -> None:
        if not self.accessory_objects:
            return
        lead = self.accessory_objects[0]
        if not lead.visible:
            return
        x, y, z = lead.position
        self.debug_info = f"Pos: ({x:.2f}, {y:.2f}, {z:.2f}) Scale: {lead.scale:.2f}"

        out_of_view = not self.camera.is_in_view(lead.position)
        if out_of_view and not self._out_of_view:
            logger.warning("%s is outside the camera frustum", lead.name)
        self._out_of_view = out_of_view

    def _update_occluder(self, landmarks: FrameLandmarks) -> None:
        try:
            mesh = self.occlusion_builder.build(landmarks, self.unproject)
        except DegenerateRayError as exc:
            # Keep the previous occluder for this frame.
            logger.debug("Skipping occluder update: %s", exc)
            return
        if not mesh.visible:
            self.occluder.mesh = None
            self.occluder.visible = False
            return
        self.occluder.mesh = MeshData(
            vertices=mesh.vertices.astype(np.float64),
            faces=mesh.triangles.astype(np.int32),
            color=(0, 0, 0),
        )
        self.occluder.visible = True

    def _lost_message(self) -> str:
        if self.accessory.category in FACE_CATEGORIES:
            return "No face detected - show your face to the camera"
        if self.accessory.category is AccessoryCategory.SHIRT:
            return "No body detected - keep shoulders and hips in view"
        return "No body detected - keep your shoulders in view"
