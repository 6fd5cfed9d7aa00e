from dataclasses import dataclass, field
from typing import Optional

from smoothing import SmoothingFactors


@dataclass
class ViewerConfig:
    camera_index: int = 0
    frame_width: int = 640
    frame_height: int = 480
    target_fps: int = 30

    # Virtual camera; accessories are placed around the z=0 plane it looks at.
    fov_deg: float = 50.0
    near: float = 0.01
    far: float = 100.0
    camera_z: float = 1.0

    smoothing: SmoothingFactors = field(default_factory=SmoothingFactors)
    max_lost_frames: int = 10
    detect_every_n_frames: int = 1

    occlusion_topology: str = "canonical"
    occlusion_depth: float = 0.0
    occlusion_depth_scale: float = 1.0

    visibility_threshold: float = 0.5
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    mirror: bool = True
    show_landmarks: bool = False
    show_occluder: bool = False
    catalog_path: Optional[str] = None
    asset_root: str = "."
    model_dir: Optional[str] = None

    @property
    def image_size(self):
        return self.frame_width, self.frame_height

    @property
    def aspect(self) -> float:
        return self.frame_width / float(self.frame_height)
