from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

Point3 = Tuple[float, float, float]

FACE_MESH_POINTS = 468
POSE_POINTS = 33

# Face mesh indices (fixed by the detector's canonical topology).
NOSE_TIP = 1
NOSE_BRIDGE = 6
LEFT_EYE_CENTER = 159
RIGHT_EYE_CENTER = 386
LEFT_EAR_CLUSTER = (234, 93, 132, 58)
RIGHT_EAR_CLUSTER = (454, 323, 361, 288)

# Body pose indices.
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_HIP = 23
RIGHT_HIP = 24


class LandmarkSpace(Enum):
    PIXEL = "pixel"
    NORMALIZED = "normalized"


@dataclass
class Landmark:
    x: float
    y: float
    z: float
    visibility: float = 1.0


@dataclass
class LandmarkSet:
    points: List[Optional[Landmark]]
    space: LandmarkSpace

    def __len__(self) -> int:
        return len(self.points)

    def get(self, index: int) -> Optional[Landmark]:
        if index < 0 or index >= len(self.points):
            return None
        return self.points[index]

    def has_all(self, indices: Sequence[int]) -> bool:
        return all(self.get(i) is not None for i in indices)


@dataclass
class FrameLandmarks:
    timestamp: float
    image_size: Tuple[int, int]
    face: Optional[LandmarkSet] = None
    pose: Optional[LandmarkSet] = None

    @property
    def valid(self) -> bool:
        return self.face is not None or self.pose is not None

    def to_uv(self, lm: Landmark, space: LandmarkSpace) -> Tuple[float, float]:
        if space is LandmarkSpace.NORMALIZED:
            return lm.x, lm.y
        width, height = self.image_size
        return lm.x / float(width), lm.y / float(height)


@dataclass
class Rotation:
    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0


@dataclass
class Placement:
    position: Optional[Point3] = None
    rotation: Rotation = field(default_factory=Rotation)
    scale: float = 1.0
    visible: bool = True
    positions: Optional[List[Point3]] = None

    @classmethod
    def hidden(cls) -> "Placement":
        return cls(position=None, scale=0.0, visible=False)

    def instance_positions(self) -> List[Point3]:
        if self.positions is not None:
            return list(self.positions)
        if self.position is not None:
            return [self.position]
        return []
