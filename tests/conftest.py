from typing import Iterable, Optional

import numpy as np
import pytest

from camera import CameraFrame
from landmark_adapter import RawDetection
from landmark_types import (
    FACE_MESH_POINTS,
    LEFT_EAR_CLUSTER,
    LEFT_EYE_CENTER,
    LEFT_HIP,
    LEFT_SHOULDER,
    NOSE_TIP,
    POSE_POINTS,
    RIGHT_EAR_CLUSTER,
    RIGHT_EYE_CENTER,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    FrameLandmarks,
    Landmark,
    LandmarkSet,
    LandmarkSpace,
)
from projection import PerspectiveCamera, make_unprojector
from scene import MeshData

WIDTH = 640
HEIGHT = 480


def make_face(
    eye_distance: float = 100.0,
    center=(320.0, 220.0),
    nose_offset=(0.0, 50.0),
    count: int = FACE_MESH_POINTS,
    missing: Iterable[int] = (),
) -> LandmarkSet:
    cx, cy = center
    points = []
    for i in range(count):
        # Spread filler points over a face-sized grid so no triangle is fully degenerate.
        x = cx - 120.0 + (i % 26) * 9.6
        y = cy - 100.0 + (i // 26) * 13.0
        z = -10.0 * np.cos((i % 26) / 26.0 * np.pi)
        points.append(Landmark(float(x), float(y), float(z)))

    def put(idx, x, y, z=0.0):
        if idx < count:
            points[idx] = Landmark(x, y, z)

    put(LEFT_EYE_CENTER, cx - eye_distance / 2.0, cy)
    put(RIGHT_EYE_CENTER, cx + eye_distance / 2.0, cy)
    put(NOSE_TIP, cx + nose_offset[0], cy + nose_offset[1], -20.0)
    for k, idx in enumerate(LEFT_EAR_CLUSTER):
        put(idx, cx - 110.0, cy + 30.0 + k * 5.0)
    for k, idx in enumerate(RIGHT_EAR_CLUSTER):
        put(idx, cx + 110.0, cy + 30.0 + k * 5.0)
    for idx in missing:
        points[idx] = None
    return LandmarkSet(points, LandmarkSpace.PIXEL)


def make_pose(
    shoulder_width: float = 0.24,
    shoulder_y: float = 0.55,
    hip_y: float = 0.9,
    missing: Iterable[int] = (),
    shoulder_depth_delta: float = 0.0,
) -> LandmarkSet:
    points = [Landmark(0.5, 0.3, 0.0) for _ in range(POSE_POINTS)]
    half = shoulder_width / 2.0
    points[LEFT_SHOULDER] = Landmark(0.5 + half, shoulder_y, 0.0)
    points[RIGHT_SHOULDER] = Landmark(0.5 - half, shoulder_y, shoulder_depth_delta)
    points[LEFT_HIP] = Landmark(0.5 + half * 0.7, hip_y, 0.0)
    points[RIGHT_HIP] = Landmark(0.5 - half * 0.7, hip_y, 0.0)
    for idx in missing:
        points[idx] = None
    return LandmarkSet(points, LandmarkSpace.NORMALIZED)


def make_frame(face: Optional[LandmarkSet] = None, pose: Optional[LandmarkSet] = None, timestamp: float = 0.0):
    return FrameLandmarks(timestamp=timestamp, image_size=(WIDTH, HEIGHT), face=face, pose=pose)


def box_mesh(extent: float = 0.1, color=(0, 255, 0)) -> MeshData:
    h = extent / 2.0
    vertices = np.array(
        [[x, y, z] for x in (-h, h) for y in (-h, h) for z in (-h, h)],
        dtype=np.float64,
    )
    faces = np.array(
        [
            [0, 1, 3], [0, 3, 2], [4, 6, 7], [4, 7, 5],
            [0, 4, 5], [0, 5, 1], [2, 3, 7], [2, 7, 6],
            [0, 2, 6], [0, 6, 4], [1, 5, 7], [1, 7, 3],
        ],
        dtype=np.int32,
    )
    return MeshData(vertices=vertices, faces=faces, color=color)


@pytest.fixture
def camera():
    return PerspectiveCamera(aspect=WIDTH / HEIGHT)


@pytest.fixture
def unproject(camera):
    return make_unprojector(camera)


@pytest.fixture
def fake_loader():
    calls = []

    def _load(path, extent):
        calls.append(path)
        return box_mesh(extent), False

    _load.calls = calls
    return _load


class FakeCamera:
    def __init__(self, events, opens=True):
        self.events = events
        self.opens = opens

    def open(self):
        return self.opens

    def read(self):
        return CameraFrame(np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8), 1.0, True)

    def release(self):
        self.events.append("camera")


class FakeDetector:
    def __init__(self, events, **kwargs):
        self.events = events
        self.kwargs = kwargs
        self.frames = 0

    def process(self, frame):
        self.frames += 1
        return RawDetection(face=make_face().points, space=LandmarkSpace.PIXEL)

    def close(self):
        self.events.append("detector")
