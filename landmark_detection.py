import logging
import os
import time
import urllib.request

import cv2
import mediapipe as mp

from landmark_adapter import RawDetection
from landmark_types import LandmarkSpace

logger = logging.getLogger(__name__)

FACE_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/face_landmarker.task"
)
POSE_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_full/float16/1/"
    "pose_landmarker_full.task"
)
DEFAULT_MODEL_DIR = os.path.join(os.path.expanduser("~"), ".cache", "ar-tryon")


def ensure_model(url: str, model_dir: str = DEFAULT_MODEL_DIR) -> str:
    path = os.path.join(model_dir, os.path.basename(url))
    if os.path.exists(path):
        return path
    os.makedirs(model_dir, exist_ok=True)
    logger.info("Downloading %s to %s", url, path)
    partial = path + ".part"
    urllib.request.urlretrieve(url, partial)
    os.replace(partial, path)
    return path


def has_legacy_solutions() -> bool:
    return getattr(mp, "solutions", None) is not None


class LandmarkDetector:
    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        detect_face: bool = True,
        detect_pose: bool = True,
        model_dir: str = DEFAULT_MODEL_DIR,
        use_legacy=None,
    ):
        if use_legacy is None:
            use_legacy = has_legacy_solutions()
        self.backend = "solutions" if use_legacy else "tasks"
        self._face_mesh = None
        self._pose = None
        self._face_landmarker = None
        self._pose_landmarker = None
        self._last_timestamp_ms = -1

        if use_legacy:
            self._open_solutions(min_detection_confidence, min_tracking_confidence, detect_face, detect_pose)
        else:
            self._open_tasks(min_detection_confidence, min_tracking_confidence, detect_face, detect_pose, model_dir)
        logger.info("Landmark detector ready (%s backend)", self.backend)

    def _open_solutions(self, detection_conf, tracking_conf, detect_face, detect_pose):
        if detect_face:
            self._face_mesh = mp.solutions.face_mesh.FaceMesh(
                static_image_mode=False,
                max_num_faces=1,
                refine_landmarks=True,
                min_detection_confidence=detection_conf,
                min_tracking_confidence=tracking_conf,
            )
        if detect_pose:
            self._pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=1,
                smooth_landmarks=True,
                min_detection_confidence=detection_conf,
                min_tracking_confidence=tracking_conf,
            )

    def _open_tasks(self, detection_conf, tracking_conf, detect_face, detect_pose, model_dir):
        from mediapipe.tasks.python import BaseOptions, vision

        if detect_face:
            options = vision.FaceLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=ensure_model(FACE_MODEL_URL, model_dir)),
                running_mode=vision.RunningMode.VIDEO,
                num_faces=1,
                min_face_detection_confidence=detection_conf,
                min_face_presence_confidence=detection_conf,
                min_tracking_confidence=tracking_conf,
                output_face_blendshapes=False,
                output_facial_transformation_matrixes=False,
            )
            self._face_landmarker = vision.FaceLandmarker.create_from_options(options)
        if detect_pose:
            options = vision.PoseLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=ensure_model(POSE_MODEL_URL, model_dir)),
                running_mode=vision.RunningMode.VIDEO,
                num_poses=1,
                min_pose_detection_confidence=detection_conf,
                min_pose_presence_confidence=detection_conf,
                min_tracking_confidence=tracking_conf,
                output_segmentation_masks=False,
            )
            self._pose_landmarker = vision.PoseLandmarker.create_from_options(options)

    def process(self, frame_bgr) -> RawDetection:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        if self.backend == "tasks":
            face, pose = self._process_tasks(frame_rgb)
        else:
            face, pose = self._process_solutions(frame_rgb)
        return RawDetection(face=face, pose=pose, space=LandmarkSpace.NORMALIZED)

    def _process_solutions(self, frame_rgb):
        frame_rgb.flags.writeable = False

        face = None
        if self._face_mesh is not None:
            results = self._face_mesh.process(frame_rgb)
            if results.multi_face_landmarks:
                face = list(results.multi_face_landmarks[0].landmark)

        pose = None
        if self._pose is not None:
            results = self._pose.process(frame_rgb)
            if results.pose_landmarks is not None:
                pose = list(results.pose_landmarks.landmark)
        return face, pose

    def _process_tasks(self, frame_rgb):
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        # Video mode needs strictly increasing timestamps.
        timestamp_ms = max(int(time.monotonic() * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        face = None
        if self._face_landmarker is not None:
            result = self._face_landmarker.detect_for_video(image, timestamp_ms)
            if result.face_landmarks:
                face = list(result.face_landmarks[0])

        pose = None
        if self._pose_landmarker is not None:
            result = self._pose_landmarker.detect_for_video(image, timestamp_ms)
            if result.pose_landmarks:
                pose = list(result.pose_landmarks[0])
        return face, pose

    def close(self) -> None:
        for name in ("_face_mesh", "_pose", "_face_landmarker", "_pose_landmarker"):
            graph = getattr(self, name)
            if graph is not None:
                graph.close()
                setattr(self, name, None)
