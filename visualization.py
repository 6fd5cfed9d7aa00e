from typing import Sequence, Tuple

import cv2

from landmark_types import (
    LEFT_EYE_CENTER,
    LEFT_HIP,
    LEFT_SHOULDER,
    NOSE_TIP,
    RIGHT_EYE_CENTER,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    FrameLandmarks,
)

FACE_HIGHLIGHT = {
    LEFT_EYE_CENTER: (255, 0, 0),
    RIGHT_EYE_CENTER: (255, 0, 0),
    NOSE_TIP: (0, 255, 255),
}

TORSO_EDGES: Sequence[Tuple[int, int]] = (
    (LEFT_SHOULDER, RIGHT_SHOULDER),
    (LEFT_SHOULDER, LEFT_HIP),
    (RIGHT_SHOULDER, RIGHT_HIP),
    (LEFT_HIP, RIGHT_HIP),
)


def _to_pixel(landmarks: FrameLandmarks, lm, space) -> Tuple[int, int]:
    width, height = landmarks.image_size
    u, v = landmarks.to_uv(lm, space)
    return int(u * width), int(v * height)


def draw_landmarks(frame, landmarks: FrameLandmarks) -> None:
    face = landmarks.face
    if face is not None:
        for idx, lm in enumerate(face.points):
            if lm is None:
                continue
            color = FACE_HIGHLIGHT.get(idx)
            if color is not None:
                cv2.circle(frame, _to_pixel(landmarks, lm, face.space), 4, color, -1)
            else:
                cv2.circle(frame, _to_pixel(landmarks, lm, face.space), 1, (0, 200, 0), -1)

    pose = landmarks.pose
    if pose is None:
        return
    for a, b in TORSO_EDGES:
        lm_a = pose.get(a)
        lm_b = pose.get(b)
        if lm_a is None or lm_b is None:
            continue
        cv2.line(frame, _to_pixel(landmarks, lm_a, pose.space), _to_pixel(landmarks, lm_b, pose.space), (0, 255, 0), 2)
    for idx in (LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP):
        lm = pose.get(idx)
        if lm is not None:
            cv2.circle(frame, _to_pixel(landmarks, lm, pose.space), 5, (0, 165, 255), -1)
