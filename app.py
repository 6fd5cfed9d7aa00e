import argparse
import logging
import sys
import time

import cv2
import numpy as np

from config import ViewerConfig
from session import TryOnSession
from smoothing import SmoothingFactors
from ui import draw_side_panel, draw_status_panel
from visualization import draw_landmarks

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Real-time AR accessory try-on viewer")
    parser.add_argument("--camera", type=int, default=0, help="camera index")
    parser.add_argument("--width", type=int, default=640)
    parser.add_argument("--height", type=int, default=480)
    parser.add_argument("--fps", type=int, default=30)
    parser.add_argument("--catalog", default=None, help="JSON accessory catalog")
    parser.add_argument("--asset-root", default=".", help="directory the asset paths are relative to")
    parser.add_argument("--model-dir", default=None, help="where detector model files are cached")
    parser.add_argument("--occlusion", choices=["canonical", "fan"], default="canonical")
    parser.add_argument("--detect-every", type=int, default=1, help="run detection every N frames")
    parser.add_argument("--position-smoothing", type=float, default=0.3)
    parser.add_argument("--scale-smoothing", type=float, default=0.3)
    parser.add_argument("--rotation-smoothing", type=float, default=0.4)
    parser.add_argument("--no-mirror", action="store_true")
    parser.add_argument("--show-landmarks", action="store_true")
    parser.add_argument("--show-occluder", action="store_true")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> ViewerConfig:
    return ViewerConfig(
        camera_index=args.camera,
        frame_width=args.width,
        frame_height=args.height,
        target_fps=args.fps,
        smoothing=SmoothingFactors(
            position=args.position_smoothing,
            scale=args.scale_smoothing,
            rotation=args.rotation_smoothing,
        ),
        detect_every_n_frames=args.detect_every,
        occlusion_topology=args.occlusion,
        mirror=not args.no_mirror,
        show_landmarks=args.show_landmarks,
        show_occluder=args.show_occluder,
        catalog_path=args.catalog,
        asset_root=args.asset_root,
        model_dir=args.model_dir,
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = config_from_args(args)

    window_name = "AR Try-On"
    session = TryOnSession(config)
    if not session.open():
        logger.error("Could not open webcam.")
        session.close()
        return 1

    entries = session.catalog
    selected_idx = 0

    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
    click_state = {"x": None, "y": None}

    def on_mouse(event, x, y, flags, param):
        if event == cv2.EVENT_LBUTTONDOWN:
            click_state["x"] = x
            click_state["y"] = y

    cv2.setMouseCallback(window_name, on_mouse)
    try:
        while True:
            if cv2.getWindowProperty(window_name, cv2.WND_PROP_VISIBLE) < 1:
                break
            frame = session.step()
            orchestrator = session.orchestrator
            if frame is None:
                frame = np.zeros((config.frame_height, config.frame_width, 3), dtype=np.uint8)
                frame = orchestrator.render_frame(frame, time.time())

            if config.show_landmarks and orchestrator.latest is not None:
                draw_landmarks(frame, orchestrator.latest)

            lines = [
                f"Accessory: {entries[selected_idx].name}" if entries else "Accessory: -",
                f"Status: {orchestrator.status}",
                "Keys: W/S change, R reset, Q quit",
            ]
            if orchestrator.debug_info:
                lines.append(orchestrator.debug_info)
            draw_status_panel(frame, lines)
            clickable = draw_side_panel(frame, entries, selected_idx)
            cv2.imshow(window_name, frame)

            new_idx = selected_idx
            if click_state["x"] is not None and click_state["y"] is not None:
                cx, cy = click_state["x"], click_state["y"]
                click_state["x"] = None
                click_state["y"] = None
                for (left, top, right, bottom), idx in clickable:
                    if left <= cx <= right and top <= cy <= bottom:
                        new_idx = idx
                        break

            key = cv2.waitKey(1)
            if key & 0xFF == ord("q"):
                break
            if key in [2490368, ord("w")]:
                new_idx = max(0, selected_idx - 1)
            elif key in [2621440, ord("s")]:
                new_idx = min(len(entries) - 1, selected_idx + 1)
            elif key & 0xFF == ord("r"):
                orchestrator.reset_accessory()

            if new_idx != selected_idx:
                selected_idx = new_idx
                session.select(entries[selected_idx])
    finally:
        session.close()
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    sys.exit(main())
