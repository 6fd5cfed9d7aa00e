import numpy as np
import pytest

from accessories import AccessoryCategory, GlassesAligner
from accessory_registry import AccessoryDescriptor, get_aligners
from config import ViewerConfig
from frame_orchestrator import DEFAULT_POSITION, FrameOrchestrator, simulated_placement
from landmark_adapter import RawDetection
from landmark_types import Landmark, LandmarkSpace
from projection import DegenerateRayError

from conftest import HEIGHT, WIDTH, make_face, make_pose

GLASSES = AccessoryDescriptor("aviator", "Aviator", "models/glasses1.glb", AccessoryCategory.GLASSES)
EARRINGS = AccessoryDescriptor("hoop", "Hoop", "models/hoop.glb", AccessoryCategory.EARRINGS)
NECKLACE = AccessoryDescriptor("pearls", "Pearls", "models/pearls.glb", AccessoryCategory.NECKLACE)
SHIRT = AccessoryDescriptor("tee", "Tee", "models/tee.glb", AccessoryCategory.SHIRT)


class _ExplodingAligner(GlassesAligner):
    def align(self, landmarks, unproject):
        raise DegenerateRayError("ray parallel to plane")


@pytest.fixture
def statuses():
    return []


@pytest.fixture
def orchestrator(fake_loader, statuses):
    config = ViewerConfig(occlusion_topology="fan", asset_root="assets")
    orch = FrameOrchestrator(config, mesh_loader=fake_loader, status_callback=statuses.append)
    orch.set_detector_available(True)
    yield orch
    orch.close()


def _face_detection(**kwargs):
    return RawDetection(face=make_face(**kwargs).points, space=LandmarkSpace.PIXEL)


def _pose_detection(**kwargs):
    # Untracked points come back from the detector with zero visibility.
    points = [
        lm if lm is not None else Landmark(0.0, 0.0, 0.0, visibility=0.0)
        for lm in make_pose(**kwargs).points
    ]
    return RawDetection(pose=points, space=LandmarkSpace.NORMALIZED)


def test_select_builds_one_object_per_instance(orchestrator, fake_loader):
    orchestrator.select_accessory(EARRINGS)

    assert len(orchestrator.accessory_objects) == 2
    assert fake_loader.calls == ["assets/models/hoop.glb"]
    names = [obj.name for obj in orchestrator.scene.objects]
    assert names == ["face-occluder", "hoop#0", "hoop#1"]
    assert orchestrator.status == "Hoop loaded"
    assert orchestrator.accessory_loaded


def test_default_placement_after_select(orchestrator):
    orchestrator.select_accessory(GLASSES)
    obj = orchestrator.accessory_objects[0]
    assert obj.visible
    assert obj.position == DEFAULT_POSITION
    assert orchestrator.debug_info.startswith("Pos: (0.00, 0.00, -0.30)")


def test_swap_disposes_previous_objects(orchestrator):
    orchestrator.select_accessory(EARRINGS)
    old = orchestrator.accessory_objects

    orchestrator.select_accessory(GLASSES)

    assert all(obj.disposed for obj in old)
    scene_objects = orchestrator.scene.objects
    assert not any(obj in scene_objects for obj in old)
    assert len(orchestrator.accessory_objects) == 1
    assert orchestrator.accessory is GLASSES


def test_failed_load_keeps_previous_accessory(statuses):
    def broken_loader(path, extent):
        raise OSError("disk gone")

    orch = FrameOrchestrator(ViewerConfig(occlusion_topology="fan"), mesh_loader=broken_loader)
    with pytest.raises(OSError):
        orch.select_accessory(GLASSES)
    assert orch.accessory is None
    assert [obj.name for obj in orch.scene.objects] == ["face-occluder"]
    orch.close()


def test_placeholder_status(fake_loader):
    def placeholder_loader(path, extent):
        mesh, _ = fake_loader(path, extent)
        return mesh, True

    orch = FrameOrchestrator(ViewerConfig(occlusion_topology="fan"), mesh_loader=placeholder_loader)
    orch.select_accessory(GLASSES)
    assert orch.accessory_objects[0].placeholder
    assert orch.status == "Using placeholder for Aviator"
    orch.close()


def test_glasses_follow_face(orchestrator):
    orchestrator.select_accessory(GLASSES)
    orchestrator.submit_detection(_face_detection(), timestamp=0.1)
    orchestrator.update(0.1)

    obj = orchestrator.accessory_objects[0]
    assert obj.visible
    assert obj.position[2] == pytest.approx(0.05)
    assert obj.scale == pytest.approx(100.0 / WIDTH * 20.0)
    assert orchestrator.occluder.visible
    assert orchestrator.status == "Glasses aligned"


def test_placement_is_held_between_detections(orchestrator):
    orchestrator.select_accessory(GLASSES)
    orchestrator.submit_detection(_face_detection(), timestamp=0.1)
    orchestrator.update(0.1)
    first = orchestrator.accessory_objects[0].position

    orchestrator.update(0.2)
    assert orchestrator.accessory_objects[0].position == first


def test_consecutive_detections_are_smoothed(orchestrator):
    orchestrator.select_accessory(GLASSES)
    orchestrator.submit_detection(_face_detection(center=(320.0, 220.0)), timestamp=0.1)
    orchestrator.update(0.1)
    x0 = orchestrator.accessory_objects[0].position[0]

    orchestrator.submit_detection(_face_detection(center=(420.0, 220.0)), timestamp=0.2)
    orchestrator.update(0.2)
    x1 = orchestrator.accessory_objects[0].position[0]

    target = GlassesAligner().align(
        orchestrator.adapter.adapt(_face_detection(center=(420.0, 220.0)), 0.2), orchestrator.unproject
    ).position[0]
    assert x0 < x1 < target
    assert x1 == pytest.approx(x0 + (target - x0) * 0.3)


def test_earrings_get_separate_positions(orchestrator):
    orchestrator.select_accessory(EARRINGS)
    orchestrator.submit_detection(_face_detection(), timestamp=0.1)
    orchestrator.update(0.1)

    left, right = orchestrator.accessory_objects
    assert left.visible and right.visible
    assert left.position[0] < right.position[0]


def test_lost_face_hides_accessory(orchestrator):
    orchestrator.select_accessory(GLASSES)
    orchestrator.submit_detection(RawDetection(), timestamp=0.1)
    orchestrator.update(0.1)

    assert not orchestrator.accessory_objects[0].visible
    assert not orchestrator.occluder.visible
    assert orchestrator.status.startswith("No face detected")


def test_body_accessories(orchestrator):
    orchestrator.select_accessory(NECKLACE)
    orchestrator.submit_detection(_pose_detection(missing=[23, 24]), timestamp=0.1)
    orchestrator.update(0.1)
    assert orchestrator.accessory_objects[0].visible

    orchestrator.select_accessory(SHIRT)
    orchestrator.submit_detection(_pose_detection(missing=[23, 24]), timestamp=0.2)
    orchestrator.update(0.2)
    assert not orchestrator.accessory_objects[0].visible
    assert "hips" in orchestrator.status


def test_degenerate_ray_keeps_last_placement(fake_loader):
    aligners = get_aligners()
    aligners[AccessoryCategory.GLASSES] = _ExplodingAligner()
    orch = FrameOrchestrator(ViewerConfig(occlusion_topology="fan"), aligners=aligners, mesh_loader=fake_loader)
    orch.set_detector_available(True)
    orch.select_accessory(GLASSES)

    orch.submit_detection(_face_detection(), timestamp=0.1)
    orch.update(0.1)

    obj = orch.accessory_objects[0]
    assert obj.visible
    assert obj.position == DEFAULT_POSITION
    orch.close()


def test_degenerate_occluder_vertex_keeps_previous_occluder(orchestrator):
    orchestrator.select_accessory(GLASSES)
    orchestrator.submit_detection(_face_detection(), timestamp=0.1)
    orchestrator.update(0.1)
    previous_mesh = orchestrator.occluder.mesh
    assert orchestrator.occluder.visible

    working = orchestrator.unproject
    calls = []

    def flaky(u, v, depth):
        calls.append((u, v, depth))
        if len(calls) == 5:
            raise DegenerateRayError("ray parallel to plane")
        return working(u, v, depth)

    orchestrator.unproject = flaky
    orchestrator.submit_detection(_face_detection(center=(330.0, 220.0)), timestamp=0.2)
    orchestrator.update(0.2)

    assert orchestrator.occluder.visible
    assert orchestrator.occluder.mesh is previous_mesh
    assert orchestrator.accessory_objects[0].visible


def test_simulation_mode_animates(fake_loader):
    orch = FrameOrchestrator(ViewerConfig(occlusion_topology="fan"), mesh_loader=fake_loader)
    orch.set_detector_available(False)
    orch.select_accessory(GLASSES)

    orch.update(2.0)

    obj = orch.accessory_objects[0]
    assert obj.rotation == simulated_placement(2.0).rotation
    assert orch.status == "Simulation mode (model not loaded)"
    orch.close()


def test_reset_restores_default(orchestrator):
    orchestrator.select_accessory(GLASSES)
    orchestrator.submit_detection(_face_detection(), timestamp=0.1)
    orchestrator.update(0.1)

    orchestrator.reset_accessory()

    assert orchestrator.accessory_objects[0].position == DEFAULT_POSITION
    assert orchestrator.smoother.last(("aviator", 0)) is None


def test_render_frame_resizes_to_viewport(orchestrator):
    orchestrator.select_accessory(GLASSES)
    frame = np.zeros((240, 320, 3), dtype=np.uint8)
    out = orchestrator.render_frame(frame, now=0.0)
    assert out.shape == (HEIGHT, WIDTH, 3)
    assert out.any()


def test_close_releases_everything(fake_loader):
    orch = FrameOrchestrator(ViewerConfig(occlusion_topology="fan"), mesh_loader=fake_loader)
    orch.select_accessory(EARRINGS)
    objects = list(orch.accessory_objects)

    orch.close()
    orch.close()

    assert all(obj.disposed for obj in objects)
    assert orch.scene.objects == []
    assert orch.accessory is None
    with pytest.raises(RuntimeError):
        orch.select_accessory(GLASSES)


def test_status_callback_sees_each_change_once(orchestrator, statuses):
    orchestrator.select_accessory(GLASSES)
    orchestrator.select_accessory(GLASSES)
    assert statuses.count("Loading Aviator...") == 2
    assert "Aviator loaded" in statuses
    assert statuses[0] == "Initializing..."
