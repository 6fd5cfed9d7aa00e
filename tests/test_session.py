import pytest

from config import ViewerConfig
from session import TryOnSession

from conftest import HEIGHT, WIDTH, FakeCamera, FakeDetector, box_mesh


@pytest.fixture
def events():
    return []


def _session(events, detector_factory=None, opens=True, **config_kwargs):
    config = ViewerConfig(occlusion_topology="fan", **config_kwargs)
    factory = detector_factory or (lambda **kwargs: FakeDetector(events, **kwargs))
    session = TryOnSession(config, camera=FakeCamera(events, opens), detector_factory=factory)
    session.orchestrator.mesh_loader = lambda path, extent: (box_mesh(extent), False)
    return session


def test_open_selects_first_catalog_entry(events):
    session = _session(events)
    assert session.open()

    orchestrator = session.orchestrator
    assert orchestrator.detector_available
    assert orchestrator.accessory is session.catalog[0]
    assert session.detector.kwargs["min_detection_confidence"] == 0.5
    assert session.detector.kwargs["min_tracking_confidence"] == 0.5
    assert session.detector.kwargs["model_dir"]
    session.close()


def test_camera_denied(events):
    session = _session(events, opens=False)
    assert not session.open()
    assert session.orchestrator.status == "Camera access denied"
    assert session.step() is None
    session.close()


def test_detector_failure_falls_back_to_simulation(events):
    def failing(**kwargs):
        raise RuntimeError("model file missing")

    session = _session(events, detector_factory=failing)
    assert session.open()
    assert session.detector is None

    frame = session.step()
    assert frame.shape == (HEIGHT, WIDTH, 3)
    assert session.orchestrator.status == "Simulation mode (model not loaded)"
    session.close()


def test_step_runs_detection_every_n_frames(events):
    session = _session(events, detect_every_n_frames=3)
    session.open()
    for _ in range(7):
        session.step()
    assert session.detector.frames == 3
    assert session.orchestrator.status == "Glasses aligned"
    session.close()


def test_close_releases_in_order(events):
    session = _session(events)
    session.open()
    orchestrator = session.orchestrator

    session.close()

    assert events == ["camera", "detector"]
    assert orchestrator.scene.objects == []
    assert session.step() is None


def test_custom_catalog(tmp_path, events):
    path = tmp_path / "catalog.json"
    path.write_text(
        '[{"id": "tee", "name": "Tee", "asset_path": "tee.glb", "category": "shirt"}]',
        encoding="utf-8",
    )
    session = _session(events, catalog_path=str(path))
    session.open()
    assert session.orchestrator.accessory.id == "tee"
    session.close()
