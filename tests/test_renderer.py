import numpy as np
import pytest

from landmark_types import Placement
from renderer import OverlayRenderer
from scene import MeshData, Scene, SceneObject

from conftest import HEIGHT, WIDTH, box_mesh


def _quad(z):
    vertices = np.array(
        [[-0.5, -0.5, z], [0.5, -0.5, z], [0.5, 0.5, z], [-0.5, 0.5, z]],
        dtype=np.float64,
    )
    return MeshData(vertices=vertices, faces=np.array([[0, 1, 2], [0, 2, 3]], dtype=np.int32))


@pytest.fixture
def renderer(camera):
    return OverlayRenderer(camera, WIDTH, HEIGHT)


@pytest.fixture
def accessory():
    obj = SceneObject("glasses#0", box_mesh(0.1, color=(0, 255, 0)))
    obj.apply(Placement(position=(0.0, 0.0, -0.3), scale=1.0))
    return obj


def _blank():
    return np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)


def test_accessory_is_drawn(renderer, accessory):
    scene = Scene()
    scene.add(accessory)
    frame = _blank()

    out = renderer.render(frame, scene)

    assert out[HEIGHT // 2, WIDTH // 2, 1] > 0
    assert out[HEIGHT // 2, WIDTH // 2, 2] == 0
    assert not frame.any()


def test_occluder_in_front_hides_accessory(renderer, accessory):
    scene = Scene()
    scene.add(SceneObject("occluder", _quad(0.0), depth_only=True))
    scene.add(accessory)

    out = renderer.render(_blank(), scene)

    assert not out.any()


def test_occluder_behind_does_not_hide(renderer, accessory):
    scene = Scene()
    scene.add(SceneObject("occluder", _quad(-0.6), depth_only=True))
    scene.add(accessory)

    out = renderer.render(_blank(), scene)

    assert out[HEIGHT // 2, WIDTH // 2, 1] > 0


def test_hidden_objects_are_skipped(renderer, accessory):
    accessory.apply(Placement.hidden())
    scene = Scene()
    scene.add(accessory)
    assert not renderer.render(_blank(), scene).any()


def test_occluder_wireframe_only_when_enabled(renderer):
    scene = Scene()
    scene.add(SceneObject("occluder", _quad(0.0), depth_only=True))
    assert not renderer.render(_blank(), scene).any()

    renderer.show_occluder = True
    assert renderer.render(_blank(), scene).any()
