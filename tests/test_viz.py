"""Tests for overlay rendering and the original/projected view state."""

import numpy as np
import pytest

from fusionview.annotation import ObjectType
from fusionview.projection import BoxOverlay, CameraOverlay, ProjectedPoint
from fusionview.viz import (
    FrameViewState,
    ImageOverlay,
    draw_box_overlays,
    draw_projected_points,
    load_image,
    render_camera_overlay,
    save_image,
)


@pytest.fixture
def image():
    return np.zeros((100, 120, 3), dtype=np.uint8)


@pytest.fixture
def box_overlay():
    corner_a = ProjectedPoint(x=20.0, y=50.0, depth=10.0, color=(214, 39, 40))
    corner_b = ProjectedPoint(x=100.0, y=50.0, depth=10.0, color=(214, 39, 40))
    return BoxOverlay(
        object_id="7",
        object_type=ObjectType.TRUCK,
        edges=((corner_a, corner_b),),
        label_anchor=corner_a,
        color=(214, 39, 40),
        label="Truck 7",
    )


class TestDrawPoints:

    def test_point_color(self, image):
        point = ProjectedPoint(x=60.2, y=40.7, depth=5.0, color=(255, 0, 0))

        result = draw_projected_points(image, [point], point_size=2)

        assert result[41, 60].tolist() == [255, 0, 0]
        assert image.sum() == 0

    def test_later_points_on_top(self, image):
        far = ProjectedPoint(x=50.0, y=50.0, depth=30.0, color=(0, 0, 255))
        near = ProjectedPoint(x=50.0, y=50.0, depth=10.0, color=(255, 0, 0))

        result = draw_projected_points(image, [far, near])

        assert result[50, 50].tolist() == [255, 0, 0]

    def test_alpha_blending(self, image):
        point = ProjectedPoint(x=50.0, y=50.0, depth=5.0, color=(200, 200, 200))

        result = draw_projected_points(image, [point], alpha=0.5)

        assert result[50, 50].tolist() == [100, 100, 100]
        assert result[0, 0].tolist() == [0, 0, 0]

    def test_default_color(self, image):
        result = draw_projected_points(image, [ProjectedPoint(10.0, 10.0, 1.0)])

        assert result[10, 10].tolist() == [0, 255, 127]


class TestDrawBoxes:

    def test_edge_drawn_in_box_color(self, image, box_overlay):
        result = draw_box_overlays(image, [box_overlay], thickness=1, show_labels=False)
        pixel = result[48:53, 60].max(axis=0)

        # Anti-aliased, so only the hue is checked
        assert pixel[0] > 0
        assert pixel[0] > pixel[1]
        assert pixel[0] > pixel[2]
        assert result[10, 10].tolist() == [0, 0, 0]

    def test_label_drawn_above_anchor(self, image, box_overlay):
        without = draw_box_overlays(image, [box_overlay], show_labels=False)
        with_label = draw_box_overlays(image, [box_overlay], show_labels=True)

        changed = np.any(with_label != without, axis=2)
        rows = np.flatnonzero(changed.any(axis=1))

        assert len(rows) > 0
        assert rows.min() < 45

    def test_box_without_edges(self, image, box_overlay):
        empty = BoxOverlay(
            object_id="8",
            object_type=ObjectType.CAR,
            edges=(),
            label_anchor=box_overlay.label_anchor,
            color=(44, 160, 44),
            label="",
        )

        result = draw_box_overlays(image, [empty])

        assert result.sum() == 0


class TestRenderCameraOverlay:

    def test_resizes_to_overlay(self, image):
        overlay = CameraOverlay(camera_id="cam_1", width=60, height=50)

        result = render_camera_overlay(image, overlay)

        assert result.shape == (50, 60, 3)

    def test_layers_can_be_disabled(self, image, box_overlay):
        point = ProjectedPoint(x=10.0, y=10.0, depth=5.0, color=(255, 0, 0))
        overlay = CameraOverlay(
            camera_id="cam_1", width=120, height=100,
            points=(point,), boxes=(box_overlay,),
        )

        assert render_camera_overlay(image, overlay, draw_points=False, draw_boxes=False).sum() == 0
        only_points = render_camera_overlay(image, overlay, draw_boxes=False)
        assert only_points[10, 10].tolist() == [255, 0, 0]
        assert only_points[50, 60].tolist() == [0, 0, 0]

    def test_fluent_overlay(self, image, box_overlay, tmp_path):
        point = ProjectedPoint(x=10.0, y=10.0, depth=5.0, color=(0, 255, 0))
        path = tmp_path / "fluent.png"

        overlay = (
            ImageOverlay(image)
            .draw_points([point])
            .draw_boxes([box_overlay], show_labels=False)
            .draw_text("cam_1", (5, 90))
        )

        assert overlay.get()[10, 10].tolist() == [0, 255, 0]
        assert overlay.save(path)
        assert image.sum() == 0


class TestImageIO:

    def test_save_and_load_png(self, tmp_path):
        image = np.zeros((20, 30, 3), dtype=np.uint8)
        image[:, :, 0] = 255
        path = tmp_path / "nested" / "red.png"

        assert save_image(image, path)
        loaded = load_image(path)

        assert loaded.shape == (20, 30, 3)
        assert loaded[0, 0].tolist() == [255, 0, 0]

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "missing.png")

    def test_load_unreadable(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")

        with pytest.raises(IOError):
            load_image(path)


class TestFrameViewState:

    def test_toggle(self, image):
        view = FrameViewState()
        projected = image + 1

        view.set_original(image)
        view.set_projected(projected)

        assert view.current() is image
        assert view.toggle() is True
        assert view.current() is projected
        assert view.toggle() is False
        assert view.current() is image

    def test_new_original_clears_projection(self, image):
        view = FrameViewState()
        view.set_original(image)
        view.set_projected(image + 1)
        view.toggle()

        view.set_original(image + 2)

        assert view.projected is None
        assert view.current() is view.original

    def test_projected_requires_original(self, image):
        with pytest.raises(ValueError):
            FrameViewState().set_projected(image)

    def test_reset(self, image):
        view = FrameViewState()
        view.set_original(image)
        view.toggle()
        view.reset()

        assert view.current() is None
        assert view.show_projection is False
