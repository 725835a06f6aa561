import time

import numpy as np
import pytest

import camera.capture
from camera.capture import CameraCapture


class FakeVideoCapture:
    """Stands in for cv2.VideoCapture: serves `frames` grey frames, then fails."""

    frames = 1_000_000

    def __init__(self, index):
        self.index = index
        self.served = 0
        self.released = False

    def isOpened(self):
        return self.index == 0

    def set(self, prop, value):
        return True

    def get(self, prop):
        return 0.0

    def read(self):
        if self.served >= self.frames:
            return False, None
        self.served += 1
        time.sleep(0.002)
        return True, np.full((48, 64, 3), 90, dtype=np.uint8)

    def release(self):
        self.released = True


@pytest.fixture
def fake_cv2(monkeypatch):
    monkeypatch.setattr(camera.capture.cv2, "VideoCapture", FakeVideoCapture)
    return FakeVideoCapture


def test_open_read_release(fake_cv2):
    cam = CameraCapture(device_index=0)
    assert cam.open()
    try:
        assert cam.wait_for_frame(timeout=2.0) is not None
        assert cam.is_ready()
        assert cam.frame_size() == (64, 48)
        region = cam.read_region(10, 10, 8, 4)
        assert region.shape == (4, 8, 3)
        assert int(region.mean()) == 90
    finally:
        cam.release()
    assert not cam.is_ready()
    assert cam.get_latest_frame() is None


def test_unavailable_device(fake_cv2):
    cam = CameraCapture(device_index=3)
    assert not cam.open()
    assert not cam.is_open
    assert not cam.is_ready()
    with pytest.raises(RuntimeError):
        cam.frame_size()


def test_disconnect_makes_source_not_ready(fake_cv2, monkeypatch):
    monkeypatch.setattr(FakeVideoCapture, "frames", 3)
    cam = CameraCapture(device_index=0)
    assert cam.open()
    try:
        deadline = time.monotonic() + 2.0
        while cam.frames_captured < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.05)
        assert cam.frames_captured == 3
        assert not cam.is_ready()
    finally:
        cam.release()


def test_stale_frame_is_not_ready():
    cam = CameraCapture(device_index=0, stale_after=0.05)
    cam._latest_frame = np.zeros((4, 4, 3), dtype=np.uint8)
    cam._latest_at = time.monotonic() - 1.0
    assert not cam.is_ready()
    cam._latest_at = time.monotonic()
    assert cam.is_ready()
