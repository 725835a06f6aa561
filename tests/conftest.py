import pytest

from camera.frame_source import ArrayFrameSource
from face.landmarks import LandmarkSet
from tests.helpers import FRAME_H, FRAME_W, FakeClock, make_landmarks


@pytest.fixture
def landmarks() -> LandmarkSet:
    return make_landmarks()


@pytest.fixture
def grey_frame() -> ArrayFrameSource:
    return ArrayFrameSource.filled(FRAME_W, FRAME_H, (128, 128, 128))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
