import pytest

from tests.helpers import RecordingEvents


@pytest.fixture
def events():
    return RecordingEvents()
