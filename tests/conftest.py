"""
Radio Testing Configuration
Pytest fixtures and test setup
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add src to Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))
sys.path.insert(0, str(Path(__file__).parent))

# Test environment, applied before settings are first loaded
os.environ.setdefault("LOG_FILE_PATH", str(Path(tempfile.gettempdir()) / "radio-tests" / "radio.log"))
os.environ.setdefault("MUSIC_API_KEY", "test-key")
os.environ.setdefault("PUBLIC_BASE_URL", "https://radio.test")
os.environ.setdefault("STORE_MEDIA_FILES", "false")
os.environ.pop("ROOM_ID", None)
os.environ.pop("PROXY_BASE_URL", None)

from radio.services.generation_service import GenerationService  # noqa: E402
from radio.services.media_service import MediaService  # noqa: E402
from radio.services.room_service import RoomService  # noqa: E402

from fakes import (  # noqa: E402
    FakeGenerationCallbackRepository,
    FakeGenerationRequestRepository,
    FakeMusicProvider,
    FakeRoomRepository,
    FakeTrackRepository
)


@pytest.fixture
def sample_track_payload():
    """One track as delivered by the generation webhook"""
    return {
        "id": "ext-track-1",
        "audio_url": "https://cdn.test/ext-track-1.mp3",
        "stream_audio_url": "https://cdn.test/stream/ext-track-1",
        "image_url": "https://cdn.test/ext-track-1.jpeg",
        "prompt": "[Verse]\nSnow on the rooftops",
        "model_name": "chirp-v5",
        "title": "Rooftop Snow",
        "tags": "lofi, chill",
        "createTime": 1735689600000,
        "duration": 182.4
    }


@pytest.fixture
def make_callback(sample_track_payload):
    """Build webhook bodies for a task"""

    def _make(task_id="task-1", code=200, callback_type="complete", tracks=None, msg="All generated successfully."):
        return {
            "code": code,
            "msg": msg,
            "data": {
                "callbackType": callback_type,
                "task_id": task_id,
                "data": [sample_track_payload] if tracks is None else tracks
            }
        }

    return _make


@pytest.fixture
def simple_params():
    """Minimal valid non-custom generation request"""
    return {
        "customMode": False,
        "instrumental": False,
        "model": "V5",
        "prompt": "A calm lofi song about snow"
    }


@pytest.fixture
def tracks():
    return FakeTrackRepository()


@pytest.fixture
def rooms():
    return FakeRoomRepository()


@pytest.fixture
def requests_repo():
    return FakeGenerationRequestRepository()


@pytest.fixture
def callbacks():
    return FakeGenerationCallbackRepository()


@pytest.fixture
def provider():
    return FakeMusicProvider()


@pytest.fixture
def generation(requests_repo, callbacks, tracks, rooms, provider):
    """Generation service wired to in-memory repositories"""
    return GenerationService(requests_repo, callbacks, tracks, rooms, provider, MediaService(enabled=False))


@pytest.fixture
def room_service(rooms, tracks, generation):
    return RoomService(rooms, tracks, generation)


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
