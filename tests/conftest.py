"""
Pytest configuration and fixtures.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from highlight_renderer.config import Settings
from highlight_renderer.services.timeline import (
    Speaker,
    Utterance,
    normalize_utterance_timestamps,
)


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the developer's .env and environment."""
    return Settings(
        _env_file=None,
        data_dir=str(tmp_path / "data"),
        do_spaces_endpoint="https://fra1.digitaloceanspaces.com",
        do_spaces_key="key",
        do_spaces_secret="secret",
        do_spaces_bucket="test-bucket",
        cdn_base_url="https://cdn.example.com",
        mux_token_id="mux-id",
        mux_token_secret="mux-secret",
        use_minio=False,
        capture_payloads=False,
    )


@pytest.fixture
def alice():
    return Speaker(id="s1", name="Alice", role_label="Mayor", party_label="Civic", party_color_hex="#1E90FF")


@pytest.fixture
def bob():
    return Speaker(id="s2", name="Bob", role_label="Councillor")


@pytest.fixture
def sample_utterances(alice, bob):
    """Three utterances far apart on the source timeline."""
    return [
        Utterance(text="We approve the budget.", start_timestamp=100.0, end_timestamp=105.0, speaker=alice),
        Utterance(text="I have a question.", start_timestamp=200.0, end_timestamp=203.0, speaker=alice),
        Utterance(text="Go ahead.", start_timestamp=300.0, end_timestamp=310.0, speaker=bob),
    ]


@pytest.fixture
def normalized_utterances(sample_utterances):
    return normalize_utterance_timestamps(sample_utterances)


@pytest.fixture
def sample_request_payload():
    """A camelCase request as sent by the task scheduler."""
    return {
        "media": {"type": "video", "videoUrl": "https://cdn.example.com/meetings/1234.mp4"},
        "parts": [
            {
                "id": "highlight-1",
                "utterances": [
                    {
                        "utteranceId": "u1",
                        "text": "We approve the budget.",
                        "startTimestamp": 100.0,
                        "endTimestamp": 105.0,
                        "speaker": {"id": "s1", "name": "Alice", "roleLabel": "Mayor"},
                    },
                    {
                        "utteranceId": "u2",
                        "text": "Thank you.",
                        "startTimestamp": 106.0,
                        "endTimestamp": 108.0,
                        "speaker": {"id": "s2", "name": "Bob"},
                    },
                ],
            },
            {
                "id": "highlight-2",
                "utterances": [
                    {
                        "utteranceId": "u3",
                        "text": "Next item.",
                        "startTimestamp": 300.0,
                        "endTimestamp": 304.0,
                    },
                ],
            },
        ],
        "render": {"aspectRatio": "default"},
    }
