"""
Tests for the HTTP API.
"""

import base64

import numpy as np
import pytest
from fastapi.testclient import TestClient

from track_analyzer import __version__
from track_analyzer.analyzer import AudioAnalyzer, set_analyzer
from track_analyzer.api import app

from conftest import make_wav_bytes


@pytest.fixture
def client(config):
    """Test client backed by an analyzer with no primary engine."""
    set_analyzer(AudioAnalyzer(config))
    yield TestClient(app)
    set_analyzer(None)


@pytest.fixture
def silence_wav():
    """One second of silence."""
    return make_wav_bytes(np.zeros(44100, dtype=np.float32), 44100)


class TestApi:
    """Tests for API endpoints."""

    def test_root(self, client):
        """Test the root endpoint."""
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {
            "name": "Track Analyzer",
            "version": __version__,
            "status": "running",
        }

    def test_health(self, client):
        """Test health reports the engine state."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["engine"] == "uninitialized"

    def test_analyze_body(self, client, silence_wav):
        """Test posting raw audio returns a camelCase result."""
        response = client.post(
            "/analyze",
            content=silence_wav,
            headers={"Content-Type": "audio/wav"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "bpm": 120,
            "musicalKey": "C Major",
            "energy": 0.0,
            "confidence": {"bpm": 0.3, "key": 0.5},
        }

    def test_health_after_analysis(self, client, silence_wav):
        """Test the engine state is reported after first use."""
        client.post("/analyze", content=silence_wav)

        assert client.get("/health").json()["engine"] == "unavailable"

    def test_analyze_empty_body(self, client):
        """Test an empty body is a bad request."""
        response = client.post("/analyze", content=b"")

        assert response.status_code == 400

    def test_analyze_garbage(self, client):
        """Test undecodable audio is unprocessable."""
        response = client.post("/analyze", content=b"not audio at all" * 8)

        assert response.status_code == 422

    def test_analyze_reference_data_url(self, client, silence_wav):
        """Test analysis of a data URL reference."""
        reference = "data:audio/wav;base64," + base64.b64encode(silence_wav).decode()

        response = client.post("/analyze/reference", json={"reference": reference})

        assert response.status_code == 200
        assert response.json()["musicalKey"] == "C Major"

    def test_analyze_reference_refuses_local_files(self, client, silence_wav, tmp_path):
        """Test server-side paths and file URLs are rejected alike."""
        path = tmp_path / "silence.wav"
        path.write_bytes(silence_wav)
        references = [str(path), path.as_uri(), str(tmp_path / "missing.wav")]

        responses = [
            client.post("/analyze/reference", json={"reference": reference})
            for reference in references
        ]

        assert [r.status_code for r in responses] == [400, 400, 400]
        assert len({r.json()["detail"] for r in responses}) == 1

    def test_analyze_reference_undecodable(self, client):
        """Test a reference to non-audio bytes is unprocessable."""
        reference = "data:text/plain;base64," + base64.b64encode(b"plain text" * 10).decode()

        response = client.post("/analyze/reference", json={"reference": reference})

        assert response.status_code == 422
