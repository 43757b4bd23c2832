"""Tests for sleepglow.config."""

import pytest

from sleepglow.config import AnalysisConfig, GeometryConfig, data_home


class TestDataHome:
    def test_default_under_user_home(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SLEEPGLOW_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert data_home() == tmp_path / ".sleepglow"

    def test_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SLEEPGLOW_HOME", str(tmp_path / "custom"))
        assert data_home() == tmp_path / "custom"

    def test_not_created(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SLEEPGLOW_HOME", str(tmp_path / "custom"))
        data_home()
        assert not (tmp_path / "custom").exists()


class TestConfigDefaults:
    def test_geometry_defaults(self):
        config = AnalysisConfig()
        assert config.geometry == GeometryConfig()
        assert config.geometry.min_face_height == 0.2

    def test_frozen(self):
        with pytest.raises(AttributeError):
            AnalysisConfig().detector_timeout_sec = 1.0
