# SPDX-License-Identifier: MIT
"""Tests for pipeline settings."""

from heritage_pipeline.config import PipelineSettings


class TestPipelineSettings:
    """Test directory settings."""

    def test_report_dir_is_created(self, tmp_path):
        settings = PipelineSettings(report_dir=str(tmp_path / "reports"))

        assert settings.report_dir == tmp_path / "reports"
        assert settings.report_dir.is_dir()

    def test_only_used_directories_are_created(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DATA_RAW_DIR", str(tmp_path / "raw"))

        settings = PipelineSettings(report_dir=str(tmp_path / "reports"))

        assert not hasattr(settings, "data_raw_dir")
        assert not (tmp_path / "raw").exists()
