# tests/test_config.py
"""
Tests for ReconcileConfig.
"""

import pytest

from incodiag.config import DEFAULT_MAX_SNAP_DISTANCE, ReconcileConfig
from incodiag.errors import ConfigError


class TestReconcileConfig:

    def test_defaults_valid(self):
        config = ReconcileConfig()
        assert config.validate() == []
        assert config.max_snap_distance == DEFAULT_MAX_SNAP_DISTANCE == 30
        assert config.marker_token == "//line"
        assert config.cache_dir == ".inco_cache"

    def test_validate_warnings(self):
        config = ReconcileConfig(max_snap_distance=-1, marker_token=" ",
                                 directive_tokens=(), source_suffixes=())
        assert len(config.validate()) == 4

    def test_with_overrides_skips_none(self):
        config = ReconcileConfig()
        assert config.with_overrides(max_snap_distance=None) is config
        assert config.with_overrides(max_snap_distance=5).max_snap_distance == 5

    def test_from_env(self):
        config = ReconcileConfig.from_env({
            "INCODIAG_MAX_SNAP_DISTANCE": " 12 ",
            "INCODIAG_MARKER_TOKEN": "// ORIGLINE",
            "INCODIAG_CACHE_DIR": "_gen",
        })
        assert (config.max_snap_distance, config.marker_token, config.cache_dir) == (
            12, "// ORIGLINE", "_gen")

    def test_from_env_empty(self):
        assert ReconcileConfig.from_env({}) == ReconcileConfig()

    def test_from_env_bad_distance(self):
        with pytest.raises(ConfigError, match="not an integer"):
            ReconcileConfig.from_env({"INCODIAG_MAX_SNAP_DISTANCE": "far"})
