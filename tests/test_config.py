"""Unit tests for Config and related Pydantic models (starterkit.config).

Tests cover:
- LayoutConfig, ArchiveConfig, CatalogConfig defaults and validation
- Config defaults, derived paths (properties), save/load, from_env
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from starterkit.config import (
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_EXCLUDED_FILES,
    ArchiveConfig,
    CatalogConfig,
    Config,
    LayoutConfig,
)


# ---------------------------------------------------------------------------
# Nested models
# ---------------------------------------------------------------------------


class TestLayoutConfig:
    @pytest.mark.unit
    def test_defaults(self):
        layout = LayoutConfig()
        assert layout.backend_manifest == "backend/package.json"
        assert layout.web_manifest == "web/package.json"
        assert layout.schema_file == "backend/prisma/schema.prisma"
        assert layout.env_example == "backend/.env.example"
        assert layout.descriptor == "starter-config.json"


class TestArchiveConfig:
    @pytest.mark.unit
    def test_defaults(self):
        archive = ArchiveConfig()
        assert archive.compression_level == 9
        assert archive.chunk_size == 64 * 1024
        assert archive.queue_depth == 8

    @pytest.mark.unit
    @pytest.mark.parametrize("level", [-1, 10])
    def test_compression_level_bounds(self, level):
        with pytest.raises(ValidationError):
            ArchiveConfig(compression_level=level)

    @pytest.mark.unit
    def test_chunk_size_minimum(self):
        with pytest.raises(ValidationError):
            ArchiveConfig(chunk_size=512)
        assert ArchiveConfig(chunk_size=1024).chunk_size == 1024

    @pytest.mark.unit
    def test_queue_depth_minimum(self):
        with pytest.raises(ValidationError):
            ArchiveConfig(queue_depth=0)


class TestCatalogConfig:
    @pytest.mark.unit
    def test_defaults(self):
        catalog = CatalogConfig()
        assert catalog.url == ""
        assert catalog.timeout == 30

    @pytest.mark.unit
    def test_timeout_minimum(self):
        with pytest.raises(ValidationError):
            CatalogConfig(timeout=0)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class TestConfigDefaults:
    @pytest.mark.unit
    def test_default_values(self):
        config = Config()
        assert config.template_dir == Path("./core")
        assert config.modules_dir == Path(".")
        assert config.brand == "Xitolaunch"
        assert config.fallback_project_token == "starter"
        assert config.strict_artifacts is True

    @pytest.mark.unit
    def test_exclusions_are_copies(self):
        config = Config()
        config.excluded_dirs.append("tmp")
        assert "tmp" not in DEFAULT_EXCLUDED_DIRS
        assert Config().excluded_files == DEFAULT_EXCLUDED_FILES


class TestConfigPaths:
    @pytest.mark.unit
    def test_backend_manifest_path(self, tmp_path: Path):
        config = Config(template_dir=tmp_path)
        assert config.backend_manifest_path == tmp_path / "backend" / "package.json"

    @pytest.mark.unit
    def test_web_manifest_path(self, tmp_path: Path):
        config = Config(template_dir=tmp_path)
        assert config.web_manifest_path == tmp_path / "web" / "package.json"

    @pytest.mark.unit
    def test_schema_path(self, tmp_path: Path):
        config = Config(template_dir=tmp_path)
        assert config.schema_path == tmp_path / "backend" / "prisma" / "schema.prisma"

    @pytest.mark.unit
    def test_custom_layout(self, tmp_path: Path):
        config = Config(template_dir=tmp_path, layout=LayoutConfig(env_example="api/.env.sample"))
        assert config.env_example_path == tmp_path / "api" / ".env.sample"


class TestConfigSaveLoad:
    @pytest.mark.unit
    def test_load_roundtrip(self, tmp_path: Path):
        original = Config(
            template_dir=tmp_path / "core",
            brand="Acme",
            strict_artifacts=False,
            archive=ArchiveConfig(compression_level=6),
        )
        path = original.save(tmp_path / "nested" / "config.json")
        assert path.exists()

        loaded = Config.load(path)
        assert loaded.template_dir == tmp_path / "core"
        assert loaded.brand == "Acme"
        assert loaded.strict_artifacts is False
        assert loaded.archive.compression_level == 6


class TestConfigFromEnv:
    @pytest.mark.unit
    def test_defaults_when_no_env(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config.from_env()
        assert config.template_dir == Path("./core")
        assert config.strict_artifacts is True
        assert config.catalog.url == ""

    @pytest.mark.unit
    def test_paths_and_brand_from_env(self):
        env = {
            "STARTERKIT_TEMPLATE_DIR": "/srv/studio/core",
            "STARTERKIT_MODULES_DIR": "/srv/studio",
            "STARTERKIT_BRAND": "Acme",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.template_dir == Path("/srv/studio/core")
        assert config.modules_dir == Path("/srv/studio")
        assert config.brand == "Acme"

    @pytest.mark.unit
    @pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("false", False)])
    def test_strict_artifacts_from_env(self, value, expected):
        with patch.dict(os.environ, {"STARTERKIT_STRICT_ARTIFACTS": value}, clear=True):
            config = Config.from_env()
        assert config.strict_artifacts is expected

    @pytest.mark.unit
    def test_archive_and_catalog_from_env(self):
        env = {
            "STARTERKIT_COMPRESSION_LEVEL": "3",
            "STARTERKIT_CHUNK_SIZE": "8192",
            "STARTERKIT_CATALOG_URL": "http://catalog:4000/api",
            "STARTERKIT_CATALOG_TIMEOUT": "5",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.archive.compression_level == 3
        assert config.archive.chunk_size == 8192
        assert config.catalog.url == "http://catalog:4000/api"
        assert config.catalog.timeout == 5

    @pytest.mark.unit
    def test_invalid_env_value_rejected(self):
        with patch.dict(os.environ, {"STARTERKIT_COMPRESSION_LEVEL": "12"}, clear=True):
            with pytest.raises(ValidationError):
                Config.from_env()
