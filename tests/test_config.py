"""Tests de la carga de configuración."""

from pathlib import Path

import pytest

from doc2video.config import DEFAULT_CONFIG_PATH, RESOURCES_DIR, Settings, get_settings, load_settings, reset_settings
from doc2video.director.patterns import VisualPatternLibrary
from doc2video.llm.embeddings import (
    HashEmbeddingProvider,
    OpenAIEmbeddingProvider,
    build_embedding_provider,
)


@pytest.fixture()
def missing_yaml(tmp_path):
    return str(tmp_path / "none.yaml")


@pytest.fixture()
def yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "doc2video:\n"
        "  max_workers: 5\n"
        "  similarity_threshold: 0.9\n"
        "  output_dir: ./yaml-output\n",
        encoding="utf-8",
    )
    return str(path)


class TestLoadSettings:

    def test_defaults(self, missing_yaml):
        settings = load_settings(missing_yaml)
        assert settings == Settings()
        assert settings.max_workers == 3
        assert settings.max_generated_scenes == 20
        assert settings.embedding_dimensions == 5
        assert settings.pexels_api_key is None

    def test_yaml_values(self, yaml_file):
        settings = load_settings(yaml_file)
        assert settings.max_workers == 5
        assert settings.similarity_threshold == 0.9
        assert settings.output_dir == "./yaml-output"

    def test_invalid_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("doc2video: [unclosed", encoding="utf-8")
        assert load_settings(str(path)).max_workers == 3

    def test_env_overrides_yaml(self, yaml_file, monkeypatch):
        monkeypatch.setenv("DOC2VIDEO_MAX_WORKERS", "7")
        monkeypatch.setenv("PEXELS_API_KEY", "pexels-key")
        settings = load_settings(yaml_file)
        assert settings.max_workers == 7
        assert settings.pexels_api_key == "pexels-key"

    def test_invalid_env_value_is_ignored(self, yaml_file, monkeypatch):
        monkeypatch.setenv("DOC2VIDEO_MAX_WORKERS", "many")
        assert load_settings(yaml_file).max_workers == 5

    def test_overrides_win_and_none_is_ignored(self, yaml_file, monkeypatch):
        monkeypatch.setenv("DOC2VIDEO_MAX_WORKERS", "7")
        settings = load_settings(yaml_file, max_workers=2, output_dir=None)
        assert settings.max_workers == 2
        assert settings.output_dir == "./yaml-output"

    def test_llm_api_key_fallback(self, missing_yaml, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "openai-key")
        assert load_settings(missing_yaml).llm_api_key == "openai-key"

        monkeypatch.setenv("OPENROUTER_API_KEY", "router-key")
        assert load_settings(missing_yaml).llm_api_key == "router-key"


class TestSingleton:

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reset(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("DOC2VIDEO_MAX_SCENES", "12")
        assert get_settings().max_generated_scenes == first.max_generated_scenes

        reset_settings()
        assert get_settings().max_generated_scenes == 12


class TestEmbeddingProviderSelection:

    def test_hash_by_default(self, missing_yaml):
        provider = build_embedding_provider(load_settings(missing_yaml))
        assert isinstance(provider, HashEmbeddingProvider)
        assert provider.dimensions == 5

    def test_openai_when_configured(self, missing_yaml):
        settings = load_settings(
            missing_yaml,
            embedding_model="text-embedding-3-small",
            openai_api_key="sk-test",
            embedding_dimensions=64,
        )
        provider = build_embedding_provider(settings)
        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.dimensions == 64

    def test_model_without_key_stays_on_hash(self, missing_yaml):
        settings = load_settings(missing_yaml, embedding_model="text-embedding-3-small")
        assert isinstance(build_embedding_provider(settings), HashEmbeddingProvider)


class TestPackagedResources:
    """Los YAML por defecto se leen desde el propio paquete."""

    def test_default_paths_live_in_package(self):
        settings = Settings()
        for path in (DEFAULT_CONFIG_PATH, settings.prompts_path, settings.visual_patterns_path):
            assert Path(path).parent == RESOURCES_DIR
            assert Path(path).is_file()

    def test_default_patterns_are_not_the_fallback(self):
        patterns = VisualPatternLibrary.from_yaml(Settings().visual_patterns_path)
        assert len(patterns) > 1
