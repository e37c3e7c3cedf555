"""
Configuración central.

Prioridad: variables de entorno (.env incluido) > config.yaml > defaults.
Los YAML por defecto viajan dentro del paquete (`doc2video/resources/`).
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()
logger = logging.getLogger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"
DEFAULT_CONFIG_PATH = RESOURCES_DIR / "config.yaml"

# Variable de entorno → (campo, tipo)
_ENV_MAP = {
    "OPENROUTER_API_KEY": ("openrouter_api_key", str),
    "OPENAI_API_KEY": ("openai_api_key", str),
    "PEXELS_API_KEY": ("pexels_api_key", str),
    "PIXABAY_API_KEY": ("pixabay_api_key", str),
    "LLM_MODEL_PRIMARY": ("llm_model_primary", str),
    "LLM_MODEL_BACKUP": ("llm_model_backup", str),
    "LLM_BASE_URL": ("llm_base_url", str),
    "EMBEDDING_MODEL": ("embedding_model", str),
    "EMBEDDING_DIMENSIONS": ("embedding_dimensions", int),
    "DOC2VIDEO_ASSETS_DIR": ("assets_dir", str),
    "DOC2VIDEO_LIBRARY_DIR": ("library_dir", str),
    "DOC2VIDEO_OUTPUT_DIR": ("output_dir", str),
    "DOC2VIDEO_MAX_WORKERS": ("max_workers", int),
    "DOC2VIDEO_JOB_RETRIES": ("job_max_retries", int),
    "DOC2VIDEO_SIMILARITY_THRESHOLD": ("similarity_threshold", float),
    "DOC2VIDEO_MAX_SCENES": ("max_generated_scenes", int),
}


class Settings(BaseModel):
    """Configuración del pipeline documento → escenas → assets."""

    # Credenciales (su ausencia desactiva el componente, no es un error)
    openrouter_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    pexels_api_key: Optional[str] = None
    pixabay_api_key: Optional[str] = None

    # LLM
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model_primary: str = "openai/gpt-4o-mini"
    llm_model_backup: Optional[str] = "meta-llama/llama-4-scout"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000
    prompts_path: str = str(RESOURCES_DIR / "prompts.yaml")

    # Embeddings
    embedding_model: Optional[str] = None
    embedding_dimensions: int = Field(5, ge=1)

    # Rutas
    assets_dir: str = "./assets"
    library_dir: str = "./cache/asset_library"
    output_dir: str = "./output"
    visual_patterns_path: str = str(RESOURCES_DIR / "visual_patterns.yaml")

    # Planificación y reutilización
    max_generated_scenes: int = Field(20, ge=1)
    similarity_threshold: float = Field(0.8, ge=0.0, le=1.0)

    # Scheduler
    max_workers: int = Field(3, ge=1)
    job_max_retries: int = Field(0, ge=0)
    job_retry_wait: float = Field(1.0, ge=0.0)

    @property
    def llm_api_key(self) -> Optional[str]:
        return self.openrouter_api_key or self.openai_api_key


def _load_yaml(path: Path) -> dict:
    """Carga la sección `doc2video` (o el documento entero) desde YAML."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug(f"Archivo de configuración no encontrado: {path}")
        return {}
    except yaml.YAMLError as e:
        logger.warning(f"Configuración YAML inválida en {path}: {e}")
        return {}
    if not isinstance(data, dict):
        return {}
    section = data.get("doc2video", data)
    return section if isinstance(section, dict) else {}


def _load_env() -> dict:
    values = {}
    for env_name, (field_name, cast) in _ENV_MAP.items():
        raw = os.getenv(env_name)
        if raw is None or raw.strip() == "":
            continue
        try:
            values[field_name] = cast(raw.strip())
        except ValueError:
            logger.warning(f"Valor inválido para {env_name}: {raw!r} (se ignora)")
    return values


def load_settings(config_path: Optional[str] = None, **overrides) -> Settings:
    """
    Construye la configuración combinando YAML, entorno y overrides explícitos.

    Args:
        config_path: Ruta al YAML (default: resources/config.yaml del paquete)
        **overrides: Valores que ganan sobre todo lo demás
    """
    values = _load_yaml(Path(config_path) if config_path else DEFAULT_CONFIG_PATH)
    values.update(_load_env())
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Singleton de configuración."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
