"""
Cliente para OpenRouter API.
Compatible con el SDK de OpenAI. Expone la capacidad `generate(prompt) -> str`
que consume el planificador de escenas.
"""

import logging
from typing import Optional

import yaml
from openai import OpenAI

from ..config import Settings, get_settings
from ..errors import APIError, GenerationError
from ..utils.backoff import with_retry, global_rate_limiter

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional video script writer. Generate only valid JSON arrays "
    "of video scenes as requested. No explanations, no markdown, no comments."
)


def load_prompts(path: str) -> dict:
    """Carga los prompts desde YAML."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Archivo de prompts no encontrado: {path}")
        return {}


class OpenRouterClient:
    """Cliente LLM para generar escenas usando OpenRouter (u OpenAI)."""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Inicializa el cliente de OpenRouter.

        Args:
            settings: Configuración (usa la global si no se proporciona)
        """
        self.settings = settings or get_settings()
        self.prompts = load_prompts(self.settings.prompts_path)
        self.rate_limiter = global_rate_limiter

        self.model_primary = self.settings.llm_model_primary
        self.model_backup = self.settings.llm_model_backup

        api_key = self.settings.llm_api_key
        if not api_key:
            logger.warning("OPENROUTER_API_KEY no configurada")
            self.client = None
        else:
            self.client = OpenAI(
                base_url=self.settings.llm_base_url,
                api_key=api_key,
            )

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    @property
    def system_prompt(self) -> str:
        return self.prompts.get("scene_system_prompt") or DEFAULT_SYSTEM_PROMPT

    @with_retry(max_attempts=3, min_wait=2.0, max_wait=60.0)
    def _call_llm(self, messages: list[dict], model: str) -> str:
        """
        Llama al LLM con los mensajes dados.

        Returns:
            Contenido de la respuesta

        Raises:
            APIError: Si el cliente no está configurado o la respuesta viene vacía
        """
        if not self.client:
            raise APIError("Cliente OpenRouter no configurado")

        self.rate_limiter.wait_if_needed("openrouter")

        response = self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
            extra_headers={"X-Title": "doc2video"},
        )

        content = response.choices[0].message.content
        if not content:
            raise APIError(f"Respuesta vacía de {model}")
        return content

    def generate(self, prompt: str) -> str:
        """
        Genera texto a partir de un prompt, probando el modelo backup si el
        primario falla.

        Raises:
            GenerationError: Si ningún modelo pudo responder
        """
        if not self.client:
            raise GenerationError("OpenRouter no está configurado")

        messages = [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": prompt},
        ]

        models = [self.model_primary]
        if self.model_backup and self.model_backup != self.model_primary:
            models.append(self.model_backup)

        last_error: Optional[Exception] = None
        for model in models:
            try:
                logger.info(f"Generando escenas con {model}...")
                return self._call_llm(messages, model)
            except Exception as e:
                logger.error(f"Error llamando a {model}: {e}")
                last_error = e
                if model != models[-1]:
                    logger.warning("Intentando con modelo backup...")

        raise GenerationError(f"Ningún modelo respondió: {last_error}") from last_error

    __call__ = generate
