"""
Parser de respuestas del LLM
Convierte el texto devuelto por el modelo en escenas de dominio validadas.
"""
import json
import logging
import re
from typing import Any, Optional, Union

from ..errors import GenerationError
from ..llm.validator import SceneParseResult, SceneValidator

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_ARRAY = re.compile(r"\[[\s\S]*\]")


class SceneResponseParser:
    """Extrae el JSON de escenas y delega la normalización en SceneValidator."""

    def __init__(self, validator: Optional[SceneValidator] = None):
        self.validator = validator or SceneValidator()

    def _extract_items(self, raw_input: str) -> Any:
        """
        Encuentra la lista de escenas dentro de la respuesta.

        Acepta un array, `{"scenes": [...]}` o un único objeto escena.

        Raises:
            GenerationError: Si no hay JSON utilizable
        """
        # Limpiar bloques de código markdown si existen
        clean_input = _FENCE.sub("", raw_input).strip()

        try:
            data = json.loads(clean_input)
        except json.JSONDecodeError:
            logger.warning("JSON inválido, buscando un array dentro de la respuesta")
            match = _ARRAY.search(clean_input)
            if not match:
                raise GenerationError("El LLM no devolvió un JSON válido")
            try:
                data = json.loads(match.group(0))
            except json.JSONDecodeError as e:
                raise GenerationError(f"El LLM no devolvió un JSON válido: {e}") from e

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            scenes = data.get("scenes")
            return scenes if scenes is not None else [data]
        raise GenerationError(f"Tipo JSON inesperado: {type(data).__name__}")

    def parse(self, raw_input: Union[str, list, dict]) -> SceneParseResult:
        """
        Convierte la salida del LLM (string o JSON ya decodificado) en escenas.
        Nunca lanza: los fallos quedan en `SceneParseResult.error`.
        """
        try:
            if isinstance(raw_input, str):
                items = self._extract_items(raw_input)
            elif isinstance(raw_input, dict):
                items = raw_input.get("scenes", [raw_input])
            else:
                items = raw_input
        except GenerationError as e:
            logger.error(f"Error parseando escenas: {e}")
            return SceneParseResult.failed(e)

        return self.validator.validate(items)
