"""
Taxonomía de errores del sistema.

Solo InputError se propaga al llamador; el resto se recupera localmente
(fallback heurístico, coerción de campos, avance de la cadena de fuentes o
estado `failed` del job).
"""


class Doc2VideoError(Exception):
    """Error base del paquete."""
    pass


class InputError(Doc2VideoError):
    """Texto de documento vacío o inválido."""
    pass


class EmptyInputError(InputError):
    """El texto recortado no tiene contenido."""
    pass


class ExtractionFailedError(InputError):
    """El extractor no pudo obtener texto del documento."""
    pass


class GenerationError(Doc2VideoError):
    """La llamada al LLM falló o devolvió algo imposible de parsear."""
    pass


class NoScenesProducedError(GenerationError):
    """La respuesta del LLM no contiene ninguna escena válida."""
    pass


class ValidationError(Doc2VideoError):
    """Un campo generado viola su contrato (se corrige con un valor seguro)."""
    pass


class APIError(Doc2VideoError):
    """Error genérico de API."""
    pass


class RateLimitError(APIError):
    """Error cuando se excede el rate limit."""
    pass


class AuthenticationError(APIError):
    """Error de autenticación con la API."""
    pass


class SourceUnavailableError(APIError):
    """Fuente de video externa caída, inaccesible o sin resultados útiles."""
    pass


class SchedulerJobError(Doc2VideoError):
    """La operación de un job lanzó una excepción."""

    def __init__(self, job_id: str, message: str):
        super().__init__(f"Job {job_id} falló: {message}")
        self.job_id = job_id
        self.message = message
