"""
Almacén clave-valor persistente en disco.
Respaldo de la biblioteca de assets: sobrevive reinicios del proceso.
"""

from pathlib import Path
from typing import Any, Iterator

from diskcache import Cache


class AssetStore:
    """Store plano sobre diskcache; cada registro vive bajo su propia clave."""

    PREFIX = "asset:"

    def __init__(self, store_dir: str = "./cache/asset_library"):
        """
        Inicializa el store.

        Args:
            store_dir: Directorio donde diskcache guarda sus archivos
        """
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self.cache = Cache(str(self.store_dir))

    def _key(self, entry_id: str) -> str:
        return f"{self.PREFIX}{entry_id}"

    def put(self, entry_id: str, record: dict) -> None:
        """Escribe un registro (sin expiración: la biblioteca solo crece)."""
        self.cache.set(self._key(entry_id), record)

    def records(self) -> Iterator[tuple[str, Any]]:
        """Itera todos los registros como (id, record)."""
        for key in list(self.cache.iterkeys()):
            if isinstance(key, str) and key.startswith(self.PREFIX):
                record = self.cache.get(key)
                if record is not None:
                    yield key[len(self.PREFIX):], record

    def __len__(self) -> int:
        return sum(1 for _ in self.records())

    def clear_all(self) -> None:
        """Limpia todo el store."""
        self.cache.clear()

    def close(self) -> None:
        """Cierra la conexión al store."""
        self.cache.close()
