"""
Similitud coseno y ranking top-K sobre embeddings.
Lo usan tanto el refinador de queries visuales como la biblioteca de assets.
"""

from typing import Callable, Iterable, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Producto punto dividido por el producto de las magnitudes.

    Returns:
        Valor en [-1, 1]; 0.0 si alguno de los vectores es nulo.

    Raises:
        ValueError: Si los vectores tienen dimensiones distintas.
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise ValueError(f"Dimensiones incompatibles: {va.shape} vs {vb.shape}")

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    score = float(np.dot(va, vb) / norm)
    # Errores de redondeo pueden sacar el valor del rango
    return max(-1.0, min(1.0, score))


def top_k(
    query: Sequence[float],
    items: Iterable[T],
    key: Callable[[T], Sequence[float]],
    k: int,
) -> list[tuple[T, float]]:
    """
    Ordena `items` por similitud con `query` y devuelve los `k` mejores.

    El orden es estable: ante empate se respeta el orden de entrada.
    """
    scored = [(item, cosine_similarity(query, key(item))) for item in items]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:max(0, k)]
