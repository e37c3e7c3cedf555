"""Extracción de texto de documentos."""

from .reader import DocumentReader, clean_text

__all__ = ["DocumentReader", "clean_text"]
