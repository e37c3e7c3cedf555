"""doc2video: documentos a escenas de video con footage de stock."""

__version__ = "0.1.0"
