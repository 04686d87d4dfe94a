"""Sequential image import backend."""
