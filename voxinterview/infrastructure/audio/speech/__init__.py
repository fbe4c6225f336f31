"""Text-to-speech modules."""

from .tts import synthesize_linear16

__all__ = ["synthesize_linear16"]
