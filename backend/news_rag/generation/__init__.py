"""Answer generation components."""

from .generator import Answer, AnswerStream, Generator
from .providers import GeminiProvider, GenerationProvider

__all__ = ["Answer", "AnswerStream", "Generator", "GeminiProvider", "GenerationProvider"]
