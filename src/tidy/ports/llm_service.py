"""LLM service interface."""

from typing import Protocol


class LLMService(Protocol):
    """Interface for the model that proposes organization plans."""

    def generate(self, prompt: str) -> str:
        """Generate text from a prompt. Returns complete response."""
        ...
