"""Abstract LLM provider interface. All providers must implement this."""

from abc import ABC, abstractmethod
from typing import AsyncIterator


class BaseLLMProvider(ABC):
    default_model: str

    @abstractmethod
    def stream(self, system: str, prompt: str, model: str | None = None) -> AsyncIterator[str]:
        """Stream a completion for a single user prompt, fragment by fragment.

        Implementations are async generators and raise ``GenerationFailure``
        when the endpoint fails, before or during the stream.
        """
        ...
