"""Protocol definitions for dependency injection."""

from typing import Protocol, Optional, runtime_checkable


@runtime_checkable
class TextModel(Protocol):
    """Protocol for a hosted text-generation service.

    Implementations return the raw response text and raise
    GenerationFailed for any transport, provider, or empty-payload error.
    """

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """Send a prompt and return the raw response text."""
        ...

    async def aclose(self) -> None:
        """Release any underlying connections."""
        ...
