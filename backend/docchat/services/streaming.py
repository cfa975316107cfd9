"""Generation stream adapter.

A model's fragment stream is consumed exactly once. ``StreamTee`` forwards
every fragment downstream as soon as it is received and keeps a copy, so the
complete reply is available for persistence once the stream finishes.
Fragments are only pulled when the downstream consumer asks for the next one,
so delivery never runs ahead of the transport.
"""

import logging
from typing import AsyncIterator

from docchat.core.errors import GenerationFailure

logger = logging.getLogger(__name__)


class StreamTee:
    def __init__(self, source: AsyncIterator[str]):
        self._source = source
        self._parts: list[str] = []
        self._started = False
        self.finished = False

    @property
    def text(self) -> str:
        """Everything forwarded so far."""
        return "".join(self._parts)

    async def forward(self) -> AsyncIterator[str]:
        """Forwarding branch. Raises ``GenerationFailure`` if the source fails."""
        if self._started:
            raise RuntimeError("Generation stream can only be consumed once")
        self._started = True

        try:
            async for fragment in self._source:
                if not fragment:
                    continue
                self._parts.append(fragment)
                yield fragment
            self.finished = True
        except GenerationFailure:
            raise
        except Exception as e:
            raise GenerationFailure(f"Model stream failed: {e}") from e
        finally:
            if not self.finished:
                logger.debug(f"Stopping model stream after {len(self._parts)} fragments")
            await self.aclose()

    async def aclose(self) -> None:
        """Stop consuming the upstream model."""
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

