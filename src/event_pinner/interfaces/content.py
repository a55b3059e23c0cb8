"""ContentStore protocol - pin primitives of the content-addressable store."""

from __future__ import annotations

from typing import Protocol


class ContentStore(Protocol):
    """Pins and unpins content by multihash.

    ``pin`` and ``unpin`` are idempotent: pinning a pinned hash and unpinning
    an unknown one both succeed. Failures raise ``ContentStoreError``.
    """

    async def add(self, data: bytes) -> str:
        """Store raw bytes and return their multihash."""
        ...

    async def pin(self, multihash: str) -> None:
        ...

    async def unpin(self, multihash: str) -> None:
        ...

    async def is_pinned(self, multihash: str) -> bool:
        ...
