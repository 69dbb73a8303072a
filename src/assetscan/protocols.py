from __future__ import annotations

from typing import Any, Protocol


class PersistenceProtocol(Protocol):
    """Save/load of JSON-serializable values keyed by name.

    Implementations never raise for storage faults: ``save``/``remove``
    report them as ``False`` and ``load`` falls back to ``default``.
    """

    async def save(self, name: str, value: Any) -> bool: ...

    async def load(self, name: str, default: Any = None) -> Any: ...

    async def remove(self, name: str) -> bool: ...

    async def remove_many(self, names: tuple[str, ...]) -> bool: ...
