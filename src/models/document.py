"""
Document access contract.

Documents are owned by the host. The index only ever reads or rewrites a
document's whole content through this interface.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Document(Protocol):
    @property
    def id(self) -> str:
        """Stable identity used for index lookups."""
        ...

    @property
    def path(self) -> str: ...

    @property
    def name(self) -> str: ...

    def is_in_folder(self, folder: str) -> bool:
        """Case-insensitive path prefix test."""
        ...

    async def get_content(self) -> str: ...

    async def set_content(self, content: str) -> None: ...
