"""
Filesystem-backed documents.

A FileDocument is a markdown file inside a vault directory. Its id and path
are the vault-relative POSIX path. Content is read and written whole, in a
worker thread, with line endings left exactly as they are on disk.
"""

import asyncio
from pathlib import Path
from typing import Iterator, Set

DOCUMENT_SUFFIX = ".md"


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


class FileDocument:
    def __init__(self, vault_root: Path, file_path: Path) -> None:
        self.vault_root = vault_root
        self.file_path = file_path
        self._relative = file_path.relative_to(vault_root).as_posix()

    @property
    def id(self) -> str:
        return self._relative

    @property
    def path(self) -> str:
        return self._relative

    @property
    def name(self) -> str:
        return self.file_path.stem

    def is_in_folder(self, folder: str) -> bool:
        return self._relative.lower().startswith(folder.lower())

    async def get_content(self) -> str:
        return await asyncio.to_thread(_read_text, self.file_path)

    async def set_content(self, content: str) -> None:
        await asyncio.to_thread(_write_text, self.file_path, content)

    def __repr__(self) -> str:
        return f"FileDocument({self._relative!r})"


def walk_documents(vault_root: Path, exclude_dirs: Set[str]) -> Iterator[Path]:
    """Yield every markdown file under vault_root outside excluded directory names."""
    for path in sorted(vault_root.rglob(f"*{DOCUMENT_SUFFIX}")):
        if not path.is_file():
            continue
        try:
            rel = path.relative_to(vault_root)
        except ValueError:
            continue
        if any(part in exclude_dirs for part in rel.parts[:-1]):
            continue
        yield path


def discover_documents(vault_root: Path, exclude_dirs: Set[str]) -> list:
    return [FileDocument(vault_root, path) for path in walk_documents(vault_root, exclude_dirs)]
