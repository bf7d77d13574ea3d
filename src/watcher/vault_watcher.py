"""
Polling vault watcher.

Filesystem events are not reliable across container volume mounts, so
changes are found by comparing markdown file mtimes between poll cycles.

The watcher runs an asyncio task that:
1. Walks the vault every poll interval
2. Compares markdown file mtimes against the previous cycle
3. Reports created, modified and deleted documents to the task index
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Set

from documents.file_document import FileDocument, walk_documents

log = logging.getLogger(__name__)

# Default polling interval in seconds (configurable via POLL_INTERVAL env var)
_DEFAULT_POLL_INTERVAL = 5.0


class VaultWatcher:
    """
    Polling-based vault watcher.

    Usage:
        watcher = VaultWatcher(index, vault_root, exclude_dirs)
        watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        index,
        vault_root: Path,
        exclude_dirs: Set[str],
        poll_interval: Optional[float] = None,
    ) -> None:
        self._index = index
        self._vault_root = vault_root
        self._exclude_dirs = exclude_dirs
        self._poll_interval = poll_interval or float(
            os.environ.get("POLL_INTERVAL", _DEFAULT_POLL_INTERVAL)
        )
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        # Known files and their mtimes from the last poll cycle
        self._known_files: Dict[Path, float] = {}

    def start(self) -> None:
        """Start polling on the running event loop."""
        log.info("Starting vault watcher (polling every %.1fs)", self._poll_interval)
        self._known_files = self.snapshot()
        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop(), name="vault-watcher")

    async def stop(self) -> None:
        log.info("Stopping vault watcher")
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            try:
                await self.check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    async def check_for_changes(self) -> None:
        """Single poll cycle: compare current state vs known state."""
        current = await asyncio.to_thread(self.snapshot)
        previous = self._known_files
        self._known_files = current

        for path, mtime in current.items():
            old_mtime = previous.get(path)
            document = FileDocument(self._vault_root, path)
            if old_mtime is None:
                log.debug("New document detected: %s", path)
                await self._index.document_created(document)
            elif mtime > old_mtime:
                log.debug("Modified document: %s", path)
                await self._index.document_updated(document)

        for path in previous:
            if path not in current:
                log.debug("Deleted document: %s", path)
                document = FileDocument(self._vault_root, path)
                if self._index.get_entry(document.id) is None:
                    continue
                await self._index.document_deleted(document)

    def snapshot(self) -> Dict[Path, float]:
        """Walk the vault and return {path: mtime} for all documents."""
        snapshot: Dict[Path, float] = {}
        try:
            for path in walk_documents(self._vault_root, self._exclude_dirs):
                try:
                    snapshot[path] = path.stat().st_mtime
                except OSError:
                    pass
        except OSError:
            log.exception("Error walking vault for documents")
        return snapshot
