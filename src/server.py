"""
Vault tasks server entry point.

Startup sequence:
1. Read VAULT_ROOT, EXCLUDE_DIRS and task settings from environment
2. Build the task index, line mutator, follow-up composer and undo history
3. On app startup: load every document into the index, start VaultWatcher
4. Register MCP tools and mount them under /mcp
5. Serve REST API + MCP (SSE) with uvicorn
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from mcp.server.fastmcp import FastMCP

from api.app import create_app
from api.task_handlers import TaskServices
from api.tools import register_tools
from documents.file_document import discover_documents
from models.settings import TaskPlannerSettings, parse_list
from utils.errors import SettingsError
from watcher.vault_watcher import VaultWatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)


def main() -> None:
    vault_root_env = os.environ.get("VAULT_ROOT", "")
    if not vault_root_env:
        log.error("VAULT_ROOT environment variable is not set")
        sys.exit(1)

    vault_root = Path(vault_root_env)
    if not vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", vault_root)
        sys.exit(1)

    exclude_dirs = set(parse_list(os.environ.get("EXCLUDE_DIRS", ".git,.obsidian,node_modules,.trash")))
    try:
        settings = TaskPlannerSettings.from_env()
    except SettingsError as e:
        log.error("Invalid settings: %s", e)
        sys.exit(1)

    log.info("Vault root: %s", vault_root)
    log.info("Excluded dirs: %s", exclude_dirs)
    log.info(
        "Attribute syntax: %s", "structured" if settings.use_structured_syntax else "classic"
    )

    services = TaskServices.from_settings(settings)
    watcher = VaultWatcher(services.index, vault_root, exclude_dirs)

    @asynccontextmanager
    async def lifespan(app):
        log.info("Scanning vault...")
        await services.index.load_all(discover_documents(vault_root, exclude_dirs))
        watcher.start()
        try:
            yield
        finally:
            await watcher.stop()

    app = create_app(services, lifespan=lifespan)

    mcp = FastMCP("vault-tasks")
    register_tools(mcp, services)
    app.mount("/mcp", mcp.sse_app())

    api_port = int(os.environ.get("API_PORT", "9400"))
    log.info("Starting vault-tasks server on port %d", api_port)
    uvicorn.run(app, host="0.0.0.0", port=api_port, log_level="warning")


if __name__ == "__main__":
    main()
