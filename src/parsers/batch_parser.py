"""
Concurrent parsing of many documents.

One failing document never fails the batch: it is logged with its path and
comes back as an entry with no tasks. Results follow the input order.
"""

import asyncio
import logging
import time
from typing import Iterable, List

from models.document import Document
from models.task import DocumentEntry
from parsers.document_parser import DocumentParser
from utils.errors import ParseError, error_message, log_error

log = logging.getLogger(__name__)


class BatchDocumentParser:
    def __init__(self, document_parser: DocumentParser) -> None:
        self._document_parser = document_parser

    async def _parse_one(self, document: Document) -> DocumentEntry:
        try:
            tasks = await self._document_parser.parse_document(document)
        except Exception as e:
            if isinstance(e, ParseError):
                error = e
            else:
                error = ParseError(
                    f"Failed to parse file: {document.path}",
                    document.path,
                    context={"original_error": error_message(e)},
                )
            log_error(log, error, file_path=document.path)
            return DocumentEntry(document=document, tasks=[])
        return DocumentEntry(document=document, tasks=tasks)

    async def parse_documents(self, documents: Iterable[Document]) -> List[DocumentEntry]:
        documents = list(documents)
        start = time.perf_counter()
        log.debug("Loading %d files", len(documents))
        entries = await asyncio.gather(*(self._parse_one(d) for d in documents))
        elapsed_ms = (time.perf_counter() - start) * 1000
        log.debug("Loaded %d task entries in %.0fms", len(entries), elapsed_ms)
        return list(entries)
