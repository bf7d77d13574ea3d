"""
Tests for parsers/batch_parser.py.

Covers:
- Results follow input order regardless of read completion order
- A failing document yields an empty entry and does not affect others
- Start/finish log markers
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from fakes import InMemoryDocument
from parsers.batch_parser import BatchDocumentParser
from parsers.document_parser import DocumentParser


@pytest.fixture
def batch():
    return BatchDocumentParser(DocumentParser())


class TestParseDocuments:
    @pytest.mark.asyncio
    async def test_order_follows_input(self, batch):
        slow = InMemoryDocument("slow.md", "- [ ] slow", read_delay=0.05)
        fast = InMemoryDocument("fast.md", "- [ ] fast")
        entries = await batch.parse_documents([slow, fast])
        assert [e.document.id for e in entries] == ["slow.md", "fast.md"]
        assert [e.tasks[0].text for e in entries] == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_failure_isolated(self, batch, caplog):
        good = InMemoryDocument("good.md", "- [ ] fine")
        bad = InMemoryDocument("notes/bad.md")
        bad.fail_read = OSError("permission denied")
        with caplog.at_level(logging.WARNING, logger="parsers.batch_parser"):
            entries = await batch.parse_documents([bad, good])
        assert len(entries) == 2
        assert entries[0].document is bad
        assert entries[0].tasks == []
        assert [t.text for t in entries[1].tasks] == ["fine"]
        assert any("notes/bad.md" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_every_document_failing(self, batch):
        docs = [InMemoryDocument(f"{i}.md") for i in range(3)]
        for d in docs:
            d.fail_read = RuntimeError("boom")
        entries = await batch.parse_documents(docs)
        assert [e.tasks for e in entries] == [[], [], []]

    @pytest.mark.asyncio
    async def test_empty_input(self, batch):
        assert await batch.parse_documents([]) == []

    @pytest.mark.asyncio
    async def test_log_markers(self, batch, caplog):
        docs = [InMemoryDocument("a.md", "- [ ] a"), InMemoryDocument("b.md", "")]
        with caplog.at_level(logging.DEBUG, logger="parsers.batch_parser"):
            await batch.parse_documents(docs)
        messages = [r.getMessage() for r in caplog.records]
        assert "Loading 2 files" in messages
        assert any(m.startswith("Loaded 2 task entries in ") for m in messages)

    @pytest.mark.asyncio
    async def test_each_document_read_once(self, batch):
        docs = [InMemoryDocument(f"{i}.md", "- [ ] t") for i in range(4)]
        await batch.parse_documents(docs)
        assert [d.reads for d in docs] == [1, 1, 1, 1]
