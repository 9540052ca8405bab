"""Tests for the logging observer and app output forwarding."""

from __future__ import annotations

import logging

import pytest

from fakes import RecordingObserver
from nw_builder.builder import pump_lines
from nw_builder.observer import LoggingObserver


class ChunkedStream:
    """Stand-in for a subprocess pipe that returns fixed chunks."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks: list[bytes] = list(chunks)

    async def read(self, n: int = -1) -> bytes:
        if len(self._chunks) == 0:
            return b""
        return self._chunks.pop(0)


def test_events_are_logged(caplog: pytest.LogCaptureFixture):
    observer = LoggingObserver(logging.getLogger("nw_builder.test"))

    with caplog.at_level(logging.INFO, logger="nw_builder.test"):
        observer.log("Using v0.12.0")
        observer.stdout(b"line one\nline two\n")
        observer.stderr(b"bad \xff byte\n")

    assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
        (logging.INFO, "nw-builder: Using v0.12.0"),
        (logging.INFO, "line one"),
        (logging.INFO, "line two"),
        (logging.WARNING, "bad � byte"),
    ]


@pytest.mark.asyncio
async def test_lines_split_across_reads_are_rejoined():
    observer = RecordingObserver()
    stream = ChunkedStream([b"hel", b"lo\nca", "fé".encode("utf-8")[:-1], b"\xa9\nno newline"])

    await pump_lines(stream, observer.stdout)

    assert observer.out == [b"hello\n", "café\n".encode("utf-8"), b"no newline"]


@pytest.mark.asyncio
async def test_split_multibyte_character_is_logged_intact(caplog: pytest.LogCaptureFixture):
    observer = LoggingObserver(logging.getLogger("nw_builder.test"))
    stream = ChunkedStream([b"caf\xc3", b"\xa9 ok\n"])

    with caplog.at_level(logging.INFO, logger="nw_builder.test"):
        await pump_lines(stream, observer.stdout)

    assert [r.getMessage() for r in caplog.records] == ["café ok"]


@pytest.mark.asyncio
async def test_missing_stream_is_ignored():
    observer = RecordingObserver()

    await pump_lines(None, observer.stdout)

    assert observer.out == []
