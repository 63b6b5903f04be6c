from __future__ import annotations

import logging
from enum import Enum, auto
from typing import BinaryIO, Iterator, List, Optional

from .constants import BLOCK_SIZE, DEFAULT_STRICT
from .entry import TarEntry, blocks_for
from .errors import TarError, TruncatedArchive
from .header import decode_header, is_zero_block
from .streams import Source, open_source, read_block


logger = logging.getLogger(__name__)


class ReadState(Enum):
    EXPECT_HEADER = auto()
    EXPECT_SECOND_ZERO = auto()
    READ_DATA = auto()
    DONE = auto()


class ArchiveReader:
    """Block-by-block reader producing :class:`TarEntry` objects in archive order.

    ``source`` may be a path, raw bytes, or a readable binary file object. Paths
    are opened by the reader and closed again on every exit path; file objects
    handed in by the caller are left open.
    """

    def __init__(self, source: Source, strict: bool = DEFAULT_STRICT):
        self.source = source
        self.strict = strict
        self.f: Optional[BinaryIO] = None
        self._owned = False
        self.offset = 0
        self.state = ReadState.EXPECT_HEADER

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self) -> Iterator[TarEntry]:
        return self.iter_entries()

    def open(self):
        if self.f is not None:
            return
        self.f, self._owned = open_source(self.source)

    def close(self):
        if self.f is not None and self._owned:
            self.f.close()
        self.f = None
        self._owned = False

    def list(self) -> List[TarEntry]:
        return list(self.iter_entries())

    def iter_entries(self) -> Iterator[TarEntry]:
        if self.f is None:
            raise RuntimeError("Archive not open")
        if self.state is ReadState.DONE:
            raise RuntimeError("Archive already read")
        while self.state is not ReadState.DONE:
            block_offset = self.offset
            block = self._next_block()

            if self.state is ReadState.EXPECT_HEADER:
                if not block:
                    self._end_without_marker("header")
                elif is_zero_block(block):
                    self.state = ReadState.EXPECT_SECOND_ZERO
                else:
                    yield self._read_entry(block, block_offset)

            elif self.state is ReadState.EXPECT_SECOND_ZERO:
                if not block:
                    self._end_without_marker("second end-of-archive block")
                elif is_zero_block(block):
                    logger.debug("end-of-archive marker at offset %d", block_offset - BLOCK_SIZE)
                    self.state = ReadState.DONE
                else:
                    logger.warning("lone zero block before offset %d", block_offset)
                    self.state = ReadState.EXPECT_HEADER
                    yield self._read_entry(block, block_offset)

    # internals
    def _next_block(self) -> bytes:
        assert self.f is not None
        block = read_block(self.f, self.offset)
        self.offset += len(block)
        return block

    def _end_without_marker(self, expected: str) -> None:
        if self.strict:
            raise TruncatedArchive(f"stream ends at offset {self.offset} while expecting {expected}")
        logger.warning("archive ends at offset %d without end-of-archive marker", self.offset)
        self.state = ReadState.DONE

    def _read_entry(self, block: bytes, block_offset: int) -> TarEntry:
        try:
            header = decode_header(block, strict=self.strict)
        except TarError as exc:
            exc.entry_name = f"header at offset {block_offset}"
            raise
        logger.debug("header %r at offset %d, %d bytes", header.name, block_offset, header.size)

        self.state = ReadState.READ_DATA
        blocks: List[bytes] = []
        for _ in range(blocks_for(header.size)):
            data = self._next_block()
            if not data:
                raise TruncatedArchive(
                    f"stream ends at offset {self.offset} inside the data of {header.name!r} "
                    f"({len(blocks) * BLOCK_SIZE} of {header.size} bytes read)"
                )
            blocks.append(data)
        self.state = ReadState.EXPECT_HEADER
        return TarEntry(header=header, blocks=blocks)


def read_archive(source: Source, strict: bool = DEFAULT_STRICT) -> List[TarEntry]:
    """Read every entry of a tar stream into memory."""
    with ArchiveReader(source, strict=strict) as reader:
        return reader.list()
