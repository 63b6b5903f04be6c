from __future__ import annotations

import logging
from typing import BinaryIO, Iterable, Optional

from .constants import END_OF_ARCHIVE_BLOCKS, ZERO_BLOCK
from .entry import TarEntry
from .errors import TarError
from .header import encode_header
from .streams import Sink, open_sink


logger = logging.getLogger(__name__)


def _encode_entry(entry: TarEntry) -> bytes:
    entry.check_blocks()
    try:
        return encode_header(entry.header)
    except TarError as exc:
        exc.entry_name = entry.name
        raise


class ArchiveWriter:
    """Sequential writer: header, padded payload blocks, then the end marker."""

    def __init__(self, sink: Sink):
        self.sink = sink
        self.f: Optional[BinaryIO] = None
        self._owned = False
        self.count = 0
        self.finalized = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        self.f, self._owned = open_sink(self.sink)

    def close(self):
        if self.f is not None:
            if self._owned:
                self.f.close()
            else:
                self.f.flush()
        self.f = None
        self._owned = False

    def add(self, entry: TarEntry) -> None:
        if self.f is None:
            raise RuntimeError("Archive not open")
        if self.finalized:
            raise RuntimeError("Archive already finalized")
        header = _encode_entry(entry)
        self.f.write(header)
        for block in entry.blocks:
            self.f.write(block)
        self.count += 1
        logger.debug("wrote %r: %d data blocks", entry.name, len(entry.blocks))

    def finalize(self) -> None:
        """Append the end-of-archive marker (two zero blocks)."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        if self.finalized:
            return
        self.f.write(ZERO_BLOCK * END_OF_ARCHIVE_BLOCKS)
        self.finalized = True
        logger.debug("finalized archive with %d entries", self.count)


def write_archive(sink: Sink, entries: Iterable[TarEntry]) -> int:
    """Write ``entries`` in order followed by the end marker; returns the entry count.

    Every entry is validated before ``sink`` is opened, so an entry that cannot
    be encoded leaves a file already at that path as it was.
    """
    entries = list(entries)
    for entry in entries:
        _encode_entry(entry)
    with ArchiveWriter(sink) as writer:
        for entry in entries:
            writer.add(entry)
        writer.finalize()
        return writer.count
