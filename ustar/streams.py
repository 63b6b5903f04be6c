from __future__ import annotations

import io
import os
from typing import BinaryIO, Tuple, Union

from .constants import BLOCK_SIZE
from .errors import TruncatedArchive

Source = Union[str, "os.PathLike[str]", bytes, bytearray, memoryview, BinaryIO]
Sink = Union[str, "os.PathLike[str]", BinaryIO]


def open_source(source: Source) -> Tuple[BinaryIO, bool]:
    """Normalize ``source`` into a readable binary file object.

    Returns ``(fileobj, owned)``; ``owned`` is True when the caller must close
    the object (it was opened here from a path).
    """
    if isinstance(source, (str, os.PathLike)):
        return open(source, "rb"), True
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source)), True
    if not hasattr(source, "read"):
        raise TypeError(f"cannot read a tar archive from {type(source).__name__}")
    return source, False


def open_sink(sink: Sink) -> Tuple[BinaryIO, bool]:
    if isinstance(sink, (str, os.PathLike)):
        return open(sink, "wb"), True
    if not hasattr(sink, "write"):
        raise TypeError(f"cannot write a tar archive to {type(sink).__name__}")
    return sink, False


def read_block(f: BinaryIO, offset: int = 0) -> bytes:
    """Read one whole block; ``b""`` at a clean end of stream.

    Short reads are retried so pipes and sockets behave like files. A stream
    that ends inside a block raises :class:`TruncatedArchive`.
    """
    buf = bytearray()
    while len(buf) < BLOCK_SIZE:
        chunk = f.read(BLOCK_SIZE - len(buf))
        if not chunk:
            break
        buf += chunk
    if buf and len(buf) != BLOCK_SIZE:
        raise TruncatedArchive(f"stream ends {len(buf)} bytes into the block at offset {offset}")
    return bytes(buf)
