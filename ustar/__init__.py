"""
ustar: reader and writer for the POSIX USTAR tar container.

Features:

- Byte-exact 512-byte header codec driven by a declarative field layout,
  with checksum verification and octal field overflow detection.
- Block-level reader with fail-fast error reporting and an explicit
  end-of-archive state machine.
- Writer that pads payloads to block boundaries and appends the
  two-block end-of-archive marker.
- In-memory archive model (add/remove by name) and filesystem ingest for
  regular files, directories and symbolic links.

Only the uncompressed container is handled; there is no compression layer and
no GNU long-name or PAX extension support.
"""

__version__ = "0.1"

from .archive import TarArchive, add_entry, remove_entry
from .entry import TarEntry
from .errors import (
    TarError,
    FieldOverflow,
    ChecksumMismatch,
    MalformedNumber,
    UnsupportedMagic,
    TruncatedArchive,
    UnreadableSource,
    NotFound,
)
from .header import TarHeader, encode_header, decode_header, compute_checksum, is_zero_block
from .ingest import ingest_path, ingest_tree
from .reader import ArchiveReader, read_archive
from .writer import ArchiveWriter, write_archive

__all__ = [
    "TarArchive",
    "TarEntry",
    "TarHeader",
    "ArchiveReader",
    "ArchiveWriter",
    "add_entry",
    "remove_entry",
    "ingest_path",
    "ingest_tree",
    "read_archive",
    "write_archive",
    "encode_header",
    "decode_header",
    "compute_checksum",
    "is_zero_block",
    "TarError",
    "FieldOverflow",
    "ChecksumMismatch",
    "MalformedNumber",
    "UnsupportedMagic",
    "TruncatedArchive",
    "UnreadableSource",
    "NotFound",
]
