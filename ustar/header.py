from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Tuple

from .constants import (
    BLOCK_SIZE,
    NUL,
    ZERO_BLOCK,
    USTAR_MAGIC,
    USTAR_VERSION,
    GNU_MAGIC,
    GNU_VERSION,
    V7_MAGIC,
    REGTYPE,
    SYMTYPE,
    DIRTYPE,
    REGULAR_TYPES,
    ENCODING,
    ENCODING_ERRORS,
    DEFAULT_STRICT,
    DEFAULT_FILE_MODE,
)
from .errors import (
    ChecksumMismatch,
    FieldOverflow,
    MalformedNumber,
    TruncatedArchive,
    UnsupportedMagic,
)
from .pathutil import split_ustar_name


# Field kinds
TEXT = "text"      # NUL-padded bytes, may fill the whole width
OCTAL = "octal"    # zero-padded octal digits followed by one NUL
CHKSUM = "chksum"  # six octal digits, NUL, space
RAW = "raw"        # stored verbatim


class FieldSpec(NamedTuple):
    name: str
    width: int
    kind: str


# USTAR header record (512 bytes), in on-disk order. Offsets, the struct
# format and the checksum position are all derived from this table.
HEADER_LAYOUT: Tuple[FieldSpec, ...] = (
    FieldSpec("name", 100, TEXT),
    FieldSpec("mode", 8, OCTAL),
    FieldSpec("uid", 8, OCTAL),
    FieldSpec("gid", 8, OCTAL),
    FieldSpec("size", 12, OCTAL),
    FieldSpec("mtime", 12, OCTAL),
    FieldSpec("chksum", 8, CHKSUM),
    FieldSpec("typeflag", 1, RAW),
    FieldSpec("linkname", 100, TEXT),
    FieldSpec("magic", 6, RAW),
    FieldSpec("version", 2, RAW),
    FieldSpec("uname", 32, TEXT),
    FieldSpec("gname", 32, TEXT),
    FieldSpec("devmajor", 8, OCTAL),
    FieldSpec("devminor", 8, OCTAL),
    FieldSpec("prefix", 155, TEXT),
    FieldSpec("padding", 12, RAW),
)


def _offsets() -> Dict[str, Tuple[int, int]]:
    out: Dict[str, Tuple[int, int]] = {}
    pos = 0
    for spec in HEADER_LAYOUT:
        out[spec.name] = (pos, spec.width)
        pos += spec.width
    return out


FIELD_OFFSETS = _offsets()
_HEADER_STRUCT = struct.Struct("".join(f"{spec.width}s" for spec in HEADER_LAYOUT))
_CHKSUM_OFFSET, _CHKSUM_WIDTH = FIELD_OFFSETS["chksum"]
_CHKSUM_BLANK = b" " * _CHKSUM_WIDTH

if _HEADER_STRUCT.size != BLOCK_SIZE:
    raise RuntimeError(f"header layout covers {_HEADER_STRUCT.size} bytes, expected {BLOCK_SIZE}")


@dataclass
class TarHeader:
    """Decoded view of one header record.

    ``name`` is the full archive path: prefix and name are split on encode and
    joined on decode. ``chksum`` is only informative (the value found on disk)
    and is recomputed on every encode.
    """

    name: str
    mode: int = DEFAULT_FILE_MODE
    uid: int = 0
    gid: int = 0
    size: int = 0
    mtime: int = 0
    typeflag: bytes = REGTYPE
    linkname: str = ""
    uname: str = ""
    gname: str = ""
    devmajor: int = 0
    devminor: int = 0
    chksum: Optional[int] = field(default=None, compare=False)

    def isreg(self) -> bool:
        return self.typeflag in REGULAR_TYPES

    def isdir(self) -> bool:
        return self.typeflag == DIRTYPE

    def issym(self) -> bool:
        return self.typeflag == SYMTYPE


def is_zero_block(block: bytes) -> bool:
    return block == ZERO_BLOCK


def _byte_sum(data: bytes, signed: bool) -> int:
    if signed:
        return sum(b - 256 if b & 0x80 else b for b in data)
    return sum(data)


def compute_checksum(block: bytes, *, signed: bool = False) -> int:
    """Sum of the 512 header bytes with the checksum field counted as spaces.

    ``signed`` reproduces the historic implementations that summed the bytes
    as signed chars.
    """
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"header block must be {BLOCK_SIZE} bytes, got {len(block)}")
    head = block[:_CHKSUM_OFFSET]
    tail = block[_CHKSUM_OFFSET + _CHKSUM_WIDTH:]
    return _byte_sum(head, signed) + _byte_sum(_CHKSUM_BLANK, signed) + _byte_sum(tail, signed)


# -------- encoding --------

def _encode_text(value, spec: FieldSpec) -> bytes:
    raw = value if isinstance(value, bytes) else value.encode(ENCODING, ENCODING_ERRORS)
    if len(raw) > spec.width:
        raise FieldOverflow(f"field '{spec.name}' holds {spec.width} bytes, got {len(raw)}")
    return raw


def _encode_octal(value: int, spec: FieldSpec) -> bytes:
    if value < 0:
        raise FieldOverflow(f"field '{spec.name}' cannot store negative value {value}")
    digits = spec.width - 1
    if value >= 8 ** digits:
        raise FieldOverflow(f"field '{spec.name}' value {value} does not fit in {digits} octal digits")
    return ("%0*o" % (digits, value)).encode("ascii") + NUL


def _encode_chksum(value: int) -> bytes:
    return ("%06o" % value).encode("ascii") + NUL + b" "


def encode_header(header: TarHeader) -> bytes:
    """Render ``header`` into one 512-byte USTAR record."""
    if not isinstance(header.typeflag, bytes) or len(header.typeflag) != 1:
        raise ValueError(f"typeflag must be a single byte, got {header.typeflag!r}")
    prefix, name = split_ustar_name(header.name.encode(ENCODING, ENCODING_ERRORS))
    values = {
        "name": name,
        "mode": header.mode,
        "uid": header.uid,
        "gid": header.gid,
        "size": header.size,
        "mtime": header.mtime,
        "chksum": None,
        "typeflag": header.typeflag,
        "linkname": header.linkname,
        "magic": USTAR_MAGIC,
        "version": USTAR_VERSION,
        "uname": header.uname,
        "gname": header.gname,
        "devmajor": header.devmajor,
        "devminor": header.devminor,
        "prefix": prefix,
        "padding": b"",
    }
    parts = []
    for spec in HEADER_LAYOUT:
        value = values[spec.name]
        if spec.kind == TEXT:
            parts.append(_encode_text(value, spec))
        elif spec.kind == OCTAL:
            parts.append(_encode_octal(value, spec))
        elif spec.kind == CHKSUM:
            parts.append(_CHKSUM_BLANK)
        else:
            parts.append(value)
    block = _HEADER_STRUCT.pack(*parts)
    chksum = compute_checksum(block)
    return block[:_CHKSUM_OFFSET] + _encode_chksum(chksum) + block[_CHKSUM_OFFSET + _CHKSUM_WIDTH:]


# -------- decoding --------

_OCTAL_DIGITS = frozenset(b"01234567")


def _decode_text(raw: bytes) -> str:
    return raw.split(NUL, 1)[0].decode(ENCODING, ENCODING_ERRORS)


def _decode_octal(raw: bytes, field_name: str) -> int:
    stripped = raw.strip(b" \x00")
    if not stripped:
        return 0
    if not set(stripped) <= _OCTAL_DIGITS:
        raise MalformedNumber(f"field '{field_name}' is not an octal number: {raw!r}")
    return int(stripped, 8)


def _check_magic(magic: bytes, version: bytes, strict: bool) -> None:
    if magic == USTAR_MAGIC and version == USTAR_VERSION:
        return
    if not strict:
        if magic == GNU_MAGIC and version == GNU_VERSION:
            return
        if magic == V7_MAGIC:
            return
    raise UnsupportedMagic(f"unrecognised header magic {magic!r} version {version!r}")


def _check_chksum(block: bytes, stored: int, strict: bool) -> None:
    if stored == compute_checksum(block):
        return
    if not strict and stored == compute_checksum(block, signed=True):
        return
    raise ChecksumMismatch(f"stored checksum {stored:o} != computed {compute_checksum(block):o}")


def decode_header(block: bytes, *, strict: bool = DEFAULT_STRICT) -> TarHeader:
    """Parse one 512-byte record into a :class:`TarHeader`.

    The all-zero block is an end-of-archive sentinel; callers test it with
    :func:`is_zero_block` before decoding.
    """
    if len(block) != BLOCK_SIZE:
        raise TruncatedArchive(f"header record is {len(block)} bytes, expected {BLOCK_SIZE}")
    if is_zero_block(block):
        raise ValueError("zero block is an end-of-archive marker, not a header")
    raw = dict(zip((spec.name for spec in HEADER_LAYOUT), _HEADER_STRUCT.unpack(block)))

    stored = _decode_octal(raw["chksum"], "chksum")
    _check_chksum(block, stored, strict)
    _check_magic(raw["magic"], raw["version"], strict)

    name = _decode_text(raw["name"])
    # GNU and v7 headers use the prefix area for other things
    if raw["magic"] == USTAR_MAGIC:
        prefix = _decode_text(raw["prefix"])
        if prefix:
            name = f"{prefix}/{name}"

    return TarHeader(
        name=name,
        mode=_decode_octal(raw["mode"], "mode"),
        uid=_decode_octal(raw["uid"], "uid"),
        gid=_decode_octal(raw["gid"], "gid"),
        size=_decode_octal(raw["size"], "size"),
        mtime=_decode_octal(raw["mtime"], "mtime"),
        typeflag=raw["typeflag"],
        linkname=_decode_text(raw["linkname"]),
        uname=_decode_text(raw["uname"]),
        gname=_decode_text(raw["gname"]),
        devmajor=_decode_octal(raw["devmajor"], "devmajor"),
        devminor=_decode_octal(raw["devminor"], "devminor"),
        chksum=stored,
    )
