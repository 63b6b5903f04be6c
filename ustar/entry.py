from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .constants import (
    BLOCK_SIZE,
    NUL,
    REGTYPE,
    SYMTYPE,
    DIRTYPE,
    DEFAULT_FILE_MODE,
    DEFAULT_DIR_MODE,
    DEFAULT_LINK_MODE,
)
from .header import TarHeader
from .pathutil import norm_path


def blocks_for(size: int) -> int:
    return (size + BLOCK_SIZE - 1) // BLOCK_SIZE


def split_blocks(data: bytes) -> List[bytes]:
    """Cut ``data`` into 512-byte blocks, zero-padding the last one."""
    blocks = [data[i:i + BLOCK_SIZE] for i in range(0, len(data), BLOCK_SIZE)]
    if blocks and len(blocks[-1]) < BLOCK_SIZE:
        blocks[-1] = blocks[-1] + NUL * (BLOCK_SIZE - len(blocks[-1]))
    return blocks


@dataclass
class TarEntry:
    """One archive member: its header plus the payload as 512-byte blocks."""

    header: TarHeader
    blocks: List[bytes] = field(default_factory=list)

    def __post_init__(self):
        self.check_blocks()

    def check_blocks(self) -> None:
        expected = blocks_for(self.header.size)
        if len(self.blocks) != expected:
            raise ValueError(
                f"{self.header.name}: size {self.header.size} needs {expected} blocks, got {len(self.blocks)}"
            )
        for b in self.blocks:
            if len(b) != BLOCK_SIZE:
                raise ValueError(f"{self.header.name}: payload block of {len(b)} bytes")

    @classmethod
    def from_data(cls, header: TarHeader, data: bytes) -> "TarEntry":
        header.size = len(data)
        return cls(header=header, blocks=split_blocks(data))

    @classmethod
    def file(cls, name: str, data: bytes, *, mode: int = DEFAULT_FILE_MODE, **meta) -> "TarEntry":
        header = TarHeader(name=norm_path(name), mode=mode, typeflag=REGTYPE, **meta)
        return cls.from_data(header, data)

    @classmethod
    def directory(cls, name: str, *, mode: int = DEFAULT_DIR_MODE, **meta) -> "TarEntry":
        header = TarHeader(name=norm_path(name, is_dir=True), mode=mode, typeflag=DIRTYPE, **meta)
        return cls(header=header)

    @classmethod
    def symlink(cls, name: str, target: str, *, mode: int = DEFAULT_LINK_MODE, **meta) -> "TarEntry":
        header = TarHeader(name=norm_path(name), mode=mode, typeflag=SYMTYPE, linkname=target, **meta)
        return cls(header=header)

    @property
    def name(self) -> str:
        return self.header.name

    @property
    def size(self) -> int:
        return self.header.size

    @property
    def data(self) -> bytes:
        return b"".join(self.blocks)[: self.header.size]

    def isreg(self) -> bool:
        return self.header.isreg()

    def isdir(self) -> bool:
        return self.header.isdir()

    def issym(self) -> bool:
        return self.header.issym()

    def matches(self, name: str) -> bool:
        if self.header.name == name:
            return True
        return self.isdir() and self.header.name.rstrip("/") == name.rstrip("/")
