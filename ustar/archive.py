from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from .constants import DEFAULT_STRICT
from .entry import TarEntry
from .errors import NotFound
from .ingest import ingest_path, ingest_tree
from .reader import read_archive
from .streams import Sink, Source
from .writer import write_archive


class TarArchive:
    """Mutable, ordered collection of entries held in memory.

    Insertion order is the order entries are written. Duplicate names are
    allowed; lookups and removals resolve to the first match. A directory entry
    also answers to its name without the trailing slash.
    """

    def __init__(self, entries: Optional[Iterable[TarEntry]] = None):
        self.entries: List[TarEntry] = list(entries) if entries is not None else []

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TarEntry]:
        return iter(self.entries)

    def __contains__(self, name: str) -> bool:
        return self._index(name) is not None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({len(self.entries)} entries)>"

    @classmethod
    def load(cls, source: Source, strict: bool = DEFAULT_STRICT) -> "TarArchive":
        return cls(read_archive(source, strict=strict))

    def save(self, sink: Sink) -> int:
        return write_archive(sink, self.entries)

    def names(self) -> List[str]:
        return [e.name for e in self.entries]

    def get(self, name: str) -> TarEntry:
        idx = self._index(name)
        if idx is None:
            raise NotFound(f"no entry named {name!r}")
        return self.entries[idx]

    def add(self, entry: TarEntry) -> None:
        self.entries.append(entry)

    def add_path(self, path: str, arcname: Optional[str] = None, recursive: bool = True) -> int:
        """Ingest ``path`` (recursively for directories) and append the entries.

        Nothing is appended if any path in the tree fails to ingest.
        """
        if recursive:
            new = list(ingest_tree(path, arcname))
        else:
            new = [ingest_path(path, arcname)]
        self.entries.extend(new)
        return len(new)

    def remove(self, name: str) -> TarEntry:
        idx = self._index(name)
        if idx is None:
            raise NotFound(f"no entry named {name!r}")
        return self.entries.pop(idx)

    def discard(self, name: str) -> bool:
        idx = self._index(name)
        if idx is None:
            return False
        del self.entries[idx]
        return True

    # internals
    def _index(self, name: str) -> Optional[int]:
        # exact names win over the directory-slash fallback
        for idx, entry in enumerate(self.entries):
            if entry.name == name:
                return idx
        for idx, entry in enumerate(self.entries):
            if entry.matches(name):
                return idx
        return None


def add_entry(archive: TarArchive, entry: TarEntry) -> None:
    archive.add(entry)


def remove_entry(archive: TarArchive, name: str) -> TarEntry:
    return archive.remove(name)
