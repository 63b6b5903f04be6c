from __future__ import annotations

from typing import Optional


class TarError(Exception):
    """Base class for ustar-specific errors.

    ``entry_name`` is filled in by whoever knows which entry or path was being
    processed when the error surfaced; it is shown in front of the message.
    """

    entry_name: Optional[str] = None

    def __str__(self) -> str:
        msg = super().__str__()
        if self.entry_name:
            return f"{self.entry_name}: {msg}"
        return msg


# Header codec
class FieldOverflow(TarError):
    pass


class ChecksumMismatch(TarError):
    pass


class MalformedNumber(TarError):
    pass


class UnsupportedMagic(TarError):
    pass


# Stream / filesystem
class TruncatedArchive(TarError):
    pass


class UnreadableSource(TarError):
    pass


# Archive model
class NotFound(TarError, LookupError):
    pass
