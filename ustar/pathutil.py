from __future__ import annotations

from typing import Tuple

from .errors import FieldOverflow

NAME_WIDTH = 100
PREFIX_WIDTH = 155


def norm_path(p: str, *, is_dir: bool = False) -> str:
    """Normalize archive paths to a canonical forward-slash form.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    - Directories get exactly one trailing slash
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Path may not contain '..'")
    if not parts:
        raise ValueError("Archive path is empty")
    out = "/".join(parts)
    return out + "/" if is_dir else out


def split_ustar_name(name: bytes) -> Tuple[bytes, bytes]:
    """Split an encoded path into USTAR ``(prefix, name)``.

    Names up to 100 bytes go entirely into the name field. Longer ones are cut
    at the first '/' that leaves a prefix of at most 155 bytes and a name of at
    most 100 bytes.
    """
    if len(name) <= NAME_WIDTH:
        return b"", name
    components = name.split(b"/")
    for i in range(1, len(components)):
        prefix = b"/".join(components[:i])
        rest = b"/".join(components[i:])
        if len(prefix) > PREFIX_WIDTH:
            break
        if rest and len(rest) <= NAME_WIDTH:
            return prefix, rest
    raise FieldOverflow(
        f"path of {len(name)} bytes cannot be split into a {PREFIX_WIDTH}-byte prefix and {NAME_WIDTH}-byte name"
    )
