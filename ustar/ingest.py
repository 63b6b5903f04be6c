from __future__ import annotations

import logging
import os
import stat
from typing import Iterator, Optional

try:  # not available on every platform
    import grp
    import pwd
except ImportError:  # pragma: no cover
    grp = pwd = None  # type: ignore

from .constants import MODE_MASK, REGTYPE, SYMTYPE, DIRTYPE
from .entry import TarEntry
from .errors import TarError, UnreadableSource
from .header import TarHeader, encode_header
from .pathutil import norm_path


logger = logging.getLogger(__name__)


def _owner_names(st: os.stat_result):
    uname = gname = ""
    if pwd is not None:
        try:
            uname = pwd.getpwuid(st.st_uid).pw_name
        except KeyError:
            pass
    if grp is not None:
        try:
            gname = grp.getgrgid(st.st_gid).gr_name
        except KeyError:
            pass
    return uname, gname


def _header_from_stat(arcname: str, st: os.stat_result) -> TarHeader:
    uname, gname = _owner_names(st)
    return TarHeader(
        name=arcname,
        mode=st.st_mode & MODE_MASK,
        uid=st.st_uid,
        gid=st.st_gid,
        mtime=int(st.st_mtime),
        uname=uname,
        gname=gname,
    )


def ingest_path(path: str, arcname: Optional[str] = None) -> TarEntry:
    """Build one entry from one filesystem object.

    Args:
        path: File, directory or symbolic link on the host (links are not followed).
        arcname: Name inside the archive; defaults to the basename of ``path``.

    Raises:
        UnreadableSource: ``path`` is missing, unreadable, or a device, FIFO or socket.
        FieldOverflow: the collected metadata does not fit the header.
    """
    fs_path = os.fspath(path)
    try:
        st = os.lstat(fs_path)
    except OSError as exc:
        raise UnreadableSource(f"cannot stat {fs_path}: {exc.strerror}") from exc

    if arcname is None:
        arcname = os.path.basename(os.path.abspath(fs_path))
    mode = st.st_mode

    try:
        if stat.S_ISREG(mode):
            header = _header_from_stat(norm_path(arcname), st)
            header.typeflag = REGTYPE
            with open(fs_path, "rb") as fh:
                data = fh.read()
            entry = TarEntry.from_data(header, data)
        elif stat.S_ISDIR(mode):
            header = _header_from_stat(norm_path(arcname, is_dir=True), st)
            header.typeflag = DIRTYPE
            entry = TarEntry(header=header)
        elif stat.S_ISLNK(mode):
            header = _header_from_stat(norm_path(arcname), st)
            header.typeflag = SYMTYPE
            header.linkname = os.readlink(fs_path)
            entry = TarEntry(header=header)
        else:
            raise UnreadableSource(f"unsupported file type for {fs_path} (mode {stat.filemode(mode)})")
    except OSError as exc:
        raise UnreadableSource(f"cannot read {fs_path}: {exc.strerror}") from exc

    try:
        encode_header(entry.header)
    except TarError as exc:
        exc.entry_name = fs_path
        raise
    logger.debug("ingested %s as %s (%d bytes)", fs_path, entry.name, entry.size)
    return entry


def ingest_tree(path: str, arcname: Optional[str] = None) -> Iterator[TarEntry]:
    """Yield ``path`` and, for directories, every descendant in sorted order.

    Symlinked directories are archived as links and not descended into.
    """
    fs_path = os.fspath(path)
    top = ingest_path(fs_path, arcname)
    yield top
    if not top.isdir():
        return
    base = top.name.rstrip("/")
    try:
        names = sorted(os.listdir(fs_path))
    except OSError as exc:
        raise UnreadableSource(f"cannot list {fs_path}: {exc.strerror}") from exc
    for child in names:
        yield from ingest_tree(os.path.join(fs_path, child), f"{base}/{child}")
