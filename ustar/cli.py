from __future__ import annotations

import argparse
import os
import sys
import tempfile
import time
from pathlib import Path
from typing import List

from ustar.archive import TarArchive
from ustar.constants import MODE_MASK, SYMTYPE, DIRTYPE, LNKTYPE, CHRTYPE, BLKTYPE, FIFOTYPE
from ustar.entry import TarEntry
from ustar.errors import TarError
from ustar.reader import ArchiveReader


_TYPE_CHARS = {
    DIRTYPE: "d",
    SYMTYPE: "l",
    LNKTYPE: "h",
    CHRTYPE: "c",
    BLKTYPE: "b",
    FIFOTYPE: "p",
}


def _mode_string(entry: TarEntry) -> str:
    """Render ``ls -l`` style permissions, e.g. ``drwxr-xr-x``."""
    perms = ""
    mode = entry.header.mode & MODE_MASK
    for shift in (6, 3, 0):
        bits = (mode >> shift) & 0o7
        perms += "r" if bits & 4 else "-"
        perms += "w" if bits & 2 else "-"
        perms += "x" if bits & 1 else "-"
    return _TYPE_CHARS.get(entry.header.typeflag, "-") + perms


def _format_mtime(mtime: int) -> str:
    try:
        return time.strftime("%Y-%m-%d %H:%M", time.localtime(mtime))
    except (OverflowError, OSError, ValueError):
        return "----.--.-- --:--"


def _rewrite(archive: str, tar: TarArchive) -> None:
    """Write ``tar`` next to ``archive`` and swap it in atomically.

    The temporary file is removed if writing fails; the original archive is
    untouched in that case.
    """
    target = Path(archive)
    fd, temp_path = tempfile.mkstemp(prefix=".ustar-", suffix=".tar", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            tar.save(fh)
        if target.exists():
            os.chmod(temp_path, target.stat().st_mode & MODE_MASK)
        os.replace(temp_path, str(target))
    except (TarError, OSError, ValueError):
        Path(temp_path).unlink(missing_ok=True)
        raise


def cmd_create(output: str, inputs: list[str], *, quiet: bool = False) -> bool:
    """Create a new archive from filesystem paths.

    Args:
        output: Path of the tar file to write.
        inputs: Files, directories (stored recursively) or symlinks to store.
        quiet: Only print the summary line.
    """
    tar = TarArchive()
    for p in inputs:
        tar.add_path(p)
    tar.save(output)
    total = sum(e.size for e in tar)
    if not quiet:
        for e in tar:
            print(f" adding: {e.name}")
    print(f"Done: {len(tar)} entries, {total} bytes of data")
    return True


def cmd_list(archive: str, *, verbose: bool = False, strict: bool = True) -> bool:
    """List archive entries.

    Args:
        archive: Path to a tar file.
        verbose: Print permissions, owner, size and mtime like ``ls -l``.
        strict: Reject GNU and pre-POSIX headers.
    """
    with ArchiveReader(archive, strict=strict) as r:
        for e in r:
            if not verbose:
                print(e.name)
                continue
            h = e.header
            owner = f"{h.uname or h.uid}/{h.gname or h.gid}"
            line = f"{_mode_string(e)} {owner:<17} {h.size:>10} {_format_mtime(h.mtime)} {e.name}"
            if e.issym():
                line += f" -> {h.linkname}"
            print(line)
    return True


def cmd_append(archive: str, inputs: list[str], *, strict: bool = True) -> bool:
    """Append filesystem paths to an existing archive."""
    tar = TarArchive.load(archive, strict=strict)
    added = 0
    for p in inputs:
        added += tar.add_path(p)
    _rewrite(archive, tar)
    print(f"Appended {added} entries; archive now holds {len(tar)}")
    return True


def cmd_remove(archive: str, names: list[str], *, missing_ok: bool = False, strict: bool = True) -> bool:
    """Remove entries by name (first match per name) and rewrite the archive."""
    tar = TarArchive.load(archive, strict=strict)
    for name in names:
        if missing_ok:
            if not tar.discard(name):
                print(f"not found: {name}", file=sys.stderr)
        else:
            tar.remove(name)
    _rewrite(archive, tar)
    print(f"Archive now holds {len(tar)} entries")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="ustar",
        description="USTAR tar archive tool",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_create = sub.add_parser("create", help="Create archive")
    ap_create.add_argument("output", help="Output .tar path")
    ap_create.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_create.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    ap_list.add_argument("-v", "--verbose", action="store_true", help="Long listing")
    ap_list.add_argument("--lenient", action="store_true", help="Accept GNU and pre-POSIX headers")

    ap_append = sub.add_parser("append", help="Append files to an existing archive")
    ap_append.add_argument("archive", help="Archive path")
    ap_append.add_argument("inputs", nargs="+", help="Input files/directories to append")
    ap_append.add_argument("--lenient", action="store_true", help="Accept GNU and pre-POSIX headers")

    ap_remove = sub.add_parser("remove", help="Remove entries by name")
    ap_remove.add_argument("archive", help="Archive path")
    ap_remove.add_argument("names", nargs="+", help="Entry names to remove")
    ap_remove.add_argument("--missing-ok", action="store_true", help="Do not fail on names that are absent")
    ap_remove.add_argument("--lenient", action="store_true", help="Accept GNU and pre-POSIX headers")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "create":
            cmd_create(args.output, args.inputs, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.archive, verbose=args.verbose, strict=not args.lenient)
        elif args.cmd == "append":
            cmd_append(args.archive, args.inputs, strict=not args.lenient)
        elif args.cmd == "remove":
            cmd_remove(args.archive, args.names, missing_ok=args.missing_ok, strict=not args.lenient)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: no such file: {e.filename or e}", file=sys.stderr)
        sys.exit(2)
    except (TarError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
