from __future__ import annotations

import io
import os
import tarfile
import tempfile
import unittest
from pathlib import Path

from ustar.archive import TarArchive, add_entry, remove_entry
from ustar.constants import BLOCK_SIZE, ZERO_BLOCK
from ustar.entry import TarEntry
from ustar.errors import ChecksumMismatch, FieldOverflow, NotFound, TruncatedArchive
from ustar.header import TarHeader, encode_header
from ustar.reader import ArchiveReader, read_archive
from ustar.writer import ArchiveWriter, write_archive


def _sample_entries():
    return [
        TarEntry.directory("docs", mtime=1000),
        TarEntry.file("docs/a.txt", b"hello world\n" * 50, mtime=1001, uname="alice"),
        TarEntry.file("docs/empty.txt", b"", mtime=1002),
        TarEntry.file("docs/exact.bin", bytes(range(256)) * 2, mtime=1003),
        TarEntry.symlink("docs/link", "a.txt", mtime=1004),
    ]


def _to_bytes(entries) -> bytes:
    buf = io.BytesIO()
    write_archive(buf, entries)
    return buf.getvalue()


class RoundtripTests(unittest.TestCase):
    def test_roundtrip_in_memory(self):
        entries = _sample_entries()
        back = read_archive(_to_bytes(entries))
        self.assertEqual(back, entries)
        for before, after in zip(entries, back):
            self.assertEqual(after.name, before.name)
            self.assertEqual(after.size, before.size)
            self.assertEqual(after.data, before.data)
            self.assertEqual(after.header.typeflag, before.header.typeflag)

    def test_block_layout(self):
        raw = _to_bytes(_sample_entries())
        # dir 1 + a.txt (600 bytes) 1+2 + empty 1 + exact (512) 1+1 + link 1 + end marker 2
        self.assertEqual(len(raw), 10 * BLOCK_SIZE)
        self.assertEqual(raw[-2 * BLOCK_SIZE:], ZERO_BLOCK * 2)
        a_txt_data = raw[2 * BLOCK_SIZE:4 * BLOCK_SIZE]
        self.assertEqual(a_txt_data[:600], b"hello world\n" * 50)
        self.assertEqual(a_txt_data[600:], b"\x00" * (2 * BLOCK_SIZE - 600))

    def test_directory_and_symlink_after_roundtrip(self):
        back = read_archive(_to_bytes(_sample_entries()))
        d = back[0]
        self.assertTrue(d.isdir())
        self.assertEqual(d.name, "docs/")
        self.assertEqual(d.size, 0)
        self.assertEqual(d.blocks, [])
        link = back[-1]
        self.assertTrue(link.issym())
        self.assertEqual(link.header.linkname, "a.txt")
        self.assertEqual(link.blocks, [])

    def test_roundtrip_through_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.tar"
            entries = _sample_entries()
            self.assertEqual(write_archive(str(path), entries), len(entries))
            self.assertEqual(read_archive(path), entries)


class ReaderTests(unittest.TestCase):
    def test_empty_archive(self):
        self.assertEqual(read_archive(ZERO_BLOCK * 2), [])

    def test_trailing_data_ignored(self):
        raw = _to_bytes(_sample_entries()[:1]) + b"garbage" * 100
        self.assertEqual(len(read_archive(raw)), 1)

    def test_truncated_data_block(self):
        header = encode_header(TarHeader(name="f", size=600))
        with self.assertRaises(TruncatedArchive):
            read_archive(header + b"x" * 511)

    def test_truncated_header(self):
        with self.assertRaises(TruncatedArchive):
            read_archive(b"\x00" * 511)
        header = encode_header(TarHeader(name="f"))
        with self.assertRaises(TruncatedArchive):
            read_archive(header + b"\x00" * 511)

    def test_missing_data_blocks(self):
        header = encode_header(TarHeader(name="f", size=1024))
        with self.assertRaises(TruncatedArchive):
            read_archive(header + b"x" * BLOCK_SIZE)

    def test_missing_end_marker(self):
        raw = _to_bytes(_sample_entries())[:-2 * BLOCK_SIZE]
        with self.assertRaises(TruncatedArchive):
            read_archive(raw)
        with self.assertRaises(TruncatedArchive):
            read_archive(raw + ZERO_BLOCK)
        self.assertEqual(len(read_archive(raw, strict=False)), 5)
        self.assertEqual(len(read_archive(raw + ZERO_BLOCK, strict=False)), 5)

    def test_lone_zero_block_is_skipped(self):
        first, second = _sample_entries()[1:3]
        raw = _to_bytes([first])[:-2 * BLOCK_SIZE] + ZERO_BLOCK + _to_bytes([second])
        self.assertEqual([e.name for e in read_archive(raw)], [first.name, second.name])

    def test_bad_header_aborts_read(self):
        raw = bytearray(_to_bytes(_sample_entries()))
        raw[BLOCK_SIZE] ^= 0x01  # name of the second header
        with self.assertRaises(ChecksumMismatch) as ctx:
            read_archive(bytes(raw))
        self.assertIn(f"offset {BLOCK_SIZE}", str(ctx.exception))

    def test_second_pass_rejected(self):
        with ArchiveReader(_to_bytes(_sample_entries()[:1])) as reader:
            self.assertEqual(len(reader.list()), 1)
            with self.assertRaises(RuntimeError):
                reader.list()

    def test_caller_stream_left_open(self):
        buf = io.BytesIO(_to_bytes(_sample_entries()))
        with ArchiveReader(buf) as reader:
            names = [e.name for e in reader]
        self.assertFalse(buf.closed)
        self.assertEqual(names[0], "docs/")

    def test_path_closed_on_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.tar"
            path.write_bytes(b"\x01" * 100)
            reader = ArchiveReader(str(path))
            with self.assertRaises(TruncatedArchive):
                with reader:
                    reader.list()
            self.assertIsNone(reader.f)


class WriterTests(unittest.TestCase):
    def test_overflow_names_entry(self):
        entries = [TarEntry.file("ok.txt", b"x"), TarEntry.file("huge-uid.txt", b"y", uid=8 ** 7)]
        with self.assertRaises(FieldOverflow) as ctx:
            _to_bytes(entries)
        self.assertEqual(ctx.exception.entry_name, "huge-uid.txt")
        self.assertTrue(str(ctx.exception).startswith("huge-uid.txt: "))

    def test_block_count_checked(self):
        entry = TarEntry.file("f", b"abc")
        entry.header.size = 600
        with self.assertRaises(ValueError):
            _to_bytes([entry])
        with self.assertRaises(ValueError):
            TarEntry(header=TarHeader(name="g", size=1), blocks=[])

    def test_failed_write_keeps_existing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.tar"
            write_archive(str(path), [TarEntry.file("keep.txt", b"kept")])
            before = path.read_bytes()
            bad = [TarEntry.file("ok.txt", b"x"), TarEntry.file("bad.txt", b"y", uid=8 ** 7)]
            with self.assertRaises(FieldOverflow) as ctx:
                write_archive(str(path), bad)
            self.assertEqual(ctx.exception.entry_name, "bad.txt")
            self.assertEqual(path.read_bytes(), before)
            self.assertEqual([e.name for e in read_archive(path)], ["keep.txt"])

    def test_finalize_once(self):
        buf = io.BytesIO()
        with ArchiveWriter(buf) as w:
            w.add(TarEntry.file("f", b"abc"))
            w.finalize()
            w.finalize()
            with self.assertRaises(RuntimeError):
                w.add(TarEntry.file("g", b""))
        self.assertEqual(len(buf.getvalue()), 4 * BLOCK_SIZE)


class ArchiveModelTests(unittest.TestCase):
    def test_add_preserves_order(self):
        tar = TarArchive()
        for e in _sample_entries():
            add_entry(tar, e)
        self.assertEqual(tar.names(), [e.name for e in _sample_entries()])
        self.assertEqual(len(tar), 5)

    def test_remove_first_duplicate(self):
        first = TarEntry.file("dup", b"one")
        second = TarEntry.file("dup", b"two")
        tar = TarArchive([first, TarEntry.file("other", b""), second])
        removed = remove_entry(tar, "dup")
        self.assertIs(removed, first)
        self.assertEqual(tar.names(), ["other", "dup"])
        self.assertEqual(tar.get("dup").data, b"two")

    def test_remove_missing_never_mutates(self):
        tar = TarArchive(_sample_entries())
        before = list(tar.entries)
        with self.assertRaises(NotFound):
            tar.remove("nope")
        with self.assertRaises(LookupError):
            tar.remove("nope")
        self.assertFalse(tar.discard("nope"))
        self.assertEqual(tar.entries, before)

    def test_directory_name_without_slash(self):
        tar = TarArchive(_sample_entries())
        self.assertIn("docs", tar)
        self.assertTrue(tar.discard("docs"))
        self.assertNotIn("docs/", tar)

    def test_exact_name_preferred(self):
        tar = TarArchive([TarEntry.directory("x"), TarEntry.file("x", b"data")])
        tar.remove("x")
        self.assertEqual(tar.names(), ["x/"])

    def test_load_mutate_save(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "m.tar"
            TarArchive(_sample_entries()).save(path)
            tar = TarArchive.load(path)
            tar.remove("docs/empty.txt")
            tar.add(TarEntry.file("new.txt", b"fresh"))
            tar.save(path)
            self.assertEqual(
                TarArchive.load(path).names(),
                ["docs/", "docs/a.txt", "docs/exact.bin", "docs/link", "new.txt"],
            )


class TarfileInteropTests(unittest.TestCase):
    def test_tarfile_reads_our_archive(self):
        raw = _to_bytes(_sample_entries())
        with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as tf:
            self.assertEqual(tf.getnames(), ["docs", "docs/a.txt", "docs/empty.txt", "docs/exact.bin", "docs/link"])
            self.assertEqual(tf.extractfile("docs/a.txt").read(), b"hello world\n" * 50)
            link = tf.getmember("docs/link")
            self.assertTrue(link.issym())
            self.assertEqual(link.linkname, "a.txt")
            self.assertTrue(tf.getmember("docs").isdir())

    def test_we_read_tarfile_archive(self):
        long_name = "deep/" + "d" * 90 + "/" + "f" * 40 + ".txt"
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w", format=tarfile.USTAR_FORMAT) as tf:
            d = tarfile.TarInfo("deep")
            d.type = tarfile.DIRTYPE
            d.mode = 0o755
            tf.addfile(d)
            data = os.urandom(1500)
            f = tarfile.TarInfo(long_name)
            f.size = len(data)
            tf.addfile(f, io.BytesIO(data))
            s = tarfile.TarInfo("deep/link")
            s.type = tarfile.SYMTYPE
            s.linkname = "target"
            tf.addfile(s)
        entries = read_archive(buf.getvalue())
        self.assertEqual([e.name for e in entries], ["deep/", long_name, "deep/link"])
        self.assertEqual(entries[1].data, data)
        self.assertEqual(entries[2].header.linkname, "target")
        # re-encoding reproduces tarfile's member data
        self.assertEqual(read_archive(_to_bytes(entries)), entries)


if __name__ == "__main__":
    unittest.main()
