# Block geometry
BLOCK_SIZE = 512
END_OF_ARCHIVE_BLOCKS = 2
NUL = b"\x00"
ZERO_BLOCK = NUL * BLOCK_SIZE

# Magic and version
USTAR_MAGIC = b"ustar\x00"   # POSIX 1003.1-1988
USTAR_VERSION = b"00"
GNU_MAGIC = b"ustar "        # old GNU tar, accepted only when lenient
GNU_VERSION = b" \x00"
V7_MAGIC = NUL * 6           # pre-POSIX headers carry no magic at all

# Type flags
REGTYPE = b"0"
AREGTYPE = b"\x00"           # regular file, pre-POSIX spelling
LNKTYPE = b"1"
SYMTYPE = b"2"
CHRTYPE = b"3"
BLKTYPE = b"4"
DIRTYPE = b"5"
FIFOTYPE = b"6"
CONTTYPE = b"7"

REGULAR_TYPES = (REGTYPE, AREGTYPE, CONTTYPE)

# Text fields are bytes on disk; surrogateescape keeps undecodable host paths intact
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

# Readers reject GNU/pre-POSIX signatures unless told otherwise
DEFAULT_STRICT = True

MODE_MASK = 0o7777
DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755
DEFAULT_LINK_MODE = 0o777
