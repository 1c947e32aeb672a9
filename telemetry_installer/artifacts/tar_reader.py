# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/artifacts/tar_reader.py
# Author: Elven Observability
# Details of functionality of this file: In-process gzip tar reader used when neither native tar nor 7-Zip is available

"""
Manual tar reader (last-resort extraction strategy).

Walks 512-byte ustar/GNU/PAX headers of a gzip-compressed tar stream and
extracts only the members selected by a predicate. Every header is checked
before any byte is written:

- header checksum must match (otherwise the archive is corrupt)
- member names must be relative and free of '..' components
- member size must not exceed MAX_MEMBER_SIZE
- the output path must resolve inside the target directory
"""

import gzip
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Dict, List, Optional

from ..errors import ExtractionError

logger = logging.getLogger(__name__)

BLOCK_SIZE = 512
MAX_MEMBER_SIZE = 256 * 1024 * 1024

REGULAR_TYPES = (b'0', b'\0', b'7')
GNU_LONGNAME = b'L'
PAX_HEADER = b'x'
PAX_GLOBAL = b'g'


@dataclass(frozen=True)
class TarMember:
    name: str
    size: int
    typeflag: bytes
    mode: int

    @property
    def is_file(self) -> bool:
        return self.typeflag in REGULAR_TYPES


def parse_number(field: bytes) -> int:
    """Decode an octal header field, or GNU base-256 when the high bit is set."""
    if field and field[0] & 0x80:
        value = field[0] & 0x7f
        for byte in field[1:]:
            value = (value << 8) | byte
        return value
    text = field.split(b'\0', 1)[0].strip()
    if not text:
        return 0
    try:
        return int(text, 8)
    except ValueError:
        raise ExtractionError(f"Corrupt tar header: invalid numeric field {field!r}")


def header_checksum_ok(header: bytes) -> bool:
    """Checksum = sum of header bytes with the checksum field counted as spaces."""
    stored = parse_number(header[148:156])
    unsigned = sum(header[:148]) + 8 * 32 + sum(header[156:BLOCK_SIZE])
    signed = (sum(b - 256 if b > 127 else b for b in header[:148]) + 8 * 32
              + sum(b - 256 if b > 127 else b for b in header[156:BLOCK_SIZE]))
    return stored in (unsigned, signed)


def check_member_name(name: str) -> PurePosixPath:
    """
    Reject absolute names and '..' components.

    Raises:
        ExtractionError: Path traversal attempt
    """
    path = PurePosixPath(name)
    if not name or path.is_absolute() or name.startswith('\\') or (len(name) > 1 and name[1] == ':'):
        raise ExtractionError(f"Unsafe archive member (absolute path): {name!r}")
    if '..' in path.parts or '..' in name.replace('\\', '/').split('/'):
        raise ExtractionError(f"Unsafe archive member (path traversal): {name!r}")
    return path


def check_member_size(member_name: str, size: int, limit: int = MAX_MEMBER_SIZE) -> None:
    if size > limit:
        raise ExtractionError(f"Archive member {member_name!r} is {size} bytes, larger than the {limit} byte limit")


def resolve_inside(target_dir: Path, name: str) -> Path:
    """
    Output path for `name` under `target_dir`.

    Raises:
        ExtractionError: If the resolved path escapes target_dir
    """
    root = Path(target_dir).resolve()
    destination = (root / check_member_name(name)).resolve()
    if destination != root and root not in destination.parents:
        raise ExtractionError(f"Archive member {name!r} resolves outside {root}")
    return destination


def parse_pax_records(data: bytes) -> Dict[str, str]:
    """Parse `<len> key=value\\n` PAX extended header records."""
    records = {}
    pos = 0
    while pos < len(data):
        space = data.find(b' ', pos)
        if space < 0:
            break
        try:
            length = int(data[pos:space])
        except ValueError:
            raise ExtractionError("Corrupt PAX header record")
        if length <= 0:
            break
        record = data[space + 1:pos + length].rstrip(b'\n')
        key, _, value = record.partition(b'=')
        records[key.decode('utf-8', 'replace')] = value.decode('utf-8', 'replace')
        pos += length
    return records


def parse_header(header: bytes) -> TarMember:
    if not header_checksum_ok(header):
        raise ExtractionError("Corrupt archive: tar header checksum mismatch")

    name = header[0:100].split(b'\0', 1)[0].decode('utf-8', 'replace')
    if header[257:262] == b'ustar':
        prefix = header[345:500].split(b'\0', 1)[0].decode('utf-8', 'replace')
        if prefix:
            name = f"{prefix}/{name}"
    return TarMember(
        name=name,
        size=parse_number(header[124:136]),
        typeflag=header[156:157],
        mode=parse_number(header[100:108]),
    )


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise ExtractionError("Corrupt archive: unexpected end of tar stream")
    return data


def _padding(size: int) -> int:
    return (BLOCK_SIZE - size % BLOCK_SIZE) % BLOCK_SIZE


class ManualTarReader:
    """Extract selected members from a .tar.gz without external tools."""

    def __init__(self, archive: Path, max_member_size: int = MAX_MEMBER_SIZE):
        self.archive = Path(archive)
        self.max_member_size = max_member_size

    def extract(self, target_dir: Path, select: Callable[[str], bool]) -> List[Path]:
        """
        Extract regular-file members for which `select(name)` is true.

        Returns:
            Paths written

        Raises:
            ExtractionError: Corrupt, truncated or unsafe archive
        """
        target_dir = Path(target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        written = []
        try:
            with gzip.open(self.archive, 'rb') as stream:
                written = self._walk(stream, target_dir, select)
        except (OSError, EOFError) as e:
            raise ExtractionError(f"Cannot read archive {self.archive}: {e}")
        logger.info(f"Manual tar reader extracted {len(written)} member(s) from {self.archive}")
        return written

    def _walk(self, stream: BinaryIO, target_dir: Path, select: Callable[[str], bool]) -> List[Path]:
        written = []
        pending_name: Optional[str] = None

        while True:
            header = stream.read(BLOCK_SIZE)
            if not header or header == b'\0' * len(header):
                break
            if len(header) != BLOCK_SIZE:
                raise ExtractionError("Corrupt archive: truncated tar header")

            member = parse_header(header)
            check_member_size(member.name, member.size, self.max_member_size)

            if member.typeflag in (GNU_LONGNAME, PAX_HEADER, PAX_GLOBAL):
                data = _read_exact(stream, member.size)
                _read_exact(stream, _padding(member.size))
                if member.typeflag == GNU_LONGNAME:
                    pending_name = data.split(b'\0', 1)[0].decode('utf-8', 'replace')
                elif member.typeflag == PAX_HEADER:
                    pending_name = parse_pax_records(data).get('path', pending_name)
                continue

            name = pending_name or member.name
            pending_name = None
            check_member_name(name)

            if member.is_file and select(name):
                destination = resolve_inside(target_dir, name)
                destination.parent.mkdir(parents=True, exist_ok=True)
                self._copy_data(stream, destination, member.size)
                os.chmod(destination, member.mode & 0o777 or 0o644)
                written.append(destination)
            else:
                self._skip(stream, member.size)
            _read_exact(stream, _padding(member.size))

        return written

    @staticmethod
    def _copy_data(stream: BinaryIO, destination: Path, size: int) -> None:
        remaining = size
        with open(destination, 'wb') as out:
            while remaining:
                chunk = _read_exact(stream, min(remaining, 64 * 1024))
                out.write(chunk)
                remaining -= len(chunk)

    @staticmethod
    def _skip(stream: BinaryIO, size: int) -> None:
        remaining = size
        while remaining:
            chunk = _read_exact(stream, min(remaining, 64 * 1024))
            remaining -= len(chunk)
