from __future__ import annotations

"""
PARAM.SFO record decoder.

Layout (little-endian throughout)
- Header (20 bytes): magic[4] "\\0PSF", version u32, key_table_offset u32,
  data_table_offset u32, entries u32
- Index table: one 16-byte entry per key, directly after the header:
  key_offset u16, fmt u16, param_length u32, param_max_length u32,
  data_offset u32 (relative to data_table_offset)
- Key table: [key_table_offset, data_table_offset), NUL-terminated keys in
  index order, NUL-padded at the end
- Data table: starts at data_table_offset; entry i occupies
  data_table_offset + data_offset .. + param_length

Buffers come from a bounded capture and may be a prefix of the real record,
so every range is checked against the buffer instead of trusting the file.
"""

import logging
import struct
from dataclasses import dataclass, field
from typing import Dict, List, Union

from .constants import (
    DEFAULT_REGION,
    FMT_INT32,
    KEY_REGION,
    KEY_TITLE_ID,
    SFO_HEADER_SIZE,
    SFO_INDEX_ENTRY_SIZE,
    SFO_MAGIC,
)
from .errors import BadMagic, MalformedRecord
from .regions import lookup_region
from .sanitize import safe_string


log = logging.getLogger(__name__)

# struct: <4s i i i i
#  - magic[4]
#  - version
#  - key_table_offset (absolute)
#  - data_table_offset (absolute)
#  - entries
_SFO_HDR_STRUCT = struct.Struct("<4siiii")
# struct: <H H I I I
#  - key_offset (within key table)
#  - fmt
#  - param_length
#  - param_max_length
#  - data_offset (within data table)
_SFO_INDEX_STRUCT = struct.Struct("<HHIII")

assert _SFO_HDR_STRUCT.size == SFO_HEADER_SIZE
assert _SFO_INDEX_STRUCT.size == SFO_INDEX_ENTRY_SIZE


@dataclass
class SfoHeader:
    magic: bytes
    version: int
    key_table_offset: int
    data_table_offset: int
    entries: int


@dataclass
class SfoParam:
    index: int
    key: str
    fmt: int
    param_length: int
    param_max_length: int
    start: int
    end: int
    raw: bytes

    @property
    def text(self) -> str:
        return self.raw.decode("utf-8", errors="replace")

    @property
    def value(self) -> Union[int, str]:
        """Typed view of the raw bytes: int for int32 params, string otherwise."""
        if self.fmt == FMT_INT32 and len(self.raw) == 4:
            return int.from_bytes(self.raw, "little")
        return self.text.rstrip("\x00")


@dataclass
class SfoRecord:
    header: SfoHeader
    params: List[SfoParam] = field(default_factory=list)


def read_header(buf: bytes) -> SfoHeader:
    if len(buf) < _SFO_HDR_STRUCT.size:
        raise MalformedRecord(f"Record too short for header ({len(buf)} bytes)")
    magic, version, key_off, data_off, entries = _SFO_HDR_STRUCT.unpack_from(buf, 0)
    if magic != SFO_MAGIC:
        raise BadMagic(f"Bad SFO magic {magic!r}")
    return SfoHeader(
        magic=magic,
        version=version,
        key_table_offset=key_off,
        data_table_offset=data_off,
        entries=entries,
    )


def parse_sfo(buf: bytes) -> SfoRecord:
    """Parse the structure of one record.

    Raises:
        BadMagic: The signature does not match.
        MalformedRecord: Header offsets or the index table fall outside the buffer.
    """
    header = read_header(buf)
    size = len(buf)
    log.debug("HEADER: %s", header)
    if header.entries < 0:
        raise MalformedRecord(f"Negative entry count {header.entries}")
    if not (0 <= header.key_table_offset <= header.data_table_offset <= size):
        raise MalformedRecord(
            f"Table offsets out of range: keys={header.key_table_offset} "
            f"data={header.data_table_offset} size={size}"
        )

    key_table = bytes(buf[header.key_table_offset : header.data_table_offset]).rstrip(b"\x00")
    keys = key_table.split(b"\x00")
    # The format has no redundancy between the two counts; use what both agree on
    count = min(len(keys), header.entries)
    if count != header.entries:
        log.debug("Key table holds %d keys, header declares %d", len(keys), header.entries)

    index_end = SFO_HEADER_SIZE + count * SFO_INDEX_ENTRY_SIZE
    if index_end > size:
        raise MalformedRecord(f"Index table truncated ({index_end} > {size})")

    record = SfoRecord(header=header)
    for i in range(count):
        key_off, fmt, plen, pmax, data_off = _SFO_INDEX_STRUCT.unpack_from(
            buf, SFO_HEADER_SIZE + i * SFO_INDEX_ENTRY_SIZE
        )
        # Clamp a truncated value to the buffer end instead of dropping the record
        start = min(header.data_table_offset + data_off, size)
        end = min(start + plen, size)
        record.params.append(
            SfoParam(
                index=i,
                key=keys[i].decode("utf-8", errors="replace"),
                fmt=fmt,
                param_length=plen,
                param_max_length=pmax,
                start=start,
                end=end,
                raw=bytes(buf[start:end]),
            )
        )
    return record


def decode_params(params: List[SfoParam]) -> Dict[str, str]:
    m: Dict[str, str] = {KEY_REGION: DEFAULT_REGION}
    for p in params:
        m[p.key] = safe_string(p.text)
        log.debug("[%d] (%d-%d) '%s' -> '%s'", p.index, p.start, p.end, p.key, m[p.key])
        tid = m.get(KEY_TITLE_ID)
        if tid is not None:
            region = lookup_region(tid)
            if region is not None:
                m[KEY_REGION] = region
    return m


def decode_sfo(buf: bytes) -> Dict[str, str]:
    """Decode one raw record into a key -> sanitized value mapping.

    The result always holds ``REGION`` ("UNK" unless ``TITLE_ID`` maps to a
    known prefix). A buffer that is not a well-formed record yields only that
    default entry; it is never an error for the caller.
    """
    try:
        record = parse_sfo(buf)
    except MalformedRecord as exc:
        log.debug("Ignoring record: %s", exc)
        return {KEY_REGION: DEFAULT_REGION}
    return decode_params(record.params)
