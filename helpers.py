from __future__ import annotations

import struct
import zipfile
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

from sforename.constants import FMT_INT32, FMT_UTF8, SFO_MAGIC


Value = Union[str, int, bytes]


def build_sfo(params: Union[Mapping[str, Value], Sequence[Tuple[str, Value]]], *, magic: bytes = SFO_MAGIC) -> bytes:
    """Encode a PARAM.SFO record the way the console tools lay it out."""
    items = list(params.items()) if isinstance(params, Mapping) else list(params)

    key_table = bytearray()
    key_offsets = []
    for key, _ in items:
        key_offsets.append(len(key_table))
        key_table += key.encode("utf-8") + b"\x00"
    while len(key_table) % 4:
        key_table += b"\x00"

    data_table = bytearray()
    index = bytearray()
    for (key, value), key_off in zip(items, key_offsets):
        if isinstance(value, int):
            fmt, raw = FMT_INT32, struct.pack("<I", value)
        elif isinstance(value, bytes):
            fmt, raw = FMT_UTF8, value
        else:
            fmt, raw = FMT_UTF8, value.encode("utf-8") + b"\x00"
        max_len = (len(raw) + 3) & ~3
        index += struct.pack("<HHIII", key_off, fmt, len(raw), max_len, len(data_table))
        data_table += raw.ljust(max_len, b"\x00")

    key_table_offset = 20 + len(index)
    data_table_offset = key_table_offset + len(key_table)
    header = struct.pack("<4sIIII", magic, 0x0101, key_table_offset, data_table_offset, len(items))
    return header + bytes(index) + bytes(key_table) + bytes(data_table)


def build_zip(path: Path, members: Iterable[Tuple[str, bytes]], *, compression: int = zipfile.ZIP_DEFLATED) -> Path:
    with zipfile.ZipFile(str(path), "w", compression=compression) as zf:
        for name, data in members:
            zf.writestr(name, data)
    return path


def game_record(
    title: str = "Game",
    app_ver: Optional[str] = "01.00",
    version: str = "1.00",
    title_id: str = "PCSE00001",
    category: str = "gd",
) -> bytes:
    params = [("CATEGORY", category), ("PARENTAL_LEVEL", 1)]
    if app_ver is not None:
        params.insert(0, ("APP_VER", app_ver))
    params += [("TITLE", title), ("TITLE_ID", title_id), ("VERSION", version)]
    return build_sfo(params)


def build_undecodable_name_zip(path: Path, data: bytes) -> Path:
    """Zip whose central directory flags its entry name as UTF-8 but holds 0xFF bytes."""
    marker = "éèê"  # non-ASCII, so zipfile sets the UTF-8 flag
    build_zip(path, [(f"sce_sys/{marker}/param.sfo", data)], compression=zipfile.ZIP_STORED)
    raw = path.read_bytes()
    encoded = marker.encode("utf-8")
    assert raw.count(encoded) == 2, "expected the name in the local header and the central directory"
    path.write_bytes(raw.replace(encoded, b"\xff" * len(encoded)))
    return path
