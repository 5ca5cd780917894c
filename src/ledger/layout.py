# src/ledger/layout.py — v1
"""Byte layout of the config account's index-line array.

The config account stores a header, a 4-byte line count, then one
fixed-width line per item index::

    u32le name_len | name (32 bytes) | u32le uri_len | uri (200 bytes)

Strings are zero-padded to their maximum width.
"""

from __future__ import annotations

import struct

from assetledger.ledger.models import IndexLine

MAX_NAME_LENGTH = 32
MAX_URI_LENGTH = 200
MAX_SYMBOL_LENGTH = 10
MAX_CREATOR_LEN = 32 + 1 + 1
MAX_CREATOR_LIMIT = 5

CONFIG_LINE_SIZE = 4 + MAX_NAME_LENGTH + 4 + MAX_URI_LENGTH

CONFIG_ARRAY_START = (
    8  # account discriminator
    + 32  # authority
    + 4 + 6  # uuid
    + 4 + MAX_SYMBOL_LENGTH  # symbol
    + 2  # seller fee basis points
    + 1 + 4 + MAX_CREATOR_LIMIT * MAX_CREATOR_LEN  # creators
    + 8  # max supply
    + 1  # is mutable
    + 1  # retain authority
    + 4  # max number of lines
)

_U32 = struct.Struct("<I")


class LayoutError(ValueError):
    """Raised when a config line cannot be decoded."""


def line_offset(index: int) -> int:
    """Byte offset of the line for ``index`` inside the account data."""
    if index < 0:
        raise ValueError(f"index must be >= 0, got {index}")
    return CONFIG_ARRAY_START + 4 + CONFIG_LINE_SIZE * index


def slice_line(account_data: bytes, index: int) -> bytes:
    """Cut the fixed-width record for ``index`` out of the account data."""
    start = line_offset(index)
    return bytes(account_data[start:start + CONFIG_LINE_SIZE])


def _read_string(record: bytes, offset: int, width: int) -> str:
    (length,) = _U32.unpack_from(record, offset)
    raw = record[offset + 4:offset + 4 + min(length, width)]
    try:
        return raw.decode("utf-8").rstrip("\x00")
    except UnicodeDecodeError as e:
        raise LayoutError(f"Invalid UTF-8 at offset {offset}") from e


def decode_config_line(record: bytes) -> IndexLine:
    """Decode one config line into ``IndexLine``.

    Raises:
        LayoutError: If the record is short or not valid UTF-8.
    """
    if len(record) < CONFIG_LINE_SIZE:
        raise LayoutError(
            f"Config line is {len(record)} bytes, expected {CONFIG_LINE_SIZE}"
        )
    name = _read_string(record, 0, MAX_NAME_LENGTH)
    uri = _read_string(record, 4 + MAX_NAME_LENGTH, MAX_URI_LENGTH)
    return IndexLine(uri=uri, name=name)


def _pad(value: str, width: int) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) > width:
        raise LayoutError(f"{value!r} exceeds {width} bytes")
    return _U32.pack(width) + raw.ljust(width, b"\x00")


def encode_config_line(line: IndexLine) -> bytes:
    """Encode ``IndexLine`` the way the program stores it."""
    return _pad(line.name, MAX_NAME_LENGTH) + _pad(line.uri, MAX_URI_LENGTH)


def validate_index_line(line: IndexLine) -> None:
    """Raise LayoutError if ``line`` does not fit the fixed-width record."""
    _pad(line.name, MAX_NAME_LENGTH)
    _pad(line.uri, MAX_URI_LENGTH)
