"""Input encoding normalization.

``go test`` output captured on Windows (PowerShell redirection in particular)
is frequently UTF-16, with or without a byte-order mark.  Everything
downstream expects UTF-8, so UTF-16 input is transcoded up front and anything
else is passed through untouched.
"""

from __future__ import annotations

import codecs
import io
import logging
from typing import TYPE_CHECKING

from go_test_reader.parsing.errors import LogReadError

if TYPE_CHECKING:
    from typing import BinaryIO

logger = logging.getLogger(__name__)

UTF8 = "utf-8"
UTF16_LE = "utf-16-le"
UTF16_BE = "utf-16-be"

_SNIFF_SIZE = 1024
_HEURISTIC_SAMPLE = 100
_MIN_HEURISTIC_BYTES = 4

_BOMS = {
    codecs.BOM_UTF16_LE: UTF16_LE,
    codecs.BOM_UTF16_BE: UTF16_BE,
}


def _read(stream: BinaryIO, size: int = -1) -> bytes:
    try:
        return stream.read(size)
    except OSError as exc:
        raise LogReadError(f"error reading test log: {exc}") from exc


def _mostly_null(window: bytes, offset: int) -> bool:
    """Return True when the bytes at *offset*, *offset* + 2, ... are mostly zero.

    ASCII text encoded as UTF-16 has a zero high byte in every code unit,
    i.e. at odd indexes for little-endian and even indexes for big-endian.
    """
    if len(window) < _MIN_HEURISTIC_BYTES:
        return False
    sample = window[:_HEURISTIC_SAMPLE]
    nulls = sample[offset::2].count(0)
    return nulls > len(sample) / 4


def detect_encoding(window: bytes) -> str:
    """Guess the encoding of a log from its first bytes."""
    for bom, encoding in _BOMS.items():
        if window.startswith(bom):
            return encoding
    if _mostly_null(window, 1):
        return UTF16_LE
    if _mostly_null(window, 0):
        return UTF16_BE
    return UTF8


def transcode_utf16(data: bytes, encoding: str) -> bytes:
    """Convert UTF-16 *data* to UTF-8.

    A trailing odd byte is dropped, as are unpaired surrogates.
    """
    if len(data) % 2:
        data = data[:-1]
    return data.decode(encoding, errors="ignore").encode(UTF8)


def normalize_encoding(stream: BinaryIO) -> BinaryIO:
    """Consume *stream* and return a seekable UTF-8 view of its content."""
    window = _read(stream, _SNIFF_SIZE)
    encoding = detect_encoding(window)

    if encoding == UTF8:
        return io.BytesIO(window + _read(stream))

    if window[:2] in _BOMS:
        window = window[2:]
    logger.debug("Detected %s input, transcoding to UTF-8", encoding)
    return io.BytesIO(transcode_utf16(window + _read(stream), encoding))
