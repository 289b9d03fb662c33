"""In-memory table of crawled documents, indexed by document id.

Binary file layout::

    <float32 avg_len>
    repeated: <uint64 start offset> <uint32 number of terms> <url bytes> <0x00>

All numbers are little-endian.
"""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

_AVG = struct.Struct("<f")
_RECORD = struct.Struct("<QI")


def _f32(x: float) -> float:
    return struct.unpack("<f", struct.pack("<f", x))[0]


@dataclass
class DocItem:
    """One document: where it starts in the collection, its length and URL."""

    start_off: int
    length: int
    url: str


class DocTable:
    """Documents in the order they were parsed; the position is the doc id."""

    def __init__(self) -> None:
        self._items: list[DocItem] = []
        self.total_len = 0
        self.avg_len = 0.0

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, doc_id: int) -> DocItem:
        return self._items[doc_id]

    def __iter__(self) -> Iterator[DocItem]:
        return iter(self._items)

    def append_doc(self, offset: int, length: int, url: str) -> None:
        """Add a document and count its terms in the collection total."""
        self.total_len += length
        self._items.append(DocItem(offset, length, url))

    def compute_avg_len(self) -> float:
        """Set and return the average number of terms per document."""
        if not self._items:
            raise ValueError("cannot average over an empty document table")
        self.avg_len = _f32(self.total_len / len(self._items))
        return self.avg_len

    def clear(self, keep_statistics: bool = False) -> None:
        """Drop all documents, keeping the totals if ``keep_statistics``."""
        if not keep_statistics:
            self.total_len = 0
            self.avg_len = 0.0
        self._items.clear()

    def read(self, stream: BinaryIO) -> None:
        """Append every document stored in ``stream`` and load its average length.

        A trailing incomplete record is ignored.
        """
        data = stream.read()
        if len(data) < _AVG.size:
            raise EOFError("document table has no header")
        (self.avg_len,) = _AVG.unpack_from(data, 0)
        pos = _AVG.size
        while pos + _RECORD.size <= len(data):
            offset, length = _RECORD.unpack_from(data, pos)
            url_start = pos + _RECORD.size
            url_end = data.find(b"\0", url_start)
            if url_end < 0:
                break
            url = data[url_start:url_end].decode("utf-8", "surrogateescape")
            self.append_doc(offset, length, url)
            pos = url_end + 1

    def write(self, stream: BinaryIO) -> None:
        """Write the average length followed by every document."""
        stream.write(_AVG.pack(self.avg_len))
        for item in self._items:
            url = item.url.encode("utf-8", "surrogateescape")
            if b"\0" in url:
                raise ValueError(f"url contains a NUL byte: {item.url!r}")
            stream.write(_RECORD.pack(item.start_off, item.length))
            stream.write(url + b"\0")