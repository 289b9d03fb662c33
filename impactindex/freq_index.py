"""Per-term inverted lists of (doc id, frequency), stored in compressed blocks.

Lexicon record::

    <term bytes> <0x00> <uint64 start offset> <uint32 n_blocks> <uint32 n_docs>

Index file, per term: a run of blocks followed by one 0x00 byte::

    <uint32 last_did> <uint16 did_bsize> <uint16 freq_bsize>
    <did_bsize bytes of var-byte doc id gaps> <freq_bsize bytes of var-byte frequencies>

Doc ids in a block are stored as gaps from the last doc id of the previous
block (0 before the first block).
"""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

from . import varbytes
from .postings import Posting

DEFAULT_BLOCK_SIZE = 128

_LEX = struct.Struct("<QII")
_HEADER = struct.Struct("<IHH")
_U64_MASK = 0xFFFFFFFFFFFFFFFF
_U16_MAX = 0xFFFF
_UNSET = -1


@dataclass
class TermInfoFreq:
    """Lexicon entry: where a term's list starts and how large it is."""

    start_off: int = _UNSET
    n_blocks: int = 0
    n_docs: int = 0


@dataclass(frozen=True)
class BlockMetaFreq:
    last_did: int
    did_bsize: int
    freq_bsize: int


def _read_cstring(stream: BinaryIO) -> bytes | None:
    out = bytearray()
    while True:
        ch = stream.read(1)
        if not ch:
            return None
        if ch == b"\0":
            return bytes(out)
        out += ch


def read_lexicon_freq(stream: BinaryIO) -> tuple[str, TermInfoFreq]:
    """Read the next lexicon record; raise ``EOFError`` at the end of the file."""
    raw = _read_cstring(stream)
    if raw is None:
        raise EOFError("end of lexicon")
    data = stream.read(_LEX.size)
    if len(data) < _LEX.size:
        raise EOFError("lexicon record is truncated")
    start_off, n_blocks, n_docs = _LEX.unpack(data)
    if start_off == _U64_MASK:
        start_off = _UNSET
    term = raw.decode("utf-8", "surrogateescape")
    return term, TermInfoFreq(start_off, n_blocks, n_docs)


def write_lexicon_freq(stream: BinaryIO, term: str, info: TermInfoFreq) -> None:
    """Write one lexicon record."""
    raw = term.encode("utf-8", "surrogateescape")
    if b"\0" in raw:
        raise ValueError(f"term contains a NUL byte: {term!r}")
    stream.write(raw + b"\0")
    stream.write(_LEX.pack(info.start_off & _U64_MASK, info.n_blocks, info.n_docs))


class FreqIndex:
    """The inverted list of one term, held as compressed blocks in memory.

    Postings are appended in ascending doc id order and packed into blocks of
    ``block_size``. Blocks can be written out and dropped with :meth:`clear`
    while the list is still growing.
    """

    def __init__(
        self,
        term: str,
        info: TermInfoFreq | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
    ) -> None:
        if block_size < 1:
            raise ValueError("block size must be positive")
        self.term = term
        self.info = info if info is not None else TermInfoFreq()
        self.block_size = block_size
        self.bytes = bytearray()
        self.blocks: list[BlockMetaFreq] = []
        self.total_blocks = 0
        self._base_did = 0
        self._did_cache: list[int] = []
        self._freq_cache: list[int] = []
        self._terminated = False

    def _last_block_did(self) -> int:
        return self.blocks[-1].last_did if self.blocks else self._base_did

    def _reload_last_block(self) -> None:
        if not self.blocks:
            return
        last = self.blocks[-1]
        freq_start = len(self.bytes) - last.freq_bsize
        did_start = freq_start - last.did_bsize
        gaps = varbytes.decompress(self.bytes, did_start, last.did_bsize)
        if len(gaps) >= self.block_size:
            return
        pre = self.blocks[-2].last_did if len(self.blocks) > 1 else self._base_did
        self._did_cache = varbytes.undifference(pre, gaps)
        self._freq_cache = varbytes.decompress(self.bytes, freq_start, last.freq_bsize)
        del self.bytes[did_start:]
        self.blocks.pop()
        self.total_blocks -= 1

    def _flush(self) -> None:
        if not self._did_cache:
            return
        gaps = varbytes.difference(self._last_block_did(), self._did_cache)
        did_bytes = varbytes.compress(gaps)
        freq_bytes = varbytes.compress(self._freq_cache)
        if len(did_bytes) > _U16_MAX or len(freq_bytes) > _U16_MAX:
            raise ValueError("block too large for its 16-bit size fields")
        self.bytes += did_bytes
        self.bytes += freq_bytes
        self.blocks.append(BlockMetaFreq(self._did_cache[-1], len(did_bytes), len(freq_bytes)))
        self.total_blocks += 1
        self._did_cache = []
        self._freq_cache = []

    def append(self, posting: Posting) -> None:
        """Add a posting; a partly filled last block is reopened first."""
        if not self._did_cache:
            self._reload_last_block()
        prev = self._did_cache[-1] if self._did_cache else self._last_block_did()
        if posting.doc_id < prev:
            raise ValueError(
                f"doc id {posting.doc_id} comes after {prev}; postings must ascend"
            )
        self._did_cache.append(posting.doc_id)
        self._freq_cache.append(posting.frequency)
        self.info.n_docs += 1
        if len(self._did_cache) >= self.block_size:
            self._flush()

    def finish(self) -> None:
        """Pack any pending postings into a final, possibly short, block."""
        self._flush()

    def postings(self) -> Iterator[Posting]:
        """Yield the postings held in memory, pending ones last."""
        pre = self._base_did
        pos = 0
        for meta in self.blocks:
            gaps = varbytes.decompress(self.bytes, pos, meta.did_bsize)
            pos += meta.did_bsize
            freqs = varbytes.decompress(self.bytes, pos, meta.freq_bsize)
            pos += meta.freq_bsize
            for doc_id, freq in zip(varbytes.undifference(pre, gaps), freqs):
                yield Posting(doc_id, freq)
            pre = meta.last_did
        for doc_id, freq in zip(self._did_cache, self._freq_cache):
            yield Posting(doc_id, freq)

    def read_next_block(self, stream: BinaryIO) -> None:
        """Read one block from the current position of ``stream``."""
        header = stream.read(_HEADER.size)
        if len(header) < _HEADER.size:
            raise EOFError("block header is truncated")
        last_did, did_bsize, freq_bsize = _HEADER.unpack(header)
        body = stream.read(did_bsize + freq_bsize)
        if len(body) < did_bsize + freq_bsize:
            raise EOFError("block body is truncated")
        self.bytes += body
        self.blocks.append(BlockMetaFreq(last_did, did_bsize, freq_bsize))
        self.total_blocks += 1

    def read_blocks(self, stream: BinaryIO) -> int:
        """Read the term's remaining blocks and its terminator; return how many were read."""
        if self._terminated:
            return 0
        if self.total_blocks == 0 and self.info.start_off != _UNSET:
            stream.seek(self.info.start_off)
        count = 0
        while self.total_blocks < self.info.n_blocks:
            self.read_next_block(stream)
            count += 1
        if stream.read(1) != b"\0":
            raise ValueError(f"inverted list of {self.term!r} lacks its terminator")
        self._terminated = True
        return count

    def write(self, stream: BinaryIO, end: bool = False) -> None:
        """Write the blocks in memory; with ``end`` also close the list."""
        if end:
            self.finish()
        if self.info.start_off == _UNSET:
            self.info.start_off = stream.tell()
        pos = 0
        for meta in self.blocks:
            stream.write(_HEADER.pack(meta.last_did, meta.did_bsize, meta.freq_bsize))
            size = meta.did_bsize + meta.freq_bsize
            stream.write(self.bytes[pos:pos + size])
            pos += size
        if end:
            self.info.n_blocks = self.total_blocks
            stream.write(b"\0")

    def clear(self) -> None:
        """Drop the blocks held in memory, keeping the position in the list."""
        self._base_did = self._last_block_did()
        self.bytes.clear()
        self.blocks.clear()