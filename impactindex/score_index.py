"""Per-term inverted lists of (doc id, impact score) spread over two files.

Lexicon record::

    <term bytes> <0x00> <uint64 start offset> <uint64 start offset2>
    <uint32 n_blocks> <uint32 n_docs>

The index file holds the var-byte doc id gaps of each block. The score file
holds, per block, the block header followed by the scores::

    <uint32 last_did> <uint16 did_bsize> <uint16 score_bsize> <score_bsize bytes of float32>

Each term's run of blocks is closed by one 0x00 byte in each file written.
All numbers are little-endian.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

from . import varbytes
from .postings import PostScore

DEFAULT_BLOCK_SIZE = 128
K1 = 1.2
B = 0.75

_LEX = struct.Struct("<QQII")
_HEADER = struct.Struct("<IHH")
_FLOAT_SIZE = 4
_U32_MASK = 0xFFFFFFFF
_U64_MASK = 0xFFFFFFFFFFFFFFFF
_U16_MAX = 0xFFFF
_UNSET = -1


def _f32(x: float) -> float:
    return struct.unpack("<f", struct.pack("<f", x))[0]


def bm25_score(
    frequency: int, doc_len: int, avg_len: float, term_docs: int, total_docs: int
) -> float:
    """Okapi BM25 impact of a term occurring ``frequency`` times in one document."""
    if avg_len == 0:
        raise ValueError("average document length is zero")
    k1 = _f32(K1)
    b = _f32(B)
    norm = _f32(_f32(1.0 - b) + _f32(b * _f32(doc_len / avg_len)))
    k = _f32(k1 * norm)
    rest = (total_docs - term_docs) & _U32_MASK
    idf = _f32(_f32(float(rest) + 0.5) / _f32(float(term_docs) + 0.5))
    idf = _f32(math.log(idf))
    weight = _f32(_f32((k1 + 1.0) * frequency) / _f32(k + frequency))
    return _f32(idf * weight)


@dataclass
class TermInfoScore:
    """Lexicon entry: where a term's list starts in both files and its size."""

    start_off: int = _UNSET
    start_off2: int = _UNSET
    n_blocks: int = 0
    n_docs: int = 0


@dataclass(frozen=True)
class BlockMetaScore:
    last_did: int
    did_bsize: int
    score_bsize: int


def _read_cstring(stream: BinaryIO) -> bytes | None:
    out = bytearray()
    while True:
        ch = stream.read(1)
        if not ch:
            return None
        if ch == b"\0":
            return bytes(out)
        out += ch


def _offset_in(raw: int) -> int:
    return _UNSET if raw == _U64_MASK else raw


def read_lexicon_score(stream: BinaryIO) -> tuple[str, TermInfoScore]:
    """Read the next lexicon record; raise ``EOFError`` at the end of the file."""
    raw = _read_cstring(stream)
    if raw is None:
        raise EOFError("end of lexicon")
    data = stream.read(_LEX.size)
    if len(data) < _LEX.size:
        raise EOFError("lexicon record is truncated")
    start_off, start_off2, n_blocks, n_docs = _LEX.unpack(data)
    term = raw.decode("utf-8", "surrogateescape")
    return term, TermInfoScore(_offset_in(start_off), _offset_in(start_off2), n_blocks, n_docs)


def write_lexicon_score(stream: BinaryIO, term: str, info: TermInfoScore) -> None:
    """Write one lexicon record."""
    raw = term.encode("utf-8", "surrogateescape")
    if b"\0" in raw:
        raise ValueError(f"term contains a NUL byte: {term!r}")
    stream.write(raw + b"\0")
    stream.write(
        _LEX.pack(
            info.start_off & _U64_MASK,
            info.start_off2 & _U64_MASK,
            info.n_blocks,
            info.n_docs,
        )
    )


class ScoreIndex:
    """The inverted list of one term with uncompressed, precomputed scores.

    Postings are ``(doc_id, score)`` pairs appended in ascending doc id order.
    ``info.n_docs`` is left to the caller, since it is an input of the score.
    """

    def __init__(
        self,
        term: str,
        info: TermInfoScore | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
    ) -> None:
        if block_size < 1:
            raise ValueError("block size must be positive")
        self.term = term
        self.info = info if info is not None else TermInfoScore()
        self.block_size = block_size
        self.bytes = bytearray()
        self.scores: list[float] = []
        self.blocks: list[BlockMetaScore] = []
        self.total_blocks = 0
        self._base_did = 0
        self._did_cache: list[int] = []
        self._score_cache: list[float] = []
        self._terminated = False

    def _last_block_did(self) -> int:
        return self.blocks[-1].last_did if self.blocks else self._base_did

    def _flush(self) -> None:
        if not self._did_cache:
            return
        gaps = varbytes.difference(self._last_block_did(), self._did_cache)
        did_bytes = varbytes.compress(gaps)
        score_bsize = _FLOAT_SIZE * len(self._score_cache)
        if len(did_bytes) > _U16_MAX or score_bsize > _U16_MAX:
            raise ValueError("block too large for its 16-bit size fields")
        self.bytes += did_bytes
        self.scores.extend(self._score_cache)
        self.blocks.append(BlockMetaScore(self._did_cache[-1], len(did_bytes), score_bsize))
        self.total_blocks += 1
        self._did_cache = []
        self._score_cache = []

    def append(self, posting: PostScore) -> None:
        """Add a ``(doc_id, score)`` posting."""
        doc_id, score = posting
        prev = self._did_cache[-1] if self._did_cache else self._last_block_did()
        if doc_id < prev:
            raise ValueError(f"doc id {doc_id} comes after {prev}; postings must ascend")
        self._did_cache.append(doc_id)
        self._score_cache.append(_f32(score))
        if len(self._did_cache) >= self.block_size:
            self._flush()

    def finish(self) -> None:
        """Pack any pending postings into a final, possibly short, block."""
        self._flush()

    def postings(self) -> Iterator[PostScore]:
        """Yield the postings held in memory, pending ones last."""
        pre = self._base_did
        pos = 0
        score_pos = 0
        for meta in self.blocks:
            gaps = varbytes.decompress(self.bytes, pos, meta.did_bsize)
            pos += meta.did_bsize
            count = meta.score_bsize // _FLOAT_SIZE
            scores = self.scores[score_pos:score_pos + count]
            score_pos += count
            for doc_id, score in zip(varbytes.undifference(pre, gaps), scores):
                yield PostScore(doc_id, score)
            pre = meta.last_did
        for doc_id, score in zip(self._did_cache, self._score_cache):
            yield PostScore(doc_id, score)

    def read_next_block(self, stream: BinaryIO, stream2: BinaryIO) -> None:
        """Read one block: doc ids from ``stream``, header and scores from ``stream2``."""
        header = stream2.read(_HEADER.size)
        if len(header) < _HEADER.size:
            raise EOFError("block header is truncated")
        last_did, did_bsize, score_bsize = _HEADER.unpack(header)
        if score_bsize % _FLOAT_SIZE:
            raise ValueError(f"score block of {score_bsize} bytes is not whole floats")
        did_bytes = stream.read(did_bsize)
        if len(did_bytes) < did_bsize:
            raise EOFError("doc id block is truncated")
        score_bytes = stream2.read(score_bsize)
        if len(score_bytes) < score_bsize:
            raise EOFError("score block is truncated")
        self.bytes += did_bytes
        count = score_bsize // _FLOAT_SIZE
        self.scores.extend(struct.unpack(f"<{count}f", score_bytes))
        self.blocks.append(BlockMetaScore(last_did, did_bsize, score_bsize))
        self.total_blocks += 1

    def read_blocks(self, stream: BinaryIO, stream2: BinaryIO) -> int:
        """Read the term's remaining blocks and both terminators; return how many were read."""
        if self._terminated:
            return 0
        if self.total_blocks == 0:
            if self.info.start_off != _UNSET:
                stream.seek(self.info.start_off)
            if self.info.start_off2 != _UNSET:
                stream2.seek(self.info.start_off2)
        count = 0
        while self.total_blocks < self.info.n_blocks:
            self.read_next_block(stream, stream2)
            count += 1
        if stream.read(1) != b"\0" or stream2.read(1) != b"\0":
            raise ValueError(f"inverted list of {self.term!r} lacks its terminator")
        self._terminated = True
        return count

    def write(
        self,
        stream: BinaryIO | None,
        stream2: BinaryIO,
        end: bool = False,
        write_did: bool = True,
    ) -> None:
        """Write the blocks in memory; doc ids go to ``stream`` only with ``write_did``."""
        if write_did and stream is None:
            raise ValueError("writing doc ids needs an index stream")
        if end:
            self.finish()
        if self.info.start_off2 == _UNSET:
            if write_did:
                self.info.start_off = stream.tell()
            self.info.start_off2 = stream2.tell()
        pos = 0
        score_pos = 0
        for meta in self.blocks:
            stream2.write(_HEADER.pack(meta.last_did, meta.did_bsize, meta.score_bsize))
            if write_did:
                stream.write(self.bytes[pos:pos + meta.did_bsize])
            pos += meta.did_bsize
            count = meta.score_bsize // _FLOAT_SIZE
            stream2.write(struct.pack(f"<{count}f", *self.scores[score_pos:score_pos + count]))
            score_pos += count
        if end:
            self.info.n_blocks = self.total_blocks
            if write_did:
                stream.write(b"\0")
            stream2.write(b"\0")

    def clear(self) -> None:
        """Drop the blocks held in memory, keeping the position in the list."""
        self._base_did = self._last_block_did()
        self.bytes.clear()
        self.scores.clear()
        self.blocks.clear()