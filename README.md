# impactindex

Building blocks for a block-compressed inverted index: variable-byte and
bit-packed coding, a document table, a postings buffer, per-term inverted
lists holding either term frequencies or precomputed BM25 impact scores,
and linear, logarithmic and adaptive-float score quantizers.

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `impactindex.varbytes` – `compress` and `decompress` for variable-byte
  coded unsigned 32-bit integers, `difference` and `undifference` for gap
  coding of ascending doc ids.
- `impactindex.bits` – `BitWriter` and `BitReader` for fixed-width codes
  packed least-significant bit first, `map_unit` / `norm_unit` for mapping
  values in [0, 1] to codes and back, and `format_bits` for printing bytes.
- `impactindex.quantizers` – `LinearQuantizer`, `LogQuantizer` (separate
  log2 ranges for positive and negative values) and `AdaptiveFloatQuantizer`
  (one exponent bias byte per block of codes). The first two can store their
  parameters as little-endian float32 with `write` and load them with `read`.
- `impactindex.doctable` – `DocTable` of `DocItem` records (start offset,
  number of terms, URL), with `compute_avg_len` and a binary `read` / `write`.
- `impactindex.postings` – `Posting`, `PostScore`, `count_tokens` and
  `PostingsBuffer`, which groups postings by term and tracks an estimated
  memory size against a capacity.
- `impactindex.freq_index` – `FreqIndex`, a term's list of
  `(doc_id, frequency)` postings in var-byte blocks, with lexicon records
  read and written by `read_lexicon_freq` / `write_lexicon_freq`.
- `impactindex.score_index` – `ScoreIndex`, a term's list of
  `(doc_id, score)` postings with doc ids in one file and block headers plus
  float32 scores in a second, `read_lexicon_score` / `write_lexicon_score`,
  and `bm25_score`.

## Example

```python
from impactindex.freq_index import FreqIndex, read_lexicon_freq, write_lexicon_freq
from impactindex.postings import Posting, PostingsBuffer, count_tokens

buf = PostingsBuffer(capacity=64 * 1024 * 1024)
buf.add_postings(0, count_tokens(["apple", "pear", "apple"]))
buf.add_postings(1, count_tokens(["apple"]))

with open("index.bin", "wb") as idx_file, open("lexicon.bin", "wb") as lex_file:
    for term, postings in buf.items():
        index = FreqIndex(term)
        for posting in postings:
            index.append(posting)
        index.write(idx_file, end=True)
        write_lexicon_freq(lex_file, term, index.info)

with open("index.bin", "rb") as idx_file, open("lexicon.bin", "rb") as lex_file:
    term, info = read_lexicon_freq(lex_file)
    index = FreqIndex(term, info)
    index.read_blocks(idx_file)
    print(term, list(index.postings()))   # apple [Posting(0, 2), Posting(1, 1)]
```

Quantizing a score:

```python
from impactindex.quantizers import LinearQuantizer

q = LinearQuantizer(8)
for score in (-1.65, 0.67, 2.85):
    q.update_minmax(score)
code = q.quantize(0.67)
approx = q.dequantize(code)
```

## What it does not do

The package has no command-line program. It does not tokenize or crawl
documents, does not merge partial index files into one index, and has no
index type that stores quantized scores on disk; the quantizers work on
values and bit streams you pass them. There is no query processing.