"""Block-compressed inverted lists, BM25 impact scores and score quantizers."""

__version__ = "0.1.0"

__all__ = [
    "bits",
    "doctable",
    "freq_index",
    "postings",
    "quantizers",
    "score_index",
    "varbytes",
]