import pytest

from impactindex.postings import Posting, PostingsBuffer, count_tokens


def test_count_tokens():
    assert count_tokens(["a", "b", "a"]) == {"a": 2, "b": 1}


def test_items_sorted_and_grouped():
    buf = PostingsBuffer(10_000)
    buf.add_postings(0, {"zeta": 1, "alpha": 2})
    buf.add_postings(1, {"alpha": 3})
    items = list(buf.items())
    assert [term for term, _ in items] == ["alpha", "zeta"]
    assert items[0][1] == [Posting(0, 2), Posting(1, 3)]
    assert items[1][1] == [Posting(0, 1)]


def test_size_grows_and_clear_resets():
    buf = PostingsBuffer(10_000)
    assert buf.is_empty()
    buf.add_postings(0, {"a": 1})
    first = buf.size
    buf.add_postings(1, {"a": 1})
    assert buf.size > first
    buf.clear()
    assert buf.is_empty()
    assert buf.size == 0


def test_is_full():
    buf = PostingsBuffer(1_000_000)
    assert not buf.is_full()
    assert buf.is_full(1_000_000)
    assert PostingsBuffer(0).is_full()


def test_capacity_percent_bounds():
    buf = PostingsBuffer(100_000)
    assert buf.capacity_percent() == 0.0
    buf.add_postings(0, {"x": 1, "y": 2})
    assert 0.0 < buf.capacity_percent() < 100.0


def test_capacity_percent_without_capacity_raises():
    with pytest.raises(ValueError):
        PostingsBuffer(0).capacity_percent()


def test_becomes_full_after_many_postings():
    buf = PostingsBuffer(2_000)
    doc_id = 0
    while not buf.is_full():
        buf.add_postings(doc_id, count_tokens(["w", "v"]))
        doc_id += 1
    assert buf.size >= 2_000
    assert doc_id > 1