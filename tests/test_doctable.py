import io
import struct

import pytest

from impactindex.doctable import DocItem, DocTable


def _table():
    table = DocTable()
    table.append_doc(0, 3, "http://a.example.com/")
    table.append_doc(120, 5, "http://b.example.com/page")
    return table


def test_append_and_index():
    table = _table()
    assert len(table) == 2
    assert table[1] == DocItem(120, 5, "http://b.example.com/page")
    assert table.total_len == 8


def test_compute_avg_len():
    table = _table()
    assert table.compute_avg_len() == 4.0
    assert table.avg_len == 4.0


def test_compute_avg_len_empty_raises():
    with pytest.raises(ValueError):
        DocTable().compute_avg_len()


def test_wire_format():
    table = DocTable()
    table.append_doc(10, 4, "u")
    table.compute_avg_len()
    out = io.BytesIO()
    table.write(out)
    expected = struct.pack("<f", 4.0) + struct.pack("<QI", 10, 4) + b"u\0"
    assert out.getvalue() == expected


def test_round_trip():
    table = _table()
    table.compute_avg_len()
    out = io.BytesIO()
    table.write(out)
    loaded = DocTable()
    loaded.read(io.BytesIO(out.getvalue()))
    assert list(loaded) == list(table)
    assert loaded.avg_len == table.avg_len
    assert loaded.total_len == table.total_len


def test_truncated_record_is_dropped():
    table = _table()
    table.compute_avg_len()
    out = io.BytesIO()
    table.write(out)
    data = out.getvalue()[:-3]
    loaded = DocTable()
    loaded.read(io.BytesIO(data))
    assert list(loaded) == [table[0]]


def test_read_without_header_raises():
    with pytest.raises(EOFError):
        DocTable().read(io.BytesIO(b"\x00"))


def test_clear_keeps_statistics():
    table = _table()
    table.compute_avg_len()
    table.clear(keep_statistics=True)
    assert len(table) == 0
    assert table.total_len == 8
    table.clear()
    assert table.total_len == 0
    assert table.avg_len == 0.0


def test_url_with_nul_rejected():
    table = DocTable()
    table.append_doc(0, 1, "bad\0url")
    with pytest.raises(ValueError):
        table.write(io.BytesIO())