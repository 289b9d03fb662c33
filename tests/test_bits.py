import pytest

from impactindex.bits import BitReader, BitWriter, format_bits, map_unit, norm_unit


def test_eight_bit_blocks_roundtrip():
    data = bytearray()
    writer = BitWriter(data, 8)
    for value in (56, 3, 91, 20):
        writer.append(value)
    writer.end_byte()
    second_block = len(data)
    writer.append(21)
    writer.end_byte()

    assert bytes(data) == bytes([56, 3, 91, 20, 21])

    reader = BitReader(data, 8)
    reader.set_byte(0)
    assert [reader.read() for _ in range(4)] == [56, 3, 91, 20]
    reader.set_byte(second_block)
    assert reader.read() == 21


def test_six_bit_packing_layout():
    data = bytearray()
    writer = BitWriter(data, 6)
    writer.append(1)
    writer.append(2)
    assert bytes(data) == bytes([0x81, 0x00])


@pytest.mark.parametrize("bits", [3, 5, 6, 7, 10, 12, 13])
def test_roundtrip_various_widths(bits):
    values = [(i * 37 + 5) % (1 << bits) for i in range(50)]
    data = bytearray()
    writer = BitWriter(data, bits)
    for value in values:
        writer.append(value)
    assert len(data) == (len(values) * bits + 7) // 8

    reader = BitReader(data, bits)
    reader.set_byte(0)
    assert [reader.read() for _ in values] == values


def test_blocks_start_on_fresh_byte():
    data = bytearray()
    writer = BitWriter(data, 5)
    writer.append(31)
    writer.end_byte()
    start = len(data)
    writer.append(17)
    writer.append(9)
    writer.end_byte()
    assert start == 1

    reader = BitReader(data, 5)
    reader.set_byte(start)
    assert [reader.read(), reader.read()] == [17, 9]
    reader.set_byte(0)
    assert reader.read() == 31


def test_append_byte_then_codes():
    data = bytearray()
    writer = BitWriter(data, 4)
    writer.append_byte(200)
    writer.append(3)
    writer.append(9)
    reader = BitReader(data, 4)
    reader.set_byte(0)
    assert reader.next_byte() == 200
    assert reader.read() == 3
    assert reader.read() == 9


def test_read_past_end_raises():
    data = bytearray()
    writer = BitWriter(data, 8)
    writer.append(7)
    reader = BitReader(data, 8)
    assert reader.read() == 7
    with pytest.raises(EOFError):
        reader.read()


def test_set_byte_out_of_range():
    reader = BitReader(bytes([1, 2]), 8)
    with pytest.raises(IndexError):
        reader.set_byte(2)


def test_invalid_width():
    with pytest.raises(ValueError):
        BitWriter(bytearray(), 0)


@pytest.mark.parametrize("bits,sub", [(8, 0), (8, 1), (5, 0), (5, 1), (11, 0)])
def test_map_norm_inverse(bits, sub):
    top = (1 << bits) - sub
    assert [map_unit(norm_unit(q, bits, sub), bits, sub) for q in range(top)] == list(range(top))


@pytest.mark.parametrize("bits,sub", [(6, 0), (6, 1), (9, 0)])
def test_norm_unit_range(bits, sub):
    values = [norm_unit(q, bits, sub) for q in range((1 << bits) - sub)]
    assert values[0] == 0.0
    assert all(0.0 <= v < 1.0 for v in values)
    assert values == sorted(values)


def test_format_bits():
    assert format_bits(bytes([5, 255, 0]), 0, 2) == "00000101 11111111"