import pytest

from lsmkv.blockmeta import BlockMeta


def create_test_metas():
    return [
        BlockMeta(0, "a100", "a199"),
        BlockMeta(100, "a200", "a299"),
        BlockMeta(200, "a300", "a399"),
    ]


def test_basic_encode_decode():
    original = create_test_metas()
    encoded = BlockMeta.encode_meta_to_slice(original)
    assert len(encoded) > 0

    decoded = BlockMeta.decode_meta_from_slice(encoded)
    assert len(decoded) == len(original)
    for before, after in zip(original, decoded):
        assert before.offset == after.offset
        assert before.first_key == after.first_key
        assert before.last_key == after.last_key


def test_empty_meta():
    encoded = BlockMeta.encode_meta_to_slice([])
    assert len(encoded) == 8
    assert BlockMeta.decode_meta_from_slice(encoded) == []


def test_special_chars():
    first = "key\0with\0null"[:12]
    last = "value\0with\0null"[:14]
    encoded = BlockMeta.encode_meta_to_slice([BlockMeta(0, first, last)])
    decoded = BlockMeta.decode_meta_from_slice(encoded)
    assert len(decoded) == 1
    assert decoded[0].first_key == first
    assert decoded[0].last_key == last


@pytest.mark.parametrize("data", [bytes([1, 2, 3]), b""])
def test_decode_too_short(data):
    with pytest.raises(ValueError):
        BlockMeta.decode_meta_from_slice(data)


def test_corrupted_hash():
    encoded = bytearray(BlockMeta.encode_meta_to_slice(create_test_metas()))
    encoded[-1] ^= 1
    with pytest.raises(ValueError):
        BlockMeta.decode_meta_from_slice(bytes(encoded))


def test_truncated_entries():
    encoded = BlockMeta.encode_meta_to_slice(create_test_metas())
    with pytest.raises(ValueError):
        BlockMeta.decode_meta_from_slice(encoded[:20])


def test_large_data():
    metas = [BlockMeta(i * 100, f"key{i:03d}00", f"key{i:03d}99") for i in range(1000)]
    decoded = BlockMeta.decode_meta_from_slice(BlockMeta.encode_meta_to_slice(metas))
    assert decoded == metas
    for prev, cur in zip(decoded, decoded[1:]):
        assert prev.last_key < cur.first_key


def test_order_survives_round_trip():
    decoded = BlockMeta.decode_meta_from_slice(
        BlockMeta.encode_meta_to_slice(create_test_metas())
    )
    assert all(meta.first_key < meta.last_key for meta in decoded)
    assert [meta.offset for meta in decoded] == [0, 100, 200]


def test_offset_out_of_range():
    with pytest.raises(ValueError):
        BlockMeta.encode_meta_to_slice([BlockMeta(2**32, "a", "b")])