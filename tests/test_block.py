import pytest

from lsmkv.block import Block, BlockEntry, BlockIterator
from lsmkv.checksum import hash32

LSM_BLOCK_SIZE = 4096


def _entry(key, value, tranc_id):
    return (
        len(key).to_bytes(2, "little")
        + key
        + len(value).to_bytes(2, "little")
        + value
        + tranc_id.to_bytes(8, "little")
    )


def encoded_block():
    data = (
        _entry(b"apple", b"red", 1)
        + _entry(b"banana", b"yellow", 2)
        + _entry(b"orange", b"orange3", 3)
        + _entry(b"orange", b"orange2", 2)
        + _entry(b"orange", b"orange1", 1)
    )
    offsets = bytes([0, 0, 20, 0, 44, 0, 69, 0, 94, 0])
    return data + offsets + bytes([5, 0])


def collect(begin, end):
    out = []
    it = begin
    while it != end:
        out.append(it.item())
        it.advance()
    return out


def test_decode():
    block = Block.decode(encoded_block())
    assert block.get_first_key() == "apple"
    assert block.get_value_binary("apple", 0) == "red"
    assert block.get_value_binary("banana", 0) == "yellow"
    assert block.get_value_binary("orange", 0) == "orange3"
    assert block.get_value_binary("orange", 1) == "orange1"
    assert block.get_value_binary("orange", 2) == "orange2"
    assert block.get_value_binary("orange", 3) == "orange3"


def test_encode():
    block = Block(1024)
    block.add_entry("apple", "red", 1, False)
    block.add_entry("banana", "yellow", 2, False)
    block.add_entry("orange", "orange3", 3, False)
    block.add_entry("orange", "orange2", 2, False)
    block.add_entry("orange", "orange1", 1, False)

    encoded = block.encode()
    assert encoded == encoded_block()

    decoded = Block.decode(encoded)
    assert decoded.get_value_binary("apple", 1) == "red"
    assert decoded.get_value_binary("banana", 2) == "yellow"
    assert decoded.get_value_binary("orange", 0) == "orange3"
    assert decoded.get_value_binary("orange", 1) == "orange1"
    assert decoded.get_value_binary("orange", 2) == "orange2"
    assert decoded.get_value_binary("orange", 3) == "orange3"


def test_binary_search():
    block = Block(1024)
    block.add_entry("apple", "red", 0, False)
    block.add_entry("banana", "yellow", 0, False)
    block.add_entry("orange", "orange", 0, False)

    assert block.get_value_binary("apple", 0) == "red"
    assert block.get_value_binary("banana", 0) == "yellow"
    assert block.get_value_binary("orange", 0) == "orange"
    assert block.get_value_binary("grape", 0) is None
    assert block.get_value_binary("", 0) is None


def test_edge_cases():
    block = Block(1024)
    assert block.get_first_key() == ""
    assert block.get_value_binary("any", 0) is None

    block.add_entry("", "", 0, False)
    assert block.get_first_key() == ""
    assert block.get_value_binary("", 0) == ""

    special_key = "key\0with\tnull"
    special_value = "value\rwith\nnull"
    block.add_entry(special_key, special_value, 0, False)
    assert block.get_value_binary(special_key, 0) == special_value


def test_large_data():
    block = Block(1024 * 32)
    for i in range(1000):
        assert block.add_entry(f"key{i:03d}", f"value{i:03d}", 0, False) is True
    for i in range(1000):
        assert block.get_value_binary(f"key{i:03d}", 0) == f"value{i:03d}"


@pytest.mark.parametrize("data", [bytes([1, 2, 3]), b""])
def test_decode_invalid_data(data):
    with pytest.raises(ValueError):
        Block.decode(data)


def test_iterator():
    block = Block(4096)
    assert block.begin() == block.end()

    test_data = [(f"key{i:03d}", f"value{i:03d}") for i in range(100)]
    for key, value in test_data:
        block.add_entry(key, value, 0, False)

    assert list(block) == test_data

    it = block.begin()
    assert it.item()[0] == "key000"
    it.advance()
    assert it.item()[0] == "key001"
    it.advance()
    assert it.item()[0] == "key002"

    decoded = Block.decode(block.encode())
    assert collect(decoded.begin(), decoded.end()) == test_data


def test_tranc_iterator():
    block = Block(4096)
    block.add_entry("key1", "value1", 1, False)
    block.add_entry("key2", "value222", 3, False)
    block.add_entry("key2", "value22", 2, False)
    block.add_entry("key2", "value2", 1, False)
    block.add_entry("key3", "value3", 1, False)
    block.add_entry("key4", "value4", 2, False)
    block.add_entry("key5", "value5", 3, False)

    expected = [
        ("key1", "value1"),
        ("key2", "value222"),
        ("key3", "value3"),
        ("key4", "value4"),
        ("key5", "value5"),
    ]
    assert collect(block.begin(), block.end()) == expected


def _range_predicate(low, high):
    def predicate(key):
        if key < low:
            return 1
        if key >= high:
            return -1
        return 0

    return predicate


def _check_predicate_block(block):
    result = block.get_monotony_predicate_iters(0, _range_predicate("key0020", "key0030"))
    assert result is not None
    it_begin, it_end = result
    assert it_begin.item()[0] == "key0020"
    assert it_end.item()[0] == "key0030"
    for _ in range(5):
        it_begin.advance()
    assert it_begin.item()[0] == "key0025"


def test_predicate():
    block1 = Block(LSM_BLOCK_SIZE)
    for i in range(50):
        block1.add_entry(f"key{i:04d}", f"value{i:04d}", 0, False)
    _check_predicate_block(block1)
    _check_predicate_block(Block.decode(block1.encode()))


def test_tranc_predicate():
    block1 = Block(LSM_BLOCK_SIZE)
    rows = [
        ("key0", "value0", 0),
        ("key1", "value1", 1),
        ("key2", "value22", 10),
        ("key2", "value2", 2),
        ("key3", "value3", 3),
        ("key4", "value4444", 9),
        ("key4", "value444", 8),
        ("key4", "value44", 7),
        ("key4", "value4", 4),
        ("key5", "value5555", 8),
        ("key5", "value555", 7),
        ("key5", "value55", 6),
        ("key5", "value5", 5),
        ("key6", "value6", 6),
    ]
    for key, value, tranc_id in rows:
        block1.add_entry(key, value, tranc_id, False)
    block2 = Block.decode(block1.encode())

    it_begin, it_end = block2.get_monotony_predicate_iters(7, _range_predicate("key2", "key6"))
    assert it_end.item()[0] == "key6"
    assert it_begin.item() == ("key2", "value2")
    it_begin.advance()
    assert it_begin.item()[0] == "key3"
    it_begin.advance()
    assert it_begin.item() == ("key4", "value44")

    it_begin2, it_end2 = block2.get_monotony_predicate_iters(6, _range_predicate("key2", "key7"))
    values = [value for _, value in collect(it_begin2, it_end2)]
    assert values == ["value2", "value3", "value4", "value55", "value6"]


def test_predicate_on_empty_block_returns_none():
    assert Block(LSM_BLOCK_SIZE).get_monotony_predicate_iters(0, lambda key: 0) is None


def test_prefix_iterators():
    block = Block(LSM_BLOCK_SIZE)
    for key in ["apple", "apricot", "banana", "berry"]:
        block.add_entry(key, key.upper(), 0, False)

    begin, end = block.iters_preffix(0, "ap")
    assert collect(begin, end) == [("apple", "APPLE"), ("apricot", "APRICOT")]

    begin, end = block.iters_preffix(0, "zz")
    assert begin == end


def test_decode_with_hash():
    encoded = encoded_block()
    hashed = encoded + hash32(encoded).to_bytes(4, "little")
    block = Block.decode(hashed, with_hash=True)
    assert block.get_value_binary("banana", 0) == "yellow"

    corrupted = bytearray(hashed)
    corrupted[0] ^= 1
    with pytest.raises(ValueError):
        Block.decode(bytes(corrupted), with_hash=True)


def test_capacity_limits_entries():
    block = Block(40)
    assert block.add_entry("k" * 30, "v", 0, False) is True
    assert block.add_entry("zz", "v", 0, False) is False
    assert block.add_entry("zz", "v", 0, True) is True
    assert len(block) == 2


def test_entry_and_offset_access():
    block = Block.decode(encoded_block())
    assert block.get_offset_at(2) == 44
    assert block.get_entry_at(block.get_offset_at(0)) == BlockEntry("apple", "red", 1)
    assert block.get_tranc_id_at(94) == 1
    assert block.compare_key_at(20, "apple") == 1
    assert block.is_same_key(3, "orange") is True
    with pytest.raises(IndexError):
        block.get_offset_at(5)


def test_adjust_idx_by_tranc_id():
    block = Block.decode(encoded_block())
    assert block.adjust_idx_by_tranc_id(4, 0) == 2
    assert block.adjust_idx_by_tranc_id(2, 2) == 3
    assert block.adjust_idx_by_tranc_id(0, 0) == 0
    assert block.adjust_idx_by_tranc_id(9, 0) is None


def test_iterator_at_key_and_end():
    block = Block.decode(encoded_block())
    it = BlockIterator.at_key(block, "orange", 2)
    assert it.item() == ("orange", "orange2")
    missing = BlockIterator.at_key(block, "grape", 0)
    assert missing.is_end() is True
    with pytest.raises(IndexError):
        block.end().item()


def test_cur_size_and_empty():
    block = Block(1024)
    assert block.is_empty() is True
    assert block.cur_size() == 2
    block.add_entry("apple", "red", 1)
    assert block.is_empty() is False
    assert block.cur_size() == len(block.encode())