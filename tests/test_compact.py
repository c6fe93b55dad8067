import pytest

from krpc.compact import (
    CompactNode,
    decode_id,
    decode_node,
    decode_nodes,
    encode_id,
    encode_node,
    encode_nodes,
)
from krpc.errors import InvalidLength, InvalidNode


def new_node(node_id, port=31816):
    return CompactNode(node_id, ("127.0.0.1", port))


def test_encode_id():
    assert encode_id(0x0A0B0C0D) == b'\x00' * 16 + bytes([0x0A, 0x0B, 0x0C, 0x0D])


def test_decode_id():
    assert decode_id(b'\x00' * 16 + bytes([0x0A, 0x0B, 0x0C, 0x0D])) == 0x0A0B0C0D


@pytest.mark.parametrize("node_id", [0, 1, 42, 2**64, 2**159 + 12345, 2**160 - 1])
def test_id_round_trip(node_id):
    data = encode_id(node_id)
    assert len(data) == 20
    assert decode_id(data) == node_id


def test_encode_id_too_wide():
    with pytest.raises(OverflowError):
        encode_id(2**160)


def test_encode_node():
    # 127.0.0.1:31816, port 31816 == 0x7C48
    assert encode_node(new_node(42)) == b'\x00' * 19 + bytes([42, 127, 0, 0, 1, 0x7C, 0x48])


def test_decode_node():
    node = decode_node(b'\x00' * 19 + bytes([42, 127, 0, 0, 1, 0, 80]))
    assert node.id == 42
    assert str(node.address) == "127.0.0.1:80"


def test_node_round_trip():
    node = CompactNode(2**160 - 1, ("255.255.255.255", 65535))
    data = encode_node(node)
    assert len(data) == 26
    assert decode_node(data) == node


def test_node_accepts_plain_tuple():
    assert new_node(1) == CompactNode(1, ("127.0.0.1", 31816))
    assert new_node(1).address.port == 31816


@pytest.mark.parametrize("length", [0, 1, 20, 25, 27, 52])
def test_decode_node_invalid_length(length):
    with pytest.raises(InvalidLength):
        decode_node(b'\x01' * length)


def test_decode_node_not_bytes():
    with pytest.raises(InvalidNode):
        decode_node(42)
    with pytest.raises(InvalidNode):
        decode_node([b'\x00' * 26])


def test_invalid_length_is_invalid_node():
    with pytest.raises(InvalidNode):
        decode_node(b'\x00' * 25)


def test_nodes_round_trip():
    nodes = [new_node(1), CompactNode(2**100, ("10.0.0.1", 6881))]
    data = encode_nodes(nodes)
    assert len(data) == 52
    assert decode_nodes(data) == nodes


def test_decode_nodes_empty():
    assert encode_nodes([]) == b''
    assert decode_nodes(b'') == []


def test_decode_nodes_malformed():
    with pytest.raises(InvalidLength):
        decode_nodes(b'a' * 25)
