import pytest
from krpc import utils
from krpc.constants import MAX_NODE_ID, MIN_NODE_ID
from krpc.errors import InvalidLength


def test_split_peers():
    # Peer 1: 127.0.0.1:6881 -> b'\x7f\x00\x00\x01\x1a\xe1'
    # Peer 2: 8.8.8.8:51413 -> b'\x08\x08\x08\x08\xc8\xd5'
    peers_data = b'\x7f\x00\x00\x01\x1a\xe1\x08\x08\x08\x08\xc8\xd5'
    expected_peers = [("127.0.0.1", 6881), ("8.8.8.8", 51413)]
    assert list(utils.split_peers(peers_data)) == expected_peers

    assert list(utils.split_peers(b'')) == []

    # Not a multiple of 6
    with pytest.raises(InvalidLength):
        list(utils.split_peers(b'\x7f\x00\x00\x01\x1a'))


def test_encode_address():
    assert utils.encode_address(("127.0.0.1", 31816)) == b'\x7f\x00\x00\x01\x7c\x48'
    assert utils.encode_address(utils.Address("10.10.10.10", 65535)) == b'\x0a\x0a\x0a\x0a\xff\xff'


def test_decode_address():
    address = utils.decode_address(b'\xc0\xa8\x01\x01\x1a\xe1')
    assert address == ("192.168.1.1", 6881)
    assert address.ip == "192.168.1.1"
    assert address.port == 6881
    assert str(address) == "192.168.1.1:6881"

    with pytest.raises(InvalidLength):
        utils.decode_address(b'\xc0\xa8\x01\x01\x1a')


def test_random_node_id():
    node_id = utils.random_node_id()
    assert MIN_NODE_ID <= node_id <= MAX_NODE_ID


def test_random_transaction_id():
    assert len(utils.random_transaction_id()) == 2
    assert len(utils.random_transaction_id(4)) == 4


def test_get_distance():
    assert utils.get_distance(0, 1) == 1
    assert utils.get_distance(2**160 - 1, 0) == (2**160) - 1

    # Distance is symmetric
    assert utils.get_distance(5, 2**159) == utils.get_distance(2**159, 5)
