import os
import socket
import struct
from typing import NamedTuple

from .constants import COMPACT_ADDRESS_SIZE, ID_BYTE_SIZE
from .errors import InvalidLength


class Address(NamedTuple):
    """IPv4 address and UDP port, as asyncio passes them around."""
    ip: str
    port: int

    def __str__(self):
        return f"{self.ip}:{self.port}"


def random_node_id():
    return int.from_bytes(os.urandom(ID_BYTE_SIZE), 'big')


def random_transaction_id(size=2):
    return os.urandom(size)


def get_distance(node1_id, node2_id):
    """
    Calculate the XOR distance between two node IDs.
    """
    return node1_id ^ node2_id


def encode_address(address):
    """Packs an (ip, port) pair into 4 address bytes and a big-endian port."""
    ip, port = address
    return socket.inet_aton(ip) + struct.pack("!H", port)


def decode_address(data):
    if len(data) != COMPACT_ADDRESS_SIZE:
        raise InvalidLength(
            f"compact address must be {COMPACT_ADDRESS_SIZE} bytes, got {len(data)}"
        )
    ip = socket.inet_ntoa(data[:4])
    port = struct.unpack("!H", data[4:6])[0]
    return Address(ip, port)


def split_peers(peers):
    """
    Parses a compact peer list.
    """
    length = len(peers)
    if (length % COMPACT_ADDRESS_SIZE) != 0:
        raise InvalidLength(f"compact peer list length {length} is not a multiple of 6")

    for i in range(0, length, COMPACT_ADDRESS_SIZE):
        yield decode_address(peers[i:i + COMPACT_ADDRESS_SIZE])
