"""
Compact node info: a 160-bit node ID followed by an IPv4 address and port,
26 bytes in total, as defined by BEP 0005.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Iterable, List

from .constants import COMPACT_NODE_SIZE, ID_BYTE_SIZE
from .errors import InvalidLength, InvalidNode
from .utils import Address, decode_address, encode_address


@dataclass(frozen=True)
class CompactNode:
    id: int
    address: Address

    def __post_init__(self):
        # Accept plain (ip, port) tuples from asyncio.
        if not isinstance(self.address, Address):
            object.__setattr__(self, "address", Address(*self.address))

    def __str__(self):
        return f"{self.id:040x}@{self.address}"


def encode_id(node_id: int) -> bytes:
    """Big-endian, zero-padded to 20 bytes. The ID must fit in 160 bits."""
    return node_id.to_bytes(ID_BYTE_SIZE, 'big')


def decode_id(data: bytes) -> int:
    return int.from_bytes(data, 'big')


def encode_node(node: CompactNode) -> bytes:
    return encode_id(node.id) + encode_address(node.address)


def decode_node(value: Any) -> CompactNode:
    """
    Decodes a compact node info value taken from a bencode tree.

    Raises InvalidLength if the value is a byte string of any length other
    than 26 and InvalidNode if it is not a usable byte string at all.
    """
    if not isinstance(value, bytes):
        raise InvalidNode(f"{type(value).__name__} is unexpected representation for a node")
    if len(value) != COMPACT_NODE_SIZE:
        raise InvalidLength(
            f"compact node must be {COMPACT_NODE_SIZE} bytes, got {len(value)}"
        )

    try:
        address = decode_address(value[ID_BYTE_SIZE:])
    except (OSError, struct.error) as e:
        raise InvalidNode(f"cannot decode node address {value[ID_BYTE_SIZE:]!r}: {e}") from e
    return CompactNode(decode_id(value[:ID_BYTE_SIZE]), address)


def encode_nodes(nodes: Iterable[CompactNode]) -> bytes:
    """
    Packs nodes into the concatenated format of the "nodes" field.
    """
    return b"".join(encode_node(node) for node in nodes)


def decode_nodes(data: bytes) -> List[CompactNode]:
    """
    Splits a "nodes" field into compact nodes. The whole field is rejected
    if its length is not a multiple of 26.
    """
    if not isinstance(data, bytes):
        raise InvalidNode(f"{type(data).__name__} is unexpected representation for a node list")
    length = len(data)
    if (length % COMPACT_NODE_SIZE) != 0:
        raise InvalidLength(f"node list length {length} is not a multiple of {COMPACT_NODE_SIZE}")

    return [
        decode_node(data[i:i + COMPACT_NODE_SIZE])
        for i in range(0, length, COMPACT_NODE_SIZE)
    ]
