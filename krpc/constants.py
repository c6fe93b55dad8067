from typing import Final

BOOTSTRAP_NODES = (
    ("router.bittorrent.com", 6881),
    ("dht.transmissionbt.com", 6881),
    ("router.utorrent.com", 6881)
)

# KRPC envelope keys
KRPC_Y: Final = b"y"
KRPC_TT: Final = b"tt"
KRPC_ID: Final = b"id"

# KRPC message type values, also used as the payload key
KRPC_QUERY: Final = b"q"
KRPC_RESPONSE: Final = b"r"
KRPC_ERROR: Final = b"e"

# Query field holding the method name
KRPC_METHOD: Final = "q"

# KRPC query methods
KRPC_PING = b"ping"
KRPC_FIND_NODE = b"find_node"
KRPC_GET_PEERS = b"get_peers"
KRPC_ANNOUNCE_PEER = b"announce_peer"

# KRPC error codes
KRPC_GENERIC_ERROR = 201
KRPC_SERVER_ERROR = 202
KRPC_PROTOCOL_ERROR = 203
KRPC_METHOD_UNKNOWN = 204

# Substituted for error messages that are not valid UTF-8
UNKNOWN_ERROR_MESSAGE: Final = "Unknown error"

# Sizes of the compact encodings
ID_BYTE_SIZE: Final = 20
COMPACT_ADDRESS_SIZE: Final = 6
COMPACT_NODE_SIZE: Final = ID_BYTE_SIZE + COMPACT_ADDRESS_SIZE

MIN_NODE_ID = 0
MAX_NODE_ID = 2**160 - 1
