"""
KRPC protocol bits as described in BEP 0005.

A KRPC message is a bencoded dictionary::

    {"tt": <transaction id>, "y": <"q" | "r" | "e">, <y>: <payload>}

Query and response payloads are dictionaries that carry the sender's
compact node info under "id". Error payloads are ``[code, message]`` lists.

This module maps between those bencode value trees and ``Package`` objects.
Decoding never returns a partially validated package: the first failed
check raises the matching ``DecodeError`` subclass.
"""
from __future__ import annotations

import logging
import reprlib
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Type, Union

from fastbencode import bdecode, bencode
from typing_extensions import Buffer

from .compact import CompactNode, decode_node, encode_node
from .constants import (
    KRPC_ERROR,
    KRPC_ID,
    KRPC_QUERY,
    KRPC_RESPONSE,
    KRPC_TT,
    KRPC_Y,
    UNKNOWN_ERROR_MESSAGE,
)
from .errors import (
    BadBodyShape,
    BadErrorShape,
    DecodeError,
    InvalidBencode,
    MissingPayload,
    MissingSender,
    MissingTransactionId,
    MissingType,
    NotADict,
    UnknownType,
)

log = logging.getLogger(__name__)

# Rejected values come from the network and may be huge or deeply nested.
_short_repr = reprlib.Repr()
_short_repr.maxlevel = 2
_short_repr.maxstring = 40
_short_repr.maxother = 40

_RESERVED_FIELD = KRPC_ID.decode()


def to_binary(s: Union[str, bytes]) -> bytes:
    if isinstance(s, bytes):
        return s
    if isinstance(s, str):
        return s.encode("utf-8", "strict")
    raise TypeError(f"expected binary or text (found {type(s)})")


@dataclass(frozen=True)
class _Body:
    fields: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        fields = dict(self.fields)
        if _RESERVED_FIELD in fields:
            raise ValueError(f"{_RESERVED_FIELD!r} is reserved for the sender node")
        object.__setattr__(self, "fields", fields)


@dataclass(frozen=True)
class Query(_Body):
    """Request to a node."""


@dataclass(frozen=True)
class Response(_Body):
    """Response to a request."""


@dataclass(frozen=True)
class Error:
    """Error: code and text message."""
    code: int
    message: str


Payload = Union[Query, Response, Error]


@dataclass(frozen=True)
class Package:
    """
    KRPC package.

    ``transaction_id`` is generated by the requester and passed back by the
    responder. ``sender`` is stored inside the query or response payload,
    so it is never set for errors.

    Packages compare by value but are not hashable, since query and
    response fields are dictionaries.
    """
    transaction_id: bytes
    payload: Payload
    sender: Optional[CompactNode] = None

    def __post_init__(self):
        # Bytes-like values or sequences of ints only.
        if isinstance(self.transaction_id, (int, str)):
            raise TypeError(f"transaction id must be bytes, not {type(self.transaction_id).__name__}")
        object.__setattr__(self, "transaction_id", bytes(self.transaction_id))


def _body_with_sender(fields: Dict[str, Any], sender: Optional[CompactNode]) -> Dict[bytes, Any]:
    body = {to_binary(k): v for k, v in fields.items()}
    if sender is not None:
        body[KRPC_ID] = encode_node(sender)
    else:
        log.debug("Encoding payload without sender id: %r", fields)
    return body


def encode_package(package: Package) -> Dict[bytes, Any]:
    """Converts a package into a bencode value tree."""
    payload = package.payload
    if isinstance(payload, Query):
        typ, body = KRPC_QUERY, _body_with_sender(payload.fields, package.sender)
    elif isinstance(payload, Response):
        typ, body = KRPC_RESPONSE, _body_with_sender(payload.fields, package.sender)
    elif isinstance(payload, Error):
        typ, body = KRPC_ERROR, [payload.code, payload.message.encode("utf-8")]
    else:
        raise TypeError(f"unexpected payload {payload!r}")

    return {
        KRPC_TT: package.transaction_id,
        KRPC_Y: typ,
        typ: body,
    }


def _decode_error(body: Any) -> Error:
    if not (isinstance(body, list) and len(body) == 2):
        raise BadErrorShape(f"Error body of unknown structure {_short_repr.repr(body)}")
    code, message = body
    if not (isinstance(code, int) and isinstance(message, bytes)):
        raise BadErrorShape(f"Error body of unknown structure {_short_repr.repr(body)}")

    try:
        text = message.decode("utf-8")
    except UnicodeDecodeError:
        log.debug("Error message is not UTF8: %s", _short_repr.repr(message))
        text = UNKNOWN_ERROR_MESSAGE
    return Error(code, text)


def _extract_sender(body: Any, kind: Type[_Body]) -> Tuple[_Body, CompactNode]:
    if not isinstance(body, dict):
        raise BadBodyShape(f"{kind.__name__} body of unexpected type: {_short_repr.repr(body)}")

    body = dict(body)
    try:
        sender_value = body.pop(KRPC_ID)
    except KeyError:
        raise MissingSender(f"No sender ID in {kind.__name__.lower()}") from None
    sender = decode_node(sender_value)

    fields = {}
    for k, v in body.items():
        try:
            fields[k.decode("utf-8")] = v
        except (AttributeError, UnicodeDecodeError):
            raise BadBodyShape(f"{kind.__name__} field name {_short_repr.repr(k)} is not text") from None
    return kind(fields), sender


def decode_package(value: Any) -> Package:
    """
    Validates a bencode value tree and converts it into a package.

    Raises a ``DecodeError`` subclass naming the first check that failed.
    """
    if not isinstance(value, dict):
        raise NotADict(f"Expected dict as top-level package, got {_short_repr.repr(value)}")

    typ = value.get(KRPC_Y)
    if not isinstance(typ, bytes):
        raise MissingType("No type")

    if typ not in value:
        raise MissingPayload(f"No payload for type {_short_repr.repr(typ)}")
    body = value[typ]

    try:
        kind = typ.decode("utf-8")
    except UnicodeDecodeError:
        raise UnknownType(f"Not a UTF8 string: field y, value {_short_repr.repr(typ)}") from None

    if kind == KRPC_ERROR.decode():
        payload, sender = _decode_error(body), None
    elif kind == KRPC_QUERY.decode():
        payload, sender = _extract_sender(body, Query)
    elif kind == KRPC_RESPONSE.decode():
        payload, sender = _extract_sender(body, Response)
    else:
        raise UnknownType(f"Unexpected payload type {_short_repr.repr(kind)}")

    tt = value.get(KRPC_TT)
    if not isinstance(tt, bytes):
        raise MissingTransactionId("No transaction id")

    return Package(transaction_id=tt, payload=payload, sender=sender)


def try_decode_package(value: Any) -> Optional[Package]:
    """Like decode_package, but logs the failure and returns None."""
    try:
        return decode_package(value)
    except DecodeError as e:
        log.debug("Dropping message (%s): %s", type(e).__name__, e)
        return None


def encode_message(package: Package) -> bytes:
    """Encode a package into datagram bytes."""
    return bencode(encode_package(package))


def decode_message(data: Buffer) -> Package:
    """Decode datagram bytes into a package."""
    try:
        value = bdecode(bytes(data))
    except (ValueError, RecursionError) as e:
        raise InvalidBencode(f"bad bencoded data: {e}") from e
    return decode_package(value)
