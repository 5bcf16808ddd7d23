import hashlib

import base58

from cryft_cli.src import Constants
from cryft_cli.src.cryft.errors import ParseError

ID_LEN = 32
SHORT_ID_LEN = 20
CHECKSUM_LEN = 4


def _checksum(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()[-CHECKSUM_LEN:]


def cb58_encode(data: bytes) -> str:
    """Encodes bytes as base58 with a 4-byte SHA-256 checksum suffix."""
    return base58.b58encode(data + _checksum(data)).decode("ascii")


def cb58_decode(value: str) -> bytes:
    """
    Decodes a CB58 string, verifying its checksum.

    :raises ParseError: when the string is not base58 or the checksum does not match
    """
    try:
        raw = base58.b58decode(value)
    except ValueError as e:
        raise ParseError(f"invalid cb58 string {value!r}: {e}") from e
    if len(raw) < CHECKSUM_LEN:
        raise ParseError(f"invalid cb58 string {value!r}: missing checksum")
    payload, checksum = raw[:-CHECKSUM_LEN], raw[-CHECKSUM_LEN:]
    if _checksum(payload) != checksum:
        raise ParseError(f"invalid cb58 string {value!r}: bad checksum")
    return payload


def parse_id(value: str) -> str:
    """Validates a 32-byte CB58 ID (such as a subnet ID) and returns it unchanged."""
    payload = cb58_decode(value)
    if len(payload) != ID_LEN:
        raise ParseError(
            f"invalid ID {value!r}: expected {ID_LEN} bytes but got {len(payload)}"
        )
    return value


def parse_node_id(value: str) -> str:
    """
    Validates a node identifier of the form ``NodeID-<cb58>``.

    :param value: the node ID string as entered by the operator
    :return: the normalised node ID string
    :raises ParseError: when the prefix, encoding, checksum or length is wrong
    """
    value = value.strip()
    if not value.startswith(Constants.node_id_prefix):
        raise ParseError(
            f"invalid NodeID {value!r}: must start with {Constants.node_id_prefix!r}"
        )
    payload = cb58_decode(value[len(Constants.node_id_prefix) :])
    if len(payload) != SHORT_ID_LEN:
        raise ParseError(
            f"invalid NodeID {value!r}: expected {SHORT_ID_LEN} bytes but got {len(payload)}"
        )
    return value


def node_id_from_bytes(data: bytes) -> str:
    return Constants.node_id_prefix + cb58_encode(data)


def is_empty_id(value: str) -> bool:
    return not value or value == Constants.primary_network_id
