import pytest

from cryft_cli.src import Constants
from cryft_cli.src.cryft import ids
from cryft_cli.src.cryft.errors import ParseError


def test_empty_id_is_primary_network():
    assert ids.cb58_encode(bytes(32)) == Constants.primary_network_id
    assert ids.is_empty_id(Constants.primary_network_id)
    assert ids.is_empty_id("")


def test_parse_node_id():
    node_id = ids.node_id_from_bytes(bytes(range(20)))
    assert node_id.startswith("NodeID-")
    assert ids.parse_node_id(f"  {node_id} ") == node_id


def test_parse_node_id_requires_prefix():
    node_id = ids.node_id_from_bytes(bytes(range(20)))
    with pytest.raises(ParseError, match="must start with"):
        ids.parse_node_id(node_id[len("NodeID-") :])


def test_parse_node_id_bad_checksum():
    body = ids.cb58_encode(bytes(range(20)))
    # flip the last character to another valid base58 character
    tampered = body[:-1] + ("2" if body[-1] != "2" else "3")
    with pytest.raises(ParseError):
        ids.parse_node_id("NodeID-" + tampered)


def test_parse_node_id_wrong_length():
    with pytest.raises(ParseError, match="expected 20 bytes"):
        ids.parse_node_id("NodeID-" + ids.cb58_encode(bytes(32)))


@pytest.mark.parametrize("value", ["NodeID-", "NodeID-0OIl", "NodeID-abc"])
def test_parse_node_id_garbage(value):
    with pytest.raises(ParseError):
        ids.parse_node_id(value)


def test_parse_id():
    subnet_id = ids.cb58_encode(bytes([5] * 32))
    assert ids.parse_id(subnet_id) == subnet_id
    with pytest.raises(ParseError):
        ids.parse_id(ids.cb58_encode(bytes(20)))
