import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from cryft_cli.src import VMTypes
from cryft_cli.src.cryft.app_store import AppStore
from cryft_cli.src.cryft.ids import cb58_encode, node_id_from_bytes
from cryft_cli.src.cryft.models import Network, NetworkData, Sidecar

SUBNET_ID = cb58_encode(bytes([7] * 32))
NODE_A = node_id_from_bytes(bytes([1] * 20))
NODE_B = node_id_from_bytes(bytes([2] * 20))


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Points every cryft-cli path at a temporary directory."""
    base = tmp_path / "cryft"
    monkeypatch.setenv("CRYFT_CLI_BASE_DIR", str(base))
    monkeypatch.setenv("CRYFT_CLI_CONFIG_PATH", str(base / "config.yml"))
    monkeypatch.setenv("CRYFT_CLI_DEBUG_FILE", str(base / "debug.txt"))
    monkeypatch.delenv("CRYFT_KEYSTORE_PASSWORD", raising=False)
    base.mkdir()
    return base


@pytest.fixture
def store(cli_env):
    return AppStore()


@pytest.fixture
def deployed_store(store):
    """A store holding key `mykey` and subnet `mysubnet` deployed on Fuji."""
    store.key_dir.mkdir(parents=True)
    store.get_key_path("mykey").write_text("keystore-user")
    store.create_sidecar(
        Sidecar(
            name="mysubnet",
            vm=VMTypes.SUBNET_EVM,
            subnet="mysubnet",
            chain_id="11111",
            networks={str(Network.FUJI): NetworkData(subnet_id=SUBNET_ID)},
        )
    )
    store.write_genesis_file("mysubnet", json.dumps({"config": {}}).encode())
    return store


@pytest.fixture
def gateway():
    gateway_ = MagicMock()
    gateway_.network = Network.FUJI
    gateway_.get_current_validators = AsyncMock(return_value=[])
    return gateway_


@pytest.fixture
def deployer():
    deployer_ = MagicMock()
    deployer_.add_validator = AsyncMock(return_value="tx-123")
    return deployer_
