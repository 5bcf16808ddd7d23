import json
from unittest.mock import patch

import pytest

from cryft_cli.src import VMTypes
from cryft_cli.src.commands.subnets import create as subnet_create
from cryft_cli.src.cryft.errors import (
    ConfigurationExists,
    CryftCLIError,
    InvalidName,
    SidecarNotFound,
    TooManyVMs,
)
from cryft_cli.src.cryft.models import Network, NetworkData, Sidecar


@pytest.fixture
def genesis_file(tmp_path):
    path = tmp_path / "genesis.json"
    path.write_text(json.dumps({"config": {"chainId": 4242}, "alloc": {}}))
    return path


@pytest.fixture
def vm_file(tmp_path):
    path = tmp_path / "myvm"
    path.write_bytes(b"\x7fELF")
    return path


@pytest.mark.parametrize(
    "use_evm,use_custom,expected",
    [
        (False, False, None),
        (True, False, VMTypes.SUBNET_EVM),
        (False, True, VMTypes.CUSTOM),
    ],
)
def test_get_vm_from_flags(use_evm, use_custom, expected):
    assert subnet_create.get_vm_from_flags(use_evm, use_custom) is expected


def test_get_vm_from_flags_too_many():
    with pytest.raises(TooManyVMs):
        subnet_create.get_vm_from_flags(True, True)


def test_subnet_evm_genesis_airdrop():
    address = "0x" + "Ab" * 20
    genesis = subnet_create.subnet_evm_genesis(99, {address: 3})
    assert genesis["config"]["chainId"] == 99
    assert genesis["alloc"] == {"ab" * 20: {"balance": hex(3 * 10**18)}}


@pytest.mark.asyncio
async def test_create_evm_from_genesis(store, genesis_file):
    sidecar = await subnet_create.create(
        store, "mysubnet", genesis_file=str(genesis_file), use_evm=True
    )

    assert sidecar.vm is VMTypes.SUBNET_EVM
    assert sidecar.chain_id == "4242"
    assert store.load_genesis("mysubnet")["config"]["chainId"] == 4242
    assert store.load_sidecar("mysubnet") == sidecar


@pytest.mark.asyncio
async def test_create_evm_interactive(store):
    with (
        patch.object(subnet_create, "capture_list", return_value="SubnetEVM"),
        patch.object(subnet_create.IntPrompt, "ask", return_value=777),
        patch.object(subnet_create.Prompt, "ask", return_value="CRY"),
        patch.object(subnet_create.Confirm, "ask", return_value=False),
    ):
        sidecar = await subnet_create.create(store, "mysubnet")

    assert sidecar.token_name == "CRY"
    assert sidecar.chain_id == "777"
    genesis = store.load_genesis("mysubnet")
    assert genesis["config"]["chainId"] == 777
    assert genesis["alloc"] == {}


@pytest.mark.asyncio
async def test_create_custom(store, genesis_file, vm_file):
    sidecar = await subnet_create.create(
        store,
        "custom subnet",
        genesis_file=str(genesis_file),
        vm_file=str(vm_file),
        use_custom=True,
    )
    assert sidecar.vm is VMTypes.CUSTOM
    assert sidecar.vm_path == str(vm_file.resolve())
    assert store.sidecar_exists("custom subnet")


@pytest.mark.asyncio
async def test_create_custom_missing_vm(store, genesis_file, tmp_path):
    with pytest.raises(CryftCLIError, match="does not exist"):
        await subnet_create.create(
            store,
            "mysubnet",
            genesis_file=str(genesis_file),
            vm_file=str(tmp_path / "missing"),
            use_custom=True,
        )
    assert not store.genesis_exists("mysubnet")


@pytest.mark.asyncio
async def test_create_invalid_genesis(store, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(CryftCLIError, match="not valid JSON"):
        await subnet_create.create(
            store, "mysubnet", genesis_file=str(bad), use_evm=True
        )


@pytest.mark.asyncio
async def test_create_existing_requires_force(store, genesis_file):
    await subnet_create.create(
        store, "mysubnet", genesis_file=str(genesis_file), use_evm=True
    )
    with pytest.raises(ConfigurationExists, match="--force"):
        await subnet_create.create(
            store, "mysubnet", genesis_file=str(genesis_file), use_evm=True
        )

    genesis_file.write_text(json.dumps({"config": {"chainId": 5}}))
    sidecar = await subnet_create.create(
        store, "mysubnet", genesis_file=str(genesis_file), use_evm=True, force=True
    )
    assert sidecar.chain_id == "5"


@pytest.mark.asyncio
async def test_create_invalid_name(store, genesis_file):
    with pytest.raises(InvalidName):
        await subnet_create.create(
            store, "my_subnet", genesis_file=str(genesis_file), use_evm=True
        )


@pytest.mark.asyncio
async def test_create_too_many_vms(store, genesis_file):
    with pytest.raises(TooManyVMs):
        await subnet_create.create(
            store,
            "mysubnet",
            genesis_file=str(genesis_file),
            use_evm=True,
            use_custom=True,
        )


@pytest.mark.asyncio
async def test_list_subnets(deployed_store, genesis_file):
    await subnet_create.create(
        deployed_store, "another", genesis_file=str(genesis_file), use_evm=True
    )
    sidecars = await subnet_create.list_subnets(deployed_store)
    assert [s.name for s in sidecars] == ["another", "mysubnet"]
    assert sidecars[1].subnet_id(Network.FUJI) is not None
    assert sidecars[0].subnet_id(Network.FUJI) is None


def test_sidecar_round_trip(store):
    sidecar = Sidecar(
        name="mysubnet",
        vm=VMTypes.CUSTOM,
        subnet="mysubnet",
        vm_path="/opt/vm",
        networks={"Fuji": NetworkData(subnet_id="abc", blockchain_id="def")},
    )
    store.create_sidecar(sidecar)
    raw = json.loads(store.get_sidecar_path("mysubnet").read_text())
    assert raw["Networks"]["Fuji"] == {"subnetID": "abc", "blockchainID": "def"}
    assert store.load_sidecar("mysubnet") == sidecar


def test_load_missing_sidecar(store):
    with pytest.raises(SidecarNotFound):
        store.load_sidecar("nope")
