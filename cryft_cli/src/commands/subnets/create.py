import json
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Column, Table
from rich import box

from cryft_cli.src import COLORS, Constants, VMTypes
from cryft_cli.src.cryft.errors import (
    ConfigurationExists,
    CryftCLIError,
    TooManyVMs,
)
from cryft_cli.src.cryft.models import Sidecar
from cryft_cli.src.cryft.utils import (
    capture_list,
    console,
    retry_prompt,
    validate_subnet_name,
)

if TYPE_CHECKING:
    from cryft_cli.src.cryft.app_store import AppStore

logger = logging.getLogger("cryft_cli")

WEI_PER_TOKEN = 10**18
EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
ZERO_HASH = "0x" + "00" * 32


def get_vm_from_flags(use_evm: bool, use_custom: bool) -> Optional[VMTypes]:
    """
    Returns the VM selected by flags, or None when no VM flag was given.

    :raises TooManyVMs: when more than one VM flag is set
    """
    if use_evm and use_custom:
        raise TooManyVMs("too many VMs selected. Provide at most one VM selection flag")
    if use_evm:
        return VMTypes.SUBNET_EVM
    if use_custom:
        return VMTypes.CUSTOM
    return None


def subnet_evm_genesis(
    chain_id: int, airdrop: Optional[dict[str, int]] = None
) -> dict:
    """
    Builds a Subnet-EVM genesis document with the default fee configuration.

    :param chain_id: the EVM chain ID of the new chain
    :param airdrop: mapping of 0x-prefixed addresses to whole-token balances
    """
    alloc = {
        address[2:].lower(): {"balance": hex(amount * WEI_PER_TOKEN)}
        for address, amount in (airdrop or {}).items()
    }
    return {
        "config": {
            "chainId": chain_id,
            "homesteadBlock": 0,
            "eip150Block": 0,
            "eip150Hash": "0x2086799aeebeae135c246c65021c82b4e15a2c451340993aacfd2751886514f0",
            "eip155Block": 0,
            "eip158Block": 0,
            "byzantiumBlock": 0,
            "constantinopleBlock": 0,
            "petersburgBlock": 0,
            "istanbulBlock": 0,
            "muirGlacierBlock": 0,
            "subnetEVMTimestamp": 0,
            "feeConfig": {
                "gasLimit": Constants.subnet_evm_default_gas_limit,
                "minBaseFee": Constants.subnet_evm_default_min_base_fee,
                "targetGas": Constants.subnet_evm_default_target_gas,
                "baseFeeChangeDenominator": 36,
                "minBlockGasCost": 0,
                "maxBlockGasCost": 1_000_000,
                "targetBlockRate": 2,
                "blockGasCostStep": 200_000,
            },
        },
        "alloc": alloc,
        "nonce": "0x0",
        "timestamp": "0x0",
        "extraData": "0x",
        "gasLimit": hex(Constants.subnet_evm_default_gas_limit),
        "difficulty": "0x0",
        "mixHash": ZERO_HASH,
        "coinbase": "0x" + "00" * 20,
        "number": "0x0",
        "gasUsed": "0x0",
        "parentHash": ZERO_HASH,
    }


def _read_genesis(genesis_file: str) -> bytes:
    path = Path(os.path.expanduser(genesis_file))
    if not path.is_file():
        raise CryftCLIError(f"genesis file {genesis_file!r} does not exist")
    data = path.read_bytes()
    try:
        json.loads(data)
    except ValueError as e:
        raise CryftCLIError(f"genesis file {genesis_file!r} is not valid JSON: {e}")
    return data


def prompt_airdrop() -> dict[str, int]:
    airdrop = {}
    while Confirm.ask("Would you like to airdrop tokens to an address?", default=False):
        address = retry_prompt(
            "Enter the [blue]0x address[/blue] to fund",
            rejection=lambda v: not EVM_ADDRESS.match(v.strip()),
            rejection_text="[red]Invalid address, expected 0x followed by 40 hex characters[/red]",
        ).strip()
        airdrop[address] = IntPrompt.ask(
            "How many tokens should this address receive?", default=1_000_000
        )
    return airdrop


def create_evm_subnet_config(
    subnet_name: str, genesis_file: Optional[str]
) -> tuple[bytes, Sidecar]:
    if genesis_file:
        genesis_bytes = _read_genesis(genesis_file)
        chain_id = str(json.loads(genesis_bytes).get("config", {}).get("chainId", ""))
        token_name = ""
    else:
        chain_id = str(IntPrompt.ask("Enter your subnet's [blue]ChainId[/blue]"))
        token_name = Prompt.ask("Select a symbol for your subnet's native token", default="TEST")
        genesis = subnet_evm_genesis(int(chain_id), prompt_airdrop())
        genesis_bytes = json.dumps(genesis, indent=4).encode()
    sidecar = Sidecar(
        name=subnet_name,
        vm=VMTypes.SUBNET_EVM,
        subnet=subnet_name,
        token_name=token_name,
        chain_id=chain_id,
    )
    return genesis_bytes, sidecar


def create_custom_subnet_config(
    subnet_name: str, genesis_file: Optional[str], vm_file: Optional[str]
) -> tuple[bytes, Sidecar]:
    if not genesis_file:
        genesis_file = Prompt.ask("Enter the path to your custom genesis")
    if not vm_file:
        vm_file = Prompt.ask("Enter the path to your custom VM binary")
    vm_path = Path(os.path.expanduser(vm_file))
    if not vm_path.is_file():
        raise CryftCLIError(f"VM binary {vm_file!r} does not exist")
    genesis_bytes = _read_genesis(genesis_file)
    sidecar = Sidecar(
        name=subnet_name,
        vm=VMTypes.CUSTOM,
        subnet=subnet_name,
        vm_path=str(vm_path.resolve()),
    )
    return genesis_bytes, sidecar


async def create(
    store: "AppStore",
    subnet_name: str,
    genesis_file: Optional[str] = None,
    vm_file: Optional[str] = None,
    use_evm: bool = False,
    use_custom: bool = False,
    force: bool = False,
) -> Sidecar:
    """Builds a genesis and sidecar for a new subnet and writes both to the store."""
    if store.genesis_exists(subnet_name) and not force:
        raise ConfigurationExists(
            "configuration already exists. Use --force parameter to overwrite"
        )
    validate_subnet_name(subnet_name)

    vm = get_vm_from_flags(use_evm, use_custom)
    if vm is None:
        vm = VMTypes(
            capture_list("Choose your VM", [VMTypes.SUBNET_EVM.value, VMTypes.CUSTOM.value])
        )
    logger.debug(f"Creating {vm.value} subnet configuration {subnet_name}")

    if vm is VMTypes.SUBNET_EVM:
        genesis_bytes, sidecar = create_evm_subnet_config(subnet_name, genesis_file)
    else:
        genesis_bytes, sidecar = create_custom_subnet_config(
            subnet_name, genesis_file, vm_file
        )

    store.write_genesis_file(subnet_name, genesis_bytes)
    store.create_sidecar(sidecar)
    console.print(
        f":white_heavy_check_mark: [{COLORS.G.SUCCESS}]Successfully created subnet configuration[/{COLORS.G.SUCCESS}]"
    )
    return sidecar


async def list_subnets(store: "AppStore") -> list[Sidecar]:
    """Prints the locally known subnet configurations with their deployed subnet IDs."""
    sidecars = store.list_sidecars()
    table = Table(
        Column("[bold white]Subnet", style=COLORS.G.SUBNET),
        Column("[bold white]VM", style=COLORS.G.SUBHEAD),
        Column("[bold white]Chain ID", style=COLORS.G.HINT),
        Column("[bold white]Fuji", style=COLORS.G.LINKS),
        Column("[bold white]Mainnet", style=COLORS.G.LINKS),
        box=box.SIMPLE_HEAD,
        title=f"[{COLORS.G.HEADER}]Subnet configurations[/{COLORS.G.HEADER}]: {store.subnet_dir}",
    )
    for sidecar in sidecars:
        table.add_row(
            sidecar.name,
            sidecar.vm.value,
            sidecar.chain_id or "-",
            *[
                (sidecar.networks[net].subnet_id if net in sidecar.networks else "")
                or "-"
                for net in ("Fuji", "Mainnet")
            ],
        )
    console.print(table)
    return sidecars
