import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner
from yaml import safe_load

from cryft_cli.cli import CLIManager, validate_network

from conftest import NODE_A

runner = CliRunner()


def invoke(*args, input=None):
    return runner.invoke(CLIManager().app, list(args), input=input)


def add_validator_args(*extra):
    return [
        "subnet",
        "addValidator",
        "mysubnet",
        "--key",
        "mykey",
        "--network",
        "Fuji",
        "--nodeID",
        NODE_A,
        "--start-time",
        "2099-01-01 00:00:00",
        "--staking-period",
        "720h",
        *extra,
    ]


def test_validate_network():
    assert validate_network(None) is None
    assert validate_network("fuji") == "Fuji"
    assert validate_network("Mainnet (coming soon)") == "Mainnet"
    with pytest.raises(typer.BadParameter):
        validate_network("devnet")


def test_command_tree():
    tree = CLIManager().generate_command_tree()
    groups = [node.label for node in tree.children]
    assert any("subnet" in str(label) for label in groups)
    assert any("config" in str(label) for label in groups)


def test_config_commands_in_help_panel():
    result = invoke("config", "--help")
    assert result.exit_code == 0
    assert "Config Management" in result.output


def test_config_set_and_get(cli_env):
    result = invoke("config", "set", "--network", "fuji", "--key", "mykey")
    assert result.exit_code == 0, result.output

    with open(cli_env / "config.yml") as f:
        config = safe_load(f)
    assert config["network"] == "Fuji"
    assert config["key_name"] == "mykey"

    result = invoke("config", "get")
    assert result.exit_code == 0
    assert "mykey" in result.output


def test_config_clear(cli_env):
    invoke("config", "set", "--network", "Fuji")
    result = invoke("config", "clear", "--network", input="y\n")
    assert result.exit_code == 0, result.output
    with open(cli_env / "config.yml") as f:
        assert safe_load(f)["network"] is None


def test_subnet_create_and_list(cli_env, tmp_path):
    genesis = tmp_path / "genesis.json"
    genesis.write_text(json.dumps({"config": {"chainId": 12}}))

    result = invoke("subnet", "create", "mysubnet", "--evm", "--genesis", str(genesis))
    assert result.exit_code == 0, result.output
    assert (cli_env / "subnets" / "mysubnet_genesis.json").exists()
    assert (cli_env / "subnets" / "mysubnet" / "sidecar.json").exists()

    result = invoke("subnet", "create", "mysubnet", "--evm", "--genesis", str(genesis))
    assert result.exit_code == 1
    assert "already exists" in result.output

    result = invoke("subnet", "list")
    assert result.exit_code == 0
    assert "mysubnet" in result.output


def test_subnet_create_too_many_vms(cli_env):
    result = invoke("subnet", "create", "mysubnet", "--evm", "--custom")
    assert result.exit_code == 1
    assert "too many VMs" in result.output


def test_add_validator_invalid_weight(deployed_store):
    platform = MagicMock()
    platform.get_current_validators = AsyncMock()
    deployer = MagicMock()
    deployer.add_validator = AsyncMock()
    with (
        patch(
            "cryft_cli.src.commands.subnets.validators.PlatformInterface",
            return_value=platform,
        ),
        patch(
            "cryft_cli.src.commands.subnets.validators.PublicDeployer",
            return_value=deployer,
        ),
    ):
        result = invoke(*add_validator_args("--weight", "0"))

    assert result.exit_code == 1
    assert "illegal weight" in result.output
    deployer.add_validator.assert_not_awaited()


def test_add_validator_unknown_network(deployed_store):
    result = invoke(*add_validator_args("--network", "devnet"))
    assert result.exit_code != 0


def test_add_validator_mainnet_unsupported(deployed_store):
    args = add_validator_args("--weight", "20")
    args[args.index("Fuji")] = "Mainnet"
    result = invoke(*args)
    assert result.exit_code == 1
    assert "Mainnet is coming soon" in result.output


def test_add_validator_json_output(deployed_store):
    deployer = MagicMock()
    deployer.add_validator = AsyncMock(return_value="tx-cli")
    with (
        patch(
            "cryft_cli.src.commands.subnets.validators.PlatformInterface",
            return_value=MagicMock(),
        ),
        patch(
            "cryft_cli.src.commands.subnets.validators.PublicDeployer",
            return_value=deployer,
        ),
    ):
        result = invoke(*add_validator_args("--weight", "30", "--json-output"))

    assert result.exit_code == 0, result.output
    assert "tx-cli" in result.output
    args = deployer.add_validator.call_args.args
    assert args[1] == NODE_A
    assert args[2] == 30


def test_add_validator_uses_configured_network(deployed_store, cli_env):
    invoke("config", "set", "--network", "Mainnet")
    args = add_validator_args("--weight", "20")
    network_at = args.index("--network")
    del args[network_at : network_at + 2]
    result = invoke(*args)
    assert result.exit_code == 1
    assert "Mainnet is coming soon" in result.output
