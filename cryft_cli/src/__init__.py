from datetime import timedelta
from enum import Enum


class Constants:
    fuji_api_endpoint = "https://api.avax-test.network"
    mainnet_api_endpoint = "https://api.avax.network"
    p_chain_path = "/ext/bc/P"
    network_map = {
        "fuji": fuji_api_endpoint,
        "mainnet": mainnet_api_endpoint,
    }

    # the primary network is identified by the empty ID
    primary_network_id = "11111111111111111111111111111111LpoYY"
    node_id_prefix = "NodeID-"

    request_timeout = timedelta(minutes=3)
    time_parse_layout = "%Y-%m-%d %H:%M:%S"
    time_parse_layout_hint = "YYYY-MM-DD HH:MM:SS"

    staking_start_lead_time = timedelta(minutes=5)
    staking_minimum_lead_time = timedelta(seconds=25)

    min_stake_weight = 1
    default_stake_weight = 20
    max_stake_weight = 100

    key_suffix = ".pk"
    genesis_suffix = "_genesis.json"
    sidecar_name = "sidecar.json"

    subnet_evm_default_gas_limit = 8_000_000
    subnet_evm_default_min_base_fee = 25_000_000_000
    subnet_evm_default_target_gas = 15_000_000


class Defaults:
    class config:
        base_path = "~/.cryft-cli"
        path = "~/.cryft-cli/config.yml"
        debug_file_path = "~/.cryft-cli/debug.txt"
        dictionary = {
            "network": None,
            "key_name": None,
            "base_dir": None,
            "use_cache": True,
        }

    class app:
        key_dir = "key"
        subnet_dir = "subnets"


defaults = Defaults


class VMTypes(Enum):
    SUBNET_EVM = "SubnetEVM"
    CUSTOM = "Custom"


# Help Panels for cli help
HELP_PANELS = {
    "SUBNETS": {
        "CREATION": "Subnet Creation & Management",
        "VALIDATORS": "Validator Management",
        "INFO": "Subnet Information",
    },
    "CONFIG": {
        "MANAGEMENT": "Config Management",
    },
}


class ColorPalette:
    def __init__(self):
        self.GENERAL = self.General()
        # aliases
        self.G = self.GENERAL

    class General:
        HEADER = "#4196D6"  # Light Blue
        LINKS = "#8CB9E9"  # Sky Blue
        HINT = "#A2E5B8"  # Mint Green
        NODE_ID = "#ECC39D"  # Light Orange/Peach
        SUBHEADING_MAIN = "#7ECFEC"  # Light Cyan
        SUBHEADING = "#AFEFFF"  # Pale Blue
        WEIGHT = "#E7CC51"  # Gold
        TIME = "#53B5A0"  # Teal
        SUCCESS = "#53B5A0"  # Teal
        SUBNET = "#CBA880"  # Tan
        ARG = "#A2E5B8"  # Mint Green
        # aliases
        SUBHEAD_MAIN = SUBHEADING_MAIN
        SUBHEAD = SUBHEADING


COLOR_PALETTE = ColorPalette()
COLORS = COLOR_PALETTE
