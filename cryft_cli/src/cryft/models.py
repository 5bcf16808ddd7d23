from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from cryft_cli.src import Constants, VMTypes
from cryft_cli.src.cryft.ids import is_empty_id
from cryft_cli.src.cryft.utils import add_duration

COMING_SOON = " (coming soon)"


class Network(Enum):
    FUJI = "Fuji"
    MAINNET = "Mainnet"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "Network":
        """
        Maps a network display name (as offered in prompts, or set in the config) to a Network.

        The Mainnet prompt option carries a "(coming soon)" suffix, which is ignored here.
        """
        name = value.replace(COMING_SOON, "").strip().lower()
        for network in cls:
            if network.value.lower() == name:
                return network
        raise ValueError(f"Unknown network: {value}")

    @property
    def endpoint(self) -> str:
        return Constants.network_map[self.value.lower()]

    @property
    def p_chain_uri(self) -> str:
        return self.endpoint + Constants.p_chain_path


@dataclass
class ValidatorRecord:
    node_id: str
    end_time: int

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "ValidatorRecord":
        return cls(node_id=data["nodeID"], end_time=int(data["endTime"]))


@dataclass
class ValidationWindow:
    start: datetime
    duration: timedelta

    @property
    def end(self) -> datetime:
        return add_duration(self.start, self.duration)


@dataclass
class NetworkData:
    subnet_id: str = ""
    blockchain_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkData":
        return cls(
            subnet_id=data.get("subnetID", ""),
            blockchain_id=data.get("blockchainID", ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"subnetID": self.subnet_id, "blockchainID": self.blockchain_id}


@dataclass
class Sidecar:
    """Per-subnet metadata persisted next to the genesis file."""

    name: str
    vm: VMTypes
    subnet: str
    token_name: str = ""
    chain_id: str = ""
    vm_path: str = ""
    networks: dict[str, NetworkData] = field(default_factory=dict)

    def subnet_id(self, network: Network) -> Optional[str]:
        data = self.networks.get(str(network))
        if data is None or is_empty_id(data.subnet_id):
            return None
        return data.subnet_id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Sidecar":
        return cls(
            name=data["Name"],
            vm=VMTypes(data["VM"]),
            subnet=data.get("Subnet", data["Name"]),
            token_name=data.get("TokenName", ""),
            chain_id=data.get("ChainID", ""),
            vm_path=data.get("VMPath", ""),
            networks={
                name: NetworkData.from_dict(value)
                for name, value in (data.get("Networks") or {}).items()
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "VM": self.vm.value,
            "Subnet": self.subnet,
            "TokenName": self.token_name,
            "ChainID": self.chain_id,
            "VMPath": self.vm_path,
            "Networks": {name: nd.to_dict() for name, nd in self.networks.items()},
        }


@dataclass
class AddValidatorRequest:
    """
    Everything the operator passed on the command line for `subnet addValidator`.

    Unset values are resolved (usually by prompting) as the request moves through the pipeline.
    """

    subnet_name: str
    key_name: Optional[str] = None
    node_id: Optional[str] = None
    weight: Optional[int] = None
    start_time: Optional[str] = None
    staking_period: Optional[timedelta] = None
    network: Optional[Network] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
