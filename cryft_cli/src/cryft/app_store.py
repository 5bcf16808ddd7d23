import json
import logging
import os
from pathlib import Path
from typing import Optional

from cryft_cli.src import Constants, defaults
from cryft_cli.src.cryft.errors import SidecarNotFound
from cryft_cli.src.cryft.models import Sidecar

logger = logging.getLogger("cryft_cli")


class AppStore:
    """
    Layout of the cryft-cli base directory:

        <base>/key/<name>.pk                  signing keys
        <base>/subnets/<name>_genesis.json    genesis of each subnet configuration
        <base>/subnets/<name>/sidecar.json    metadata of each subnet configuration
    """

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(
            os.path.expanduser(
                base_dir
                or os.getenv("CRYFT_CLI_BASE_DIR")
                or defaults.config.base_path
            )
        )

    @property
    def key_dir(self) -> Path:
        return self.base_dir / defaults.app.key_dir

    @property
    def subnet_dir(self) -> Path:
        return self.base_dir / defaults.app.subnet_dir

    # keys

    def get_key_path(self, key_name: str) -> Path:
        return self.key_dir / f"{key_name}{Constants.key_suffix}"

    def list_keys(self) -> list[str]:
        if not self.key_dir.is_dir():
            return []
        return sorted(
            path.name[: -len(Constants.key_suffix)]
            for path in self.key_dir.iterdir()
            if path.is_file() and path.name.endswith(Constants.key_suffix)
        )

    # genesis

    def get_genesis_path(self, subnet_name: str) -> Path:
        return self.subnet_dir / f"{subnet_name}{Constants.genesis_suffix}"

    def genesis_exists(self, subnet_name: str) -> bool:
        return self.get_genesis_path(subnet_name).exists()

    def write_genesis_file(self, subnet_name: str, genesis_bytes: bytes) -> Path:
        path = self.get_genesis_path(subnet_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(genesis_bytes)
        logger.debug(f"Wrote genesis for {subnet_name} to {path}")
        return path

    def load_genesis(self, subnet_name: str) -> dict:
        with open(self.get_genesis_path(subnet_name), "r") as f:
            return json.load(f)

    # sidecar

    def get_sidecar_path(self, subnet_name: str) -> Path:
        return self.subnet_dir / subnet_name / Constants.sidecar_name

    def sidecar_exists(self, subnet_name: str) -> bool:
        return self.get_sidecar_path(subnet_name).exists()

    def create_sidecar(self, sidecar: Sidecar) -> Path:
        path = self.get_sidecar_path(sidecar.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(sidecar.to_dict(), f, indent=4)
        logger.debug(f"Wrote sidecar for {sidecar.name} to {path}")
        return path

    def load_sidecar(self, subnet_name: str) -> Sidecar:
        path = self.get_sidecar_path(subnet_name)
        if not path.exists():
            raise SidecarNotFound(
                f"no configuration found for subnet {subnet_name!r}, create it with `cryft-cli subnet create`"
            )
        with open(path, "r") as f:
            return Sidecar.from_dict(json.load(f))

    def list_sidecars(self) -> list[Sidecar]:
        if not self.subnet_dir.is_dir():
            return []
        sidecars = []
        for entry in sorted(self.subnet_dir.iterdir()):
            if entry.is_dir() and (entry / Constants.sidecar_name).exists():
                sidecars.append(self.load_sidecar(entry.name))
        return sidecars
