import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from rich.prompt import Prompt

from cryft_cli.src.cryft.app_store import AppStore
from cryft_cli.src.cryft.errors import KeyNotFound
from cryft_cli.src.cryft.platform_interface import PlatformInterface
from cryft_cli.src.cryft.utils import console, format_time

logger = logging.getLogger("cryft_cli")


class PublicDeployer:
    """
    Issues transactions against a public network on behalf of a stored key.

    The key name doubles as the node keystore user that signs the transaction. The keystore password is
    read from `CRYFT_KEYSTORE_PASSWORD` or prompted for.
    """

    def __init__(
        self,
        store: AppStore,
        key_name: str,
        platform: PlatformInterface,
        password: Optional[str] = None,
    ):
        self.store = store
        self.key_name = key_name
        self.platform = platform
        self._password = password

    def _unlock(self) -> str:
        key_path = self.store.get_key_path(self.key_name)
        if not key_path.exists():
            raise KeyNotFound(f"key {self.key_name!r} not found at {key_path}")
        if self._password is None:
            self._password = os.getenv("CRYFT_KEYSTORE_PASSWORD") or Prompt.ask(
                f"Enter the keystore password for [bold]{self.key_name}[/bold]",
                password=True,
            )
        return self._password

    async def add_validator(
        self,
        subnet_id: str,
        node_id: str,
        weight: int,
        start: datetime,
        duration: timedelta,
    ) -> str:
        """
        Allow-lists `node_id` on `subnet_id` for the window `[start, start + duration)`.

        :return: the issued transaction ID
        """
        password = self._unlock()
        end = start + duration
        logger.debug(
            f"Adding validator {node_id} to {subnet_id}: weight={weight}, "
            f"start={format_time(start)}, end={format_time(end)}"
        )
        with console.status(
            f":satellite: Issuing add validator transaction on {self.platform.network}...",
            spinner="earth",
        ):
            return await self.platform.add_subnet_validator(
                username=self.key_name,
                password=password,
                subnet_id=subnet_id,
                node_id=node_id,
                weight=weight,
                start=start,
                end=end,
            )
