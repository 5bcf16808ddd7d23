import asyncio
import itertools
import logging
from datetime import datetime
from typing import Any, Optional, Protocol

import aiohttp

from cryft_cli.src import Constants
from cryft_cli.src.cryft.errors import (
    SubmissionError,
    TransportError,
    TransportTimeout,
)
from cryft_cli.src.cryft.models import Network, ValidatorRecord
from cryft_cli.src.cryft.utils import console

logger = logging.getLogger("cryft_cli")


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error)


class ValidatorSetGateway(Protocol):
    """The narrow part of the platform API used while resolving staking parameters."""

    network: Network

    async def get_current_validators(
        self, subnet_id: str = Constants.primary_network_id
    ) -> list[ValidatorRecord]: ...


class PlatformInterface:
    """
    Thin layer for talking to the platform chain JSON-RPC API of a node. Every request is bounded by
    `Constants.request_timeout` and is never retried.
    """

    def __init__(
        self,
        network: Network,
        uri: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.network = network
        self.uri = uri or network.p_chain_uri
        self.timeout = aiohttp.ClientTimeout(
            total=timeout or Constants.request_timeout.total_seconds()
        )
        self._ids = itertools.count(1)

    def __str__(self):
        return f"Network: {self.network}, Endpoint: {self.uri}"

    async def _request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Issues a single JSON-RPC call and returns the decoded response body.

        :raises TransportTimeout: when the request does not complete within the timeout
        :raises TransportError: on connection or HTTP failures
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug(f"RPC {method} -> {self.uri}")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.uri, json=payload) as response:
                    response.raise_for_status()
                    body = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise TransportTimeout(
                f"request {method} to {self.uri} timed out after {self.timeout.total:.0f}s"
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"request {method} to {self.uri} failed: {e}") from e
        logger.debug(f"RPC {method} <- {body}")
        return body

    async def get_current_validators(
        self, subnet_id: str = Constants.primary_network_id
    ) -> list[ValidatorRecord]:
        """
        Retrieves the current validator set of a subnet (by default, the primary network).

        :param subnet_id: the subnet whose validators should be returned

        :return: the validators, each with its node ID and staking end time
        """
        with console.status(
            f":satellite: Fetching current validators from {self.network}...",
            spinner="earth",
        ):
            body = await self._request(
                "platform.getCurrentValidators", {"subnetID": subnet_id}
            )
        if "error" in body:
            raise TransportError(
                f"platform.getCurrentValidators failed: {_error_message(body['error'])}"
            )
        if not isinstance(body.get("result"), dict):
            raise TransportError(
                "platform.getCurrentValidators returned neither a result nor an error"
            )
        return [
            ValidatorRecord.from_rpc(v) for v in body["result"].get("validators", [])
        ]

    async def add_subnet_validator(
        self,
        username: str,
        password: str,
        subnet_id: str,
        node_id: str,
        weight: int,
        start: datetime,
        end: datetime,
    ) -> str:
        """
        Issues an add-subnet-validator transaction, signed by the node keystore user.

        :return: the ID of the issued transaction
        :raises SubmissionError: when the node rejects the transaction
        """
        body = await self._request(
            "platform.addSubnetValidator",
            {
                "username": username,
                "password": password,
                "subnetID": subnet_id,
                "nodeID": node_id,
                "weight": weight,
                "startTime": int(start.timestamp()),
                "endTime": int(end.timestamp()),
            },
        )
        if "error" in body:
            raise SubmissionError(
                f"failed to add validator: {_error_message(body['error'])}"
            )
        tx_id = (body.get("result") or {}).get("txID")
        if not tx_id:
            raise SubmissionError(
                "failed to add validator: the node returned no transaction ID"
            )
        return tx_id
