import json
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from rich.prompt import Confirm

from cryft_cli.src import COLORS, Constants
from cryft_cli.src.cryft.errors import (
    KeyNotFound,
    NoSubnetID,
    NodeNotFound,
    ParseError,
    TooSoon,
    UnsupportedNetwork,
)
from cryft_cli.src.cryft.deployer import PublicDeployer
from cryft_cli.src.cryft.ids import parse_node_id
from cryft_cli.src.cryft.json_utils import json_success
from cryft_cli.src.cryft.models import (
    COMING_SOON,
    AddValidatorRequest,
    Network,
    ValidationWindow,
)
from cryft_cli.src.cryft.platform_interface import PlatformInterface
from cryft_cli.src.cryft.utils import (
    _rejects,
    add_duration,
    capture_date,
    capture_duration,
    capture_list,
    capture_weight,
    console,
    format_time,
    json_console,
    print_error,
    parse_start_time,
    retry_prompt,
    utc_now,
    validate_stake_weight,
    validate_start_time,
    validate_subnet_name,
)

if TYPE_CHECKING:
    from cryft_cli.src.cryft.app_store import AppStore
    from cryft_cli.src.cryft.platform_interface import ValidatorSetGateway

logger = logging.getLogger("cryft_cli")

DEFAULT_START_OPTION = "Start in five minutes"
DEFAULT_DURATION_OPTION = "Until primary network validator expires"
CUSTOM_OPTION = "Custom"


# start time


def resolve_start_time(
    request: AddValidatorRequest, now: Optional[datetime] = None
) -> datetime:
    """
    Decides when the validator starts validating.

    An explicit `--start-time` is parsed and must leave the minimum lead time; otherwise the operator
    chooses between starting shortly and entering a custom UTC datetime.
    """
    now = now or utc_now()
    if request.start_time:
        return validate_start_time(parse_start_time(request.start_time), now)

    console.print(
        "When should your validator start validating?\n"
        "If your validator is not ready by this time, subnet downtime can occur."
    )
    option = capture_list("Start time", [DEFAULT_START_OPTION, CUSTOM_OPTION])
    if option == DEFAULT_START_OPTION:
        return now + Constants.staking_start_lead_time
    return capture_date(
        "When should the validator start validating? Enter a UTC datetime in "
        f"'{Constants.time_parse_layout_hint}' format",
        earliest=now + Constants.staking_minimum_lead_time,
    )


# duration


class DurationPromptState(Enum):
    AWAITING_CANDIDATE = "awaiting_candidate"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    RESOLVED = "resolved"


class DurationPrompt:
    """
    Asks for a staking duration until the operator confirms the resulting end time.

    Confirmation is the only way to reach RESOLVED; a rejection goes back to AWAITING_CANDIDATE.
    """

    prompt_text = "How long should this validator be validating? Enter a duration, e.g. 8760h"

    def __init__(self, start: datetime):
        self.start = start
        self.state = DurationPromptState.AWAITING_CANDIDATE
        self.candidate: Optional[timedelta] = None
        self.cycles = 0

    def step(self) -> DurationPromptState:
        if self.state is DurationPromptState.AWAITING_CANDIDATE:
            self.candidate = capture_duration(self.prompt_text)
            self.cycles += 1
            self.state = DurationPromptState.AWAITING_CONFIRMATION
        elif self.state is DurationPromptState.AWAITING_CONFIRMATION:
            try:
                end = add_duration(self.start, self.candidate)
            except ParseError as e:
                print_error(str(e))
                self.state = DurationPromptState.AWAITING_CANDIDATE
                return self.state
            if Confirm.ask(
                f"Your validator will finish staking by {format_time(end)}"
            ):
                self.state = DurationPromptState.RESOLVED
            else:
                self.state = DurationPromptState.AWAITING_CANDIDATE
        return self.state

    def run(self) -> timedelta:
        while self.step() is not DurationPromptState.RESOLVED:
            pass
        return self.candidate


def prompt_duration(start: datetime) -> timedelta:
    return DurationPrompt(start).run()


async def get_max_validation_time(
    gateway: "ValidatorSetGateway",
    node_id: str,
    start: datetime,
) -> timedelta:
    """
    Computes how long `node_id` can validate from `start` until its primary network validation ends.

    :raises NodeNotFound: when the node is not in the primary network's current validator set
    :raises TooSoon: when the node stops validating the primary network before `start`
    """
    validators = await gateway.get_current_validators(Constants.primary_network_id)
    for validator in validators:
        if validator.node_id == node_id:
            duration = (
                datetime.fromtimestamp(validator.end_time, timezone.utc) - start
            )
            if duration <= timedelta(0):
                raise TooSoon(
                    f"{node_id} stops validating the primary network at "
                    f"{format_time(datetime.fromtimestamp(validator.end_time, timezone.utc))}, "
                    f"before the requested start time {format_time(start)}"
                )
            return duration
    raise NodeNotFound(node_id)


async def resolve_duration(
    request: AddValidatorRequest,
    gateway: "ValidatorSetGateway",
    node_id: str,
    start: datetime,
) -> timedelta:
    if request.staking_period:
        return request.staking_period

    option = capture_list(
        "How long should your validator validate for?",
        [DEFAULT_DURATION_OPTION, CUSTOM_OPTION],
    )
    if option == DEFAULT_DURATION_OPTION:
        return await get_max_validation_time(gateway, node_id, start)
    return prompt_duration(start)


async def get_time_parameters(
    request: AddValidatorRequest,
    gateway: "ValidatorSetGateway",
    node_id: str,
    now: Optional[datetime] = None,
) -> ValidationWindow:
    start = resolve_start_time(request, now)
    duration = await resolve_duration(request, gateway, node_id, start)
    add_duration(start, duration)
    return ValidationWindow(start=start, duration=duration)


# other inputs


def capture_key_name(store: "AppStore") -> str:
    keys = store.list_keys()
    if not keys:
        raise KeyNotFound(
            f"no keys found in {store.key_dir}, add a '<name>{Constants.key_suffix}' key file first"
        )
    return capture_list(
        "Which private key should be used to issue the transaction?", keys
    )


def capture_network() -> Network:
    option = capture_list(
        "Choose a network to deploy on. This command only supports Fuji currently.",
        [str(Network.FUJI), str(Network.MAINNET) + COMING_SOON],
    )
    return Network.from_string(option)


def resolve_node_id(request: AddValidatorRequest) -> str:
    if request.node_id:
        return parse_node_id(request.node_id)

    value = retry_prompt(
        "What is the NodeID of the validator you'd like to whitelist?",
        rejection=_rejects(parse_node_id),
        rejection_text="[red]Invalid NodeID, expected a value such as NodeID-7Xhw2mDxuDS44j42TCB6U5579esbSt3Lg[/red]",
    )
    return parse_node_id(value)


def resolve_weight(request: AddValidatorRequest) -> int:
    if request.weight is not None:
        return validate_stake_weight(request.weight)

    text = "What stake weight would you like to assign to the validator?"
    default_option = f"Default ({Constants.default_stake_weight})"
    option = capture_list(text, [default_option, CUSTOM_OPTION])
    if option == default_option:
        return Constants.default_stake_weight
    return capture_weight(text)


def print_summary(
    node_id: str, network: Network, window: ValidationWindow, weight: int
) -> None:
    console.print(
        f"[{COLORS.G.SUBHEAD}]NodeID:[/{COLORS.G.SUBHEAD}] [{COLORS.G.NODE_ID}]{node_id}[/{COLORS.G.NODE_ID}]\n"
        f"[{COLORS.G.SUBHEAD}]Network:[/{COLORS.G.SUBHEAD}] {network}\n"
        f"[{COLORS.G.SUBHEAD}]Start time:[/{COLORS.G.SUBHEAD}] [{COLORS.G.TIME}]{format_time(window.start)}[/{COLORS.G.TIME}]\n"
        f"[{COLORS.G.SUBHEAD}]End time:[/{COLORS.G.SUBHEAD}] [{COLORS.G.TIME}]{format_time(window.end)}[/{COLORS.G.TIME}]\n"
        f"[{COLORS.G.SUBHEAD}]Weight:[/{COLORS.G.SUBHEAD}] [{COLORS.G.WEIGHT}]{weight}[/{COLORS.G.WEIGHT}]"
    )
    console.print(
        "Inputs complete, issuing transaction to add the provided validator information..."
    )


def resolve_key_and_network(
    request: AddValidatorRequest, store: "AppStore"
) -> AddValidatorRequest:
    """Fills in the signing key and network, prompting for whichever is missing."""
    if not request.key_name:
        request.key_name = capture_key_name(store)
    if request.network is None:
        request.network = capture_network()
    if request.network is Network.MAINNET:
        raise UnsupportedNetwork(
            "Mainnet is coming soon, this command only supports Fuji currently"
        )
    logger.debug(f"args:\n{json.dumps(request.as_dict(), default=str)}")
    return request


async def add_validator(
    request: AddValidatorRequest,
    store: "AppStore",
    gateway: Optional["ValidatorSetGateway"] = None,
    deployer: Optional["PublicDeployer"] = None,
    json_output: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """
    Allow-lists a primary network validator on a deployed subnet.

    Inputs are validated as they are resolved, so the first bad value aborts the command before anything
    is submitted. The gateway and deployer are built for the selected network and key unless both are
    supplied.

    :return: the ID of the issued transaction
    """
    if (gateway is None) != (deployer is None):
        raise ValueError("gateway and deployer must be supplied together")
    request = resolve_key_and_network(request, store)
    network = request.network

    validate_subnet_name(request.subnet_name)
    sidecar = store.load_sidecar(request.subnet_name)
    subnet_id = sidecar.subnet_id(network)
    if subnet_id is None:
        raise NoSubnetID(request.subnet_name, str(network))

    if gateway is None:
        platform = PlatformInterface(network)
        gateway, deployer = platform, PublicDeployer(store, request.key_name, platform)

    node_id = resolve_node_id(request)
    weight = resolve_weight(request)
    window = await get_time_parameters(request, gateway, node_id, now)
    logger.debug(
        f"Resolved validator: node_id={node_id}, weight={weight}, "
        f"start={format_time(window.start)}, duration={window.duration}"
    )

    if not json_output:
        print_summary(node_id, network, window, weight)
    tx_id = await deployer.add_validator(
        subnet_id, node_id, weight, window.start, window.duration
    )
    if json_output:
        json_console.print(
            json_success(
                {
                    "tx_id": tx_id,
                    "subnet_id": subnet_id,
                    "node_id": node_id,
                    "network": str(network),
                    "weight": weight,
                    "start_time": format_time(window.start),
                    "end_time": format_time(window.end),
                }
            )
        )
    else:
        console.print(
            f":white_heavy_check_mark: [{COLORS.G.SUCCESS}]Validator {node_id} added to subnet "
            f"{request.subnet_name}[/{COLORS.G.SUCCESS}] (tx: {tx_id})"
        )
    return tx_id
