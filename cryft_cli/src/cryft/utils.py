import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from rich.console import Console
from rich.prompt import Prompt, IntPrompt
import typer

from cryft_cli.src import Constants, COLORS
from cryft_cli.src.cryft.errors import InvalidName, InvalidWeight, ParseError, TooSoon

if TYPE_CHECKING:
    from rich.prompt import PromptBase


console = Console()
json_console = Console()
err_console = Console(stderr=True)
verbose_console = Console(quiet=True)


def print_console(message: str, colour: str, title: str, console_: Console):
    console_.print(
        f"[bold {colour}][{title}]:[/bold {colour}] [{colour}]{message}[/{colour}]\n"
    )


def print_error(message: str, status=None):
    """Print error messages while temporarily pausing the status spinner."""
    if status:
        status.stop()
        print_console(message, "red", "Error", err_console)
        status.start()
    else:
        print_console(message, "red", "Error", err_console)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# validation


def validate_subnet_name(name: str) -> str:
    """
    Checks that a subnet name only contains ASCII letters, digits and spaces.

    :raises InvalidName: on the first offending character
    """
    for char in name:
        if not char.isascii() or not (char.isalnum() or char == " "):
            raise InvalidName(name)
    return name


def validate_stake_weight(weight: int) -> int:
    """Checks that `weight` lies within the allowed staking weight bounds (inclusive)."""
    if weight < Constants.min_stake_weight or weight > Constants.max_stake_weight:
        raise InvalidWeight(
            f"illegal weight, must be between {Constants.min_stake_weight} and "
            f"{Constants.max_stake_weight} inclusive: {weight}"
        )
    return weight


def validate_start_time(start: datetime, now: Optional[datetime] = None) -> datetime:
    """
    Checks that `start` leaves at least the minimum staking lead time after `now`.

    :raises TooSoon: when the start time is earlier than `now + staking_minimum_lead_time`
    """
    now = now or utc_now()
    if start < now + Constants.staking_minimum_lead_time:
        raise TooSoon(
            f"time should be at least {format_duration(Constants.staking_minimum_lead_time)} in the future"
        )
    return start


# time formatting and parsing


def parse_start_time(value: str) -> datetime:
    """
    Parses a UTC timestamp in the 'YYYY-MM-DD HH:MM:SS' layout.

    :raises ParseError: on malformed input
    """
    try:
        parsed = datetime.strptime(value.strip(), Constants.time_parse_layout)
    except ValueError as e:
        raise ParseError(
            f"invalid time {value!r}, expected '{Constants.time_parse_layout_hint}' format: {e}"
        ) from e
    return parsed.replace(tzinfo=timezone.utc)


def format_time(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(Constants.time_parse_layout)


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
# largest duration a signed 64-bit nanosecond count can hold (2562047h47m16.854775807s)
MAX_DURATION_SECONDS = (2**63 - 1) / 1e9


def parse_duration(value: str) -> timedelta:
    """
    Parses a duration string such as `8760h`, `1h30m`, `90m` or `1.5h`.

    Returns a positive timedelta.

    :raises ParseError: when the string is malformed, or the duration is not positive or out of range
    """
    text = value.strip()
    if not text:
        raise ParseError("empty duration")
    position = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ParseError(
            f"invalid duration {value!r}, expected a value such as 8760h or 1h30m"
        )
    if seconds <= 0:
        raise ParseError(f"duration must be positive: {value!r}")
    if seconds > MAX_DURATION_SECONDS:
        raise ParseError(f"duration out of range: {value!r}")
    return timedelta(seconds=seconds)


def format_duration(value: timedelta) -> str:
    """Renders a timedelta the way durations are entered, e.g. `8760h0m0s`."""
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def add_duration(start: datetime, duration: timedelta) -> datetime:
    """
    Returns `start + duration`.

    :raises ParseError: when the result falls outside the representable date range
    """
    try:
        return start + duration
    except OverflowError as e:
        raise ParseError(
            f"staking period {format_duration(duration)} from {format_time(start)} is out of range"
        ) from e


def duration_callback(value: Optional[str]) -> Optional[timedelta]:
    """Typer callback converting `--staking-period` into a timedelta."""
    if not value:
        return None
    try:
        return parse_duration(value)
    except ParseError as e:
        raise typer.BadParameter(str(e))


# prompts


def retry_prompt(
    helper_text: str,
    rejection: Callable,
    rejection_text: str,
    default="",
    show_default=False,
    prompt_type: Optional["PromptBase.ask"] = None,
):
    """
    Allows for asking prompts again if they do not meet a certain criteria (as defined in `rejection`)
    Args:
        helper_text: The helper text to display for the prompt
        rejection: A function that returns True if the input should be rejected, and False if it should be accepted
        rejection_text: The text to display to the user if their input hits the rejection
        default: the default value to use for the prompt, default ""
        show_default: whether to show the default, default False
        prompt_type: the type of prompt, default `rich.prompt.Prompt.ask`

    Returns: the input value (or default)

    """
    prompt_type = prompt_type or Prompt.ask
    while True:
        var = prompt_type(helper_text, default=default, show_default=show_default)
        if not rejection(var):
            return var
        else:
            err_console.print(rejection_text)


def _rejects(parser: Callable) -> Callable[[str], bool]:
    def rejection(value: str) -> bool:
        try:
            parser(value)
        except ParseError:
            return True
        return False

    return rejection


def capture_list(prompt_text: str, options: list[str]) -> str:
    """
    Displays a numbered list of options and returns the chosen one.
    """
    console.print(f"[{COLORS.G.SUBHEAD_MAIN}]{prompt_text}[/{COLORS.G.SUBHEAD_MAIN}]")
    for idx, option in enumerate(options, start=1):
        console.print(f"[{COLORS.G.HINT}][{idx}][/{COLORS.G.HINT}] {option}")
    choice = IntPrompt.ask(
        "Enter the [bold]number[/bold] of your choice",
        choices=[str(i) for i in range(1, len(options) + 1)],
        show_choices=False,
    )
    return options[choice - 1]


def capture_date(prompt_text: str, earliest: Optional[datetime] = None) -> datetime:
    """
    Prompts for a UTC datetime, asking again until it parses and is not before `earliest`.
    """

    def rejection(value: str) -> bool:
        try:
            parsed = parse_start_time(value)
        except ParseError:
            return True
        return earliest is not None and parsed < earliest

    value = retry_prompt(
        prompt_text,
        rejection=rejection,
        rejection_text=f"[red]Invalid date, use the '{Constants.time_parse_layout_hint}' format and a time at "
        f"least {format_duration(Constants.staking_minimum_lead_time)} in the future[/red]",
    )
    return parse_start_time(value)


def capture_duration(prompt_text: str) -> timedelta:
    value = retry_prompt(
        prompt_text,
        rejection=_rejects(parse_duration),
        rejection_text="[red]Invalid duration, enter a value such as 8760h or 1h30m[/red]",
    )
    return parse_duration(value)


def capture_weight(prompt_text: str) -> int:
    def rejection(value: str) -> bool:
        try:
            validate_stake_weight(int(value))
        except (ValueError, InvalidWeight):
            return True
        return False

    value = retry_prompt(
        prompt_text,
        rejection=rejection,
        rejection_text=f"[red]Weight must be an integer between {Constants.min_stake_weight} and "
        f"{Constants.max_stake_weight}[/red]",
    )
    return int(value)
