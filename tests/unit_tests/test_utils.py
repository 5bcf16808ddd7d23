from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import typer

from cryft_cli.src import Constants
from cryft_cli.src.cryft import utils
from cryft_cli.src.cryft.errors import InvalidName, InvalidWeight, ParseError, TooSoon

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "weight,valid",
    [
        (Constants.min_stake_weight - 1, False),
        (Constants.min_stake_weight, True),
        (Constants.default_stake_weight, True),
        (Constants.max_stake_weight, True),
        (Constants.max_stake_weight + 1, False),
        (-20, False),
    ],
)
def test_validate_stake_weight(weight, valid):
    if valid:
        assert utils.validate_stake_weight(weight) == weight
    else:
        with pytest.raises(InvalidWeight, match="between 1 and 100"):
            utils.validate_stake_weight(weight)


@pytest.mark.parametrize("name", ["mysubnet", "My Subnet 2", "abc123", "", "   "])
def test_validate_subnet_name_accepts_letters_digits_spaces(name):
    assert utils.validate_subnet_name(name) == name


@pytest.mark.parametrize(
    "name", ["my-subnet", "my_subnet", "subnet!", "café", "tab\there", "ünïcode", "a/b"]
)
def test_validate_subnet_name_rejects_other_characters(name):
    with pytest.raises(InvalidName):
        utils.validate_subnet_name(name)


def test_validate_start_time_boundary():
    boundary = NOW + Constants.staking_minimum_lead_time
    assert utils.validate_start_time(boundary, NOW) == boundary
    assert utils.validate_start_time(boundary + timedelta(seconds=1), NOW)
    with pytest.raises(TooSoon):
        utils.validate_start_time(boundary - timedelta(seconds=1), NOW)
    with pytest.raises(TooSoon):
        utils.validate_start_time(NOW - timedelta(days=1), NOW)


def test_parse_start_time_round_trip():
    parsed = utils.parse_start_time("2024-01-01 00:00:00")
    assert parsed == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert utils.format_time(parsed) == "2024-01-01 00:00:00"


@pytest.mark.parametrize(
    "value", ["2024-01-01", "2024-13-01 00:00:00", "01/01/2024 00:00:00", "tomorrow", ""]
)
def test_parse_start_time_malformed(value):
    with pytest.raises(ParseError):
        utils.parse_start_time(value)


def test_format_time_converts_to_utc():
    value = datetime(2024, 1, 1, 2, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert utils.format_time(value) == "2024-01-01 00:00:00"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("8760h", timedelta(hours=8760)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("90m", timedelta(minutes=90)),
        ("45s", timedelta(seconds=45)),
        ("1.5h", timedelta(minutes=90)),
        ("1h0m30s", timedelta(hours=1, seconds=30)),
        ("1500ms", timedelta(seconds=1.5)),
    ],
)
def test_parse_duration(value, expected):
    assert utils.parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "10", "h", "10d", "1h 30m", "-5h", "0h", "abc"])
def test_parse_duration_malformed(value):
    with pytest.raises(ParseError):
        utils.parse_duration(value)


def test_format_duration():
    assert utils.format_duration(timedelta(hours=8760)) == "8760h0m0s"
    assert utils.format_duration(timedelta(minutes=5, seconds=3)) == "5m3s"
    assert utils.format_duration(Constants.staking_minimum_lead_time) == "25s"


def test_duration_callback():
    assert utils.duration_callback(None) is None
    assert utils.duration_callback("720h") == timedelta(hours=720)
    with pytest.raises(typer.BadParameter):
        utils.duration_callback("forever")
    with pytest.raises(typer.BadParameter, match="out of range"):
        utils.duration_callback("99999999999h")


def test_parse_duration_upper_bound():
    assert utils.parse_duration("2562047h") == timedelta(hours=2562047)
    assert utils.parse_duration("2562047h47m16s") == timedelta(
        hours=2562047, minutes=47, seconds=16
    )
    with pytest.raises(ParseError, match="out of range"):
        utils.parse_duration("2562048h")


def test_add_duration():
    assert utils.add_duration(NOW, timedelta(hours=1)) == NOW + timedelta(hours=1)
    with pytest.raises(ParseError, match="out of range"):
        utils.add_duration(
            datetime(9999, 12, 31, tzinfo=timezone.utc), timedelta(days=10)
        )


def test_capture_duration_reprompts_when_too_long():
    with patch.object(utils.Prompt, "ask", side_effect=["80000000h", "1h"]) as ask:
        assert utils.capture_duration("How long?") == timedelta(hours=1)
    assert ask.call_count == 2


def test_retry_prompt_asks_until_accepted():
    with patch.object(utils.Prompt, "ask", side_effect=["bad", "worse", "good"]) as ask:
        result = utils.retry_prompt(
            "value?", rejection=lambda v: v != "good", rejection_text="no"
        )
    assert result == "good"
    assert ask.call_count == 3


def test_capture_list_returns_chosen_option():
    with patch.object(utils.IntPrompt, "ask", return_value=2):
        assert utils.capture_list("Pick", ["one", "two", "three"]) == "two"


def test_capture_date_reprompts_on_malformed_input():
    with patch.object(
        utils.Prompt, "ask", side_effect=["not a date", "2030-06-01 10:00:00"]
    ) as ask:
        result = utils.capture_date("When?")
    assert result == datetime(2030, 6, 1, 10, 0, 0, tzinfo=timezone.utc)
    assert ask.call_count == 2


def test_capture_weight_rejects_out_of_range():
    with patch.object(utils.Prompt, "ask", side_effect=["0", "abc", "101", "42"]) as ask:
        assert utils.capture_weight("Weight?") == 42
    assert ask.call_count == 4


def test_capture_date_reprompts_when_too_early():
    with patch.object(
        utils.Prompt, "ask", side_effect=["2023-12-31 00:00:00", "2024-01-02 00:00:00"]
    ) as ask:
        result = utils.capture_date("When?", earliest=NOW)
    assert result == datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert ask.call_count == 2
