from datetime import date

import pytest

from conftest import ETHEREUM_ADDRESS
from core.errors import InvalidArgumentError, NotFoundError
from modules.query import QueryRequest, TimeUnit, parse_query_args


def test_parse_full_argument_set(registry):
    request = parse_query_args(
        registry,
        [
            "--query", "beacons-gas-cost-time",
            "--chain", "ethereum",
            "--time", "w",
            "--interval", "2",
            "--start", "01-01-2023",
            "--end", "31-12-2023",
            "--output", "html",
        ],
    )
    assert request == QueryRequest(
        query_name="beacons-gas-cost-time",
        chain_name="ethereum",
        resolved_address=ETHEREUM_ADDRESS,
        time_unit=TimeUnit.WEEK,
        interval=2,
        start_date=date(2023, 1, 1),
        end_date=date(2023, 12, 31),
        output_format="html",
    )


def test_parse_equals_form_and_custom_query(registry):
    request = parse_query_args(registry, ["--query=custom: SELECT 1;"])
    assert request.query_name == "custom: SELECT 1;"
    assert request.chain_name is None
    assert request.resolved_address is None
    assert request.output_format is None


@pytest.mark.parametrize("arg, unit", [("d", "DAY"), ("m", "MONTH"), ("w", "WEEK"), ("y", "YEAR")])
def test_time_unit_words(registry, arg, unit):
    request = parse_query_args(registry, ["--query", "q", "--time", arg])
    assert request.time_unit.word == unit


def test_unknown_chain_fails_at_parse_time(registry):
    with pytest.raises(NotFoundError):
        parse_query_args(registry, ["--query", "beacon-events-full", "--chain", "solana"])


def test_missing_query_option(registry):
    with pytest.raises(InvalidArgumentError):
        parse_query_args(registry, ["--chain", "ethereum"])


@pytest.mark.parametrize(
    "argv",
    [
        ["--time", "h"],
        ["--time", "D"],
        ["--time", " w"],
        ["--interval", "0"],
        ["--interval", "seven"],
        ["--start", "2023-01-01"],
        ["--end", "31/12/2023"],
    ],
)
def test_malformed_typed_options(registry, argv):
    with pytest.raises(InvalidArgumentError):
        parse_query_args(registry, ["--query", "beacons-gas-cost-time", *argv])


def test_unsupported_output_format_is_kept_for_reporter(registry):
    request = parse_query_args(registry, ["--query", "beacon-gas-cost", "--output", "xml"])
    assert request.output_format == "xml"


def test_build_without_chain_skips_registry(registry):
    request = QueryRequest.build(registry, query_name="beacons-gas-cost-all", interval=3)
    assert request.resolved_address is None
    assert request.interval == 3
