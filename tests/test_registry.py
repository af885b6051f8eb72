import json

import pytest

from conftest import ETHEREUM_ADDRESS
from core.errors import NotFoundError
from modules.query import DeploymentRegistry, load_registry


def test_resolve_address_by_chain_name(registry):
    assert registry.resolve_address("ethereum") == ETHEREUM_ADDRESS


def test_resolve_address_unknown_chain_name(registry):
    with pytest.raises(NotFoundError):
        registry.resolve_address("solana")


def test_resolve_address_chain_without_contract(registry):
    # polygon 有链 ID 但没有登记 DapiServer 地址
    with pytest.raises(NotFoundError):
        registry.resolve_address("polygon")


def test_boundary_accessors(registry):
    assert registry.chain_name_to_id("arbitrum") == "42161"
    assert registry.id_to_chain_name("1") == "ethereum"
    assert registry.id_to_chain_name(1) == "ethereum"
    assert registry.id_to_contract_address("DapiServer", 1) == ETHEREUM_ADDRESS
    with pytest.raises(NotFoundError):
        registry.id_to_chain_name("999")
    with pytest.raises(NotFoundError):
        registry.id_to_contract_address("Api3ServerV1", "1")


def test_lookup_chain_name_returns_none_on_miss(registry):
    assert registry.lookup_chain_name("137") == "polygon"
    assert registry.lookup_chain_name("999") is None


def test_registry_is_read_only(registry, references):
    with pytest.raises(TypeError):
        registry.chain_names["1"] = "mainnet"
    with pytest.raises(TypeError):
        registry.contracts["DapiServer"]["1"] = "0x0"
    # 修改原始字典不影响已加载的登记表
    references["chainNames"]["1"] = "mainnet"
    assert registry.id_to_chain_name("1") == "ethereum"


def test_numeric_keys_are_normalised():
    registry = DeploymentRegistry.from_mapping(
        {"chainNames": {1: "ethereum"}, "contracts": {"DapiServer": {1: "0x1"}}}
    )
    assert registry.resolve_address("ethereum") == "0x1"


def test_from_mapping_rejects_malformed_structure():
    with pytest.raises(ValueError):
        DeploymentRegistry.from_mapping({"contracts": {}})
    with pytest.raises(ValueError):
        DeploymentRegistry.from_mapping({"chainNames": {}, "contracts": {"DapiServer": "0x1"}})


def test_load_registry_from_file(tmp_path, references):
    path = tmp_path / "references.json"
    path.write_text(json.dumps(references), encoding="utf-8")
    assert load_registry(path).resolve_address("ethereum") == ETHEREUM_ADDRESS


def test_load_registry_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_registry(tmp_path / "missing.json")
