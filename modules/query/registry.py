"""
modules.query.registry: 部署登记表（链 ID ↔ 链名、链 ID → 合约地址）的只读查询。

登记表在进程启动时加载一次，之后不再修改；对外只暴露只读映射。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from core.errors import NotFoundError
from core.utils import load_json

DAPI_SERVER = "DapiServer"


@dataclass(frozen=True)
class DeploymentRegistry:
    """
    部署登记表。

    字段说明：
    - chain_names: {链 ID: 链名}，如 {"1": "ethereum"}；
    - contracts: {合约类型: {链 ID: 地址}}，如 {"DapiServer": {"1": "0x..."}}。
    """

    chain_names: Mapping[str, str]
    contracts: Mapping[str, Mapping[str, str]]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "DeploymentRegistry":
        """
        从 references.json 结构构造登记表，键统一转为字符串，映射冻结为只读。

        预期结构：
        {
          "chainNames": {"1": "ethereum", ...},
          "contracts": {"DapiServer": {"1": "0x...", ...}, ...}
        }
        """
        chain_names_raw = raw.get("chainNames")
        contracts_raw = raw.get("contracts")
        if not isinstance(chain_names_raw, Mapping):
            raise ValueError("部署登记表缺少 chainNames 对象。")
        if not isinstance(contracts_raw, Mapping):
            raise ValueError("部署登记表缺少 contracts 对象。")

        chain_names = {str(k): str(v) for k, v in chain_names_raw.items()}
        contracts: Dict[str, Mapping[str, str]] = {}
        for contract_type, by_chain in contracts_raw.items():
            if not isinstance(by_chain, Mapping):
                raise ValueError(f"部署登记表中 contracts.{contract_type} 不是对象。")
            contracts[str(contract_type)] = MappingProxyType({str(k): str(v) for k, v in by_chain.items()})

        return cls(chain_names=MappingProxyType(chain_names), contracts=MappingProxyType(contracts))

    def chain_name_to_id(self, name: str) -> str:
        for chain_id, chain_name in self.chain_names.items():
            if chain_name == name:
                return chain_id
        raise NotFoundError(f"部署登记表中没有链名为 {name} 的链 ID。")

    def id_to_chain_name(self, chain_id: Union[str, int]) -> str:
        name = self.chain_names.get(str(chain_id))
        if name is None:
            raise NotFoundError(f"部署登记表中没有链 ID {chain_id} 对应的链名。")
        return name

    def id_to_contract_address(self, contract_type: str, chain_id: Union[str, int]) -> str:
        by_chain = self.contracts.get(contract_type)
        if by_chain is None:
            raise NotFoundError(f"部署登记表中没有 {contract_type} 合约。")
        address = by_chain.get(str(chain_id))
        if address is None:
            raise NotFoundError(f"部署登记表中没有 {contract_type} 在链 ID {chain_id} 上的地址。")
        return address

    def resolve_address(self, chain_name: str, contract_type: str = DAPI_SERVER) -> str:
        """
        按链名解析合约地址。

        异常：
            NotFoundError: 链名无对应链 ID，或该链 ID 无已登记地址。
        """
        chain_id = self.chain_name_to_id(chain_name)
        return self.id_to_contract_address(contract_type, chain_id)

    def lookup_chain_name(self, chain_id: Union[str, int]) -> Optional[str]:
        """与 id_to_chain_name 相同，但查不到时返回 None，供报表渲染使用。"""
        return self.chain_names.get(str(chain_id))


def load_registry(path: Union[str, Path]) -> DeploymentRegistry:
    """读取 references.json 并构造只读登记表。"""
    return DeploymentRegistry.from_mapping(load_json(path))
