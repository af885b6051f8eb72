import json
from pathlib import Path

import pytest

from modules.query import DeploymentRegistry

ETHEREUM_ADDRESS = "0xABC0000000000000000000000000000000000001"

REFERENCES = {
    "chainNames": {"1": "ethereum", "137": "polygon", "42161": "arbitrum"},
    "contracts": {
        "DapiServer": {
            "1": ETHEREUM_ADDRESS,
            "42161": "0xABC0000000000000000000000000000000042161",
        }
    },
}


@pytest.fixture
def references():
    return json.loads(json.dumps(REFERENCES))


@pytest.fixture
def registry(references):
    return DeploymentRegistry.from_mapping(references)


@pytest.fixture
def config_dir(tmp_path: Path, references) -> Path:
    """tmp_path/configs，含 default_settings.yaml 与 references.json；项目根即 tmp_path。"""
    cfg = tmp_path / "configs"
    cfg.mkdir()
    (cfg / "references.json").write_text(json.dumps(references), encoding="utf-8")
    (cfg / "default_settings.yaml").write_text(
        "registry:\n"
        '  path: "configs/references.json"\n'
        "export:\n"
        '  dir: "exports"\n'
        "logging:\n"
        '  level: "DEBUG"\n',
        encoding="utf-8",
    )
    return cfg
