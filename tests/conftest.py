from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import pytest
from fastapi.testclient import TestClient

# Allow running pytest without installing the package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


PDB_TEXT = (
    "ATOM      1  N   ALA A   1      11.104  13.207  10.000  1.00 20.00           N\n"
    "ATOM      2  CA  ALA A   1      12.560  13.207  10.000  1.00 20.00           C\n"
    "TER\nEND\n"
)


def oracle_reply(*, drop: Sequence[str] = (), **fields: Any) -> str:
    body = {
        "analysis": "Needs a hydrophobic pocket.",
        "sequence": "MVLKAGHE",
        "binding_affinity_score": -8.2,
        "predicted_stability_score": 1.5,
        "binding_pocket_residues": [12, 45, 78],
        "pdb_id": "1abc",
        "design_confidence": "Promising",
        "experimental_validation_steps": ["Express in E. coli", "Run ITC"],
    }
    body.update(fields)
    for k in drop:
        body.pop(k, None)
    return json.dumps(body)


class FakeOracle:
    """Returns (or raises) queued replies and records every instruction."""

    def __init__(self, replies: Sequence[Union[str, BaseException]] = ()):
        self.replies: List[Union[str, BaseException]] = list(replies)
        self.instructions: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.instructions)

    async def invoke(self, instruction: str) -> str:
        self.instructions.append(instruction)
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeFetcher:
    def __init__(self, payload: Optional[str] = PDB_TEXT):
        self.payload = payload
        self.requested: List[Optional[str]] = []

    async def fetch(self, pdb_id: Optional[str]) -> Optional[str]:
        self.requested.append(pdb_id)
        return self.payload


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def cfg_dict() -> dict:
    return {
        "oracle": {"model_name": "test-model", "api_key_env": "PROTEVOLVE_TEST_KEY"},
        "retry": {"max_attempts": 2, "base_delay_sec": 0},
        "enable_ui": False,
        "log_level": "DEBUG",
    }


@pytest.fixture
def cfg_path(tmp_path: Path, cfg_dict: dict) -> Path:
    p = tmp_path / "config.json"
    p.write_text(json.dumps(cfg_dict), encoding="utf-8")
    return p


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def client(cfg_path: Path, oracle: FakeOracle, fetcher: FakeFetcher) -> TestClient:
    from protevolve.app.api import create_app
    from protevolve.controller import DesignController

    controller = DesignController(oracle=oracle, fetcher=fetcher)
    return TestClient(create_app(cfg_path, controller=controller))
