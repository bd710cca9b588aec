from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, Callable

import pytest

from ctf_gen.config import AppConfig, LLMConfig, ProjectConfig, WorkspacePaths
from ctf_gen.prompts import ANALYZE_SYSTEM_PROMPT, MERGE_SYSTEM_PROMPT, REFACTOR_SYSTEM_PROMPT


def get_example_root() -> Path:
    return Path(__file__).parent / "example_project"


def _loc(start: int, end: int) -> dict[str, Any]:
    return {"start": {"line": start, "column": 4}, "end": {"line": end, "column": 4}}


def _param(type_name: dict[str, Any] | None, name: str | None) -> dict[str, Any]:
    return {"type": "Parameter", "typeName": type_name, "name": name, "storageLocation": None}


def _elementary(name: str) -> dict[str, Any]:
    return {"type": "ElementaryTypeName", "name": name}


def _function(name, start, end, *, params=(), returns=None, visibility="external",
              mutability=None, is_constructor=False) -> dict[str, Any]:
    return {
        "type": "FunctionDefinition",
        "name": name,
        "parameters": {"type": "ParameterList", "parameters": list(params)},
        "returnParameters": (
            {"type": "ParameterList", "parameters": list(returns)} if returns is not None else []
        ),
        "body": {"type": "Block", "statements": [], "loc": _loc(start, end)},
        "visibility": visibility,
        "modifiers": [],
        "isConstructor": is_constructor,
        "stateMutability": mutability,
        "loc": _loc(start, end),
    }


BANK_AST: dict[str, Any] = {
    "type": "SourceUnit",
    "children": [
        {"type": "PragmaDirective", "name": "solidity", "value": "^0.8.20", "loc": _loc(2, 2)},
        {
            "type": "ContractDefinition",
            "name": "Bank",
            "kind": "contract",
            "loc": _loc(4, 28),
            "subNodes": [
                {
                    "type": "StateVariableDeclaration",
                    "variables": [
                        {
                            "type": "VariableDeclaration",
                            "name": "balances",
                            "typeName": {
                                "type": "Mapping",
                                "keyType": _elementary("address"),
                                "valueType": _elementary("uint256"),
                            },
                        }
                    ],
                    "loc": _loc(5, 5),
                },
                _function(None, 8, 10, visibility="default", is_constructor=True),
                _function("deposit", 12, 16, mutability="payable"),
                _function(
                    "withdraw",
                    18,
                    23,
                    params=[_param(_elementary("uint256"), "amount")],
                    returns=[_param(_elementary("bool"), None)],
                ),
                _function(
                    "balanceOf",
                    25,
                    27,
                    params=[_param(_elementary("address"), "account")],
                    returns=[_param(_elementary("uint256"), None)],
                    visibility="public",
                    mutability="view",
                ),
            ],
        },
    ],
}


class FakeSolidityParser:
    """Returns a fixed AST regardless of the source text."""

    def __init__(self, ast_root: dict[str, Any]) -> None:
        self.ast_root = ast_root
        self.calls = 0

    def parse(self, source: str) -> dict[str, Any]:
        self.calls += 1
        return self.ast_root


class ScriptedLLM:
    """
    LLMClient double. Responses are queued per stage ("analyze", "generate",
    "merge", "refactor"); a queued exception is raised instead of returned.
    """

    def __init__(self, **responses: list[Any]) -> None:
        self.responses = {stage: list(items) for stage, items in responses.items()}
        self.calls: list[tuple[str, str]] = []

    @staticmethod
    def stage_of(system_prompt: str) -> str:
        if system_prompt == ANALYZE_SYSTEM_PROMPT:
            return "analyze"
        if system_prompt == MERGE_SYSTEM_PROMPT:
            return "merge"
        if system_prompt == REFACTOR_SYSTEM_PROMPT:
            return "refactor"
        return "generate"

    def calls_for(self, stage: str) -> list[str]:
        return [prompt for s, prompt in self.calls if s == stage]

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        stage = self.stage_of(system_prompt)
        self.calls.append((stage, user_prompt))
        queue = self.responses.get(stage)
        if not queue:
            raise AssertionError(f"unexpected {stage} call")
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def analysis_response(*cases: tuple[str, str]) -> str:
    return json.dumps([{"type": kind, "description": desc} for kind, desc in cases])


def artifact_response(method: str, imports: list[str] | None = None, setup: str = "let bank;") -> str:
    return json.dumps(
        {
            "imports": imports if imports is not None else ['import { expect } from "chai";'],
            "setupCode": setup,
            "testCases": f"describe(\"{method}\", () => {{\n  it(\"works\", async () => {{}});\n}});",
        }
    )


@pytest.fixture
def bank_source() -> str:
    return (get_example_root() / "contracts" / "Bank.sol").read_text(encoding="utf-8")


@pytest.fixture
def bank_parser() -> FakeSolidityParser:
    return FakeSolidityParser(BANK_AST)


@pytest.fixture
def make_llm() -> Callable[..., ScriptedLLM]:
    return ScriptedLLM


@pytest.fixture
def workspace(tmp_path: Path) -> AppConfig:
    """A Hardhat-style project in tmp_path with Bank.sol in contracts/."""
    contracts = tmp_path / "contracts"
    contracts.mkdir()
    shutil.copy(get_example_root() / "contracts" / "Bank.sol", contracts / "Bank.sol")
    project = ProjectConfig(auto_confirm=True)
    return AppConfig(
        paths=WorkspacePaths.from_root(tmp_path, project),
        project=project,
        llm=LLMConfig(api_key="test-key"),
    )
