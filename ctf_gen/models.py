from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union


@dataclass(frozen=True)
class FunctionParameter:
    name: str
    type: str


@dataclass(frozen=True)
class FunctionDescriptor:
    name: str                                 # "" for unnamed fallback/receive functions
    visibility: str                           # public | private | internal | external
    parameters: tuple[FunctionParameter, ...]
    returns: tuple[str, ...] | None
    state_mutability: str | None
    source_code: str                          # verbatim text of the function
    start_line: int
    end_line: int

    @property
    def source_hash(self) -> str:
        return hashlib.sha256(self.source_code.encode("utf-8")).hexdigest()

    def signature(self) -> str:
        params = ", ".join(f"{p.type} {p.name}".strip() for p in self.parameters)
        parts = [f"{self.name}({params})", self.visibility]
        if self.state_mutability:
            parts.append(self.state_mutability)
        if self.returns:
            parts.append(f"returns ({', '.join(self.returns)})")
        return " ".join(parts)


@dataclass(frozen=True)
class TestCaseSuggestion:
    __test__ = False

    kind: str          # "positive" or "negative"
    description: str


@dataclass(frozen=True)
class FunctionAnalysis:
    method_name: str
    test_cases: tuple[TestCaseSuggestion, ...] = ()

    def to_record(self) -> dict[str, Any]:
        return {
            "methodName": self.method_name,
            "testCases": [
                {"type": tc.kind, "description": tc.description} for tc in self.test_cases
            ],
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> FunctionAnalysis:
        return cls(
            method_name=str(data["methodName"]),
            test_cases=tuple(
                TestCaseSuggestion(kind=str(tc.get("type", "")), description=str(tc.get("description", "")))
                for tc in data.get("testCases") or []
            ),
        )


@dataclass(frozen=True)
class GeneratedTestArtifact:
    method_name: str
    imports: tuple[str, ...]
    setup_code: str
    test_body: str

    def to_record(self) -> dict[str, Any]:
        return {
            "methodName": self.method_name,
            "imports": list(self.imports),
            "setupCode": self.setup_code,
            "testCases": self.test_body,
        }

    def render(self) -> str:
        """Imports, setup and test bodies separated by blank lines."""
        parts = ["\n".join(self.imports), self.setup_code, self.test_body]
        return "\n\n".join(p.strip("\n") for p in parts if p.strip())

    @classmethod
    def from_record(cls, data: dict[str, Any], method_name: str | None = None) -> GeneratedTestArtifact:
        """
        Build an artifact from the JSON shape the completion service is asked for.
        Raises ValueError when a field is missing or has the wrong type.
        """
        imports = data.get("imports")
        setup_code = data.get("setupCode")
        test_body = data.get("testCases")
        if not isinstance(imports, list) or not all(isinstance(i, str) for i in imports):
            raise ValueError("'imports' must be a list of strings")
        if not isinstance(setup_code, str):
            raise ValueError("'setupCode' must be a string")
        if not isinstance(test_body, str):
            raise ValueError("'testCases' must be a string")
        return cls(
            method_name=method_name if method_name is not None else str(data.get("methodName", "")),
            imports=tuple(imports),
            setup_code=setup_code,
            test_body=test_body,
        )


class MergeStrategy(str, Enum):
    AI = "ai"
    FALLBACK = "fallback"
    SINGLE = "single"


@dataclass(frozen=True)
class StructuredMerge:
    artifact: GeneratedTestArtifact


@dataclass(frozen=True)
class RawTextMerge:
    text: str


MergeOutput = Union[StructuredMerge, RawTextMerge]


@dataclass(frozen=True)
class MergeResult:
    output: MergeOutput
    strategy: MergeStrategy

    def to_text(self) -> str:
        if isinstance(self.output, StructuredMerge):
            return self.output.artifact.render()
        return self.output.text


@dataclass(frozen=True)
class RefactorResult:
    text: str
    applied: bool


class PipelineStatus(str, Enum):
    WRITTEN = "written"
    NOTHING_TO_WRITE = "nothing_to_write"
    ABORTED = "aborted"


@dataclass
class PipelineResult:
    contract_name: str
    status: PipelineStatus
    output_path: Path | None = None
    analyses: list[FunctionAnalysis] = field(default_factory=list)
    artifacts: list[GeneratedTestArtifact] = field(default_factory=list)
    merge_strategy: MergeStrategy | None = None
    refactored: bool = False
    skipped_functions: list[str] = field(default_factory=list)
