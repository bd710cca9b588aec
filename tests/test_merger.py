import asyncio
import json

from ctf_gen.merger import TestMerger, fallback_merge
from ctf_gen.models import GeneratedTestArtifact, MergeStrategy, RawTextMerge, StructuredMerge

CHAI = 'import { expect } from "chai";'
HARDHAT = 'import { ethers } from "hardhat";'
SETUP = "let bank;\nbeforeEach(async () => { bank = await deploy(); });"


def _artifacts() -> list[GeneratedTestArtifact]:
    return [
        GeneratedTestArtifact("deposit", (HARDHAT, CHAI), SETUP, 'describe("deposit", () => {\n  it("a");\n});'),
        GeneratedTestArtifact("withdraw", (CHAI,), SETUP, 'describe("withdraw", () => {\n  it("b");\n});'),
        GeneratedTestArtifact("balanceOf", (CHAI, HARDHAT), "let other;", 'describe("balanceOf", () => {});'),
    ]


def test_fallback_merge_keeps_every_test_body() -> None:
    artifacts = _artifacts()
    merged = fallback_merge(artifacts)

    for artifact in artifacts:
        assert artifact.test_body in merged.test_body
    assert merged.test_body == "\n\n".join(a.test_body for a in artifacts)


def test_fallback_merge_dedupes_and_sorts_imports() -> None:
    merged = fallback_merge(_artifacts())

    assert merged.imports == tuple(sorted({CHAI, HARDHAT}))
    # stable regardless of artifact order
    assert fallback_merge(list(reversed(_artifacts()))).imports == merged.imports


def test_fallback_merge_collapses_identical_setup_blocks() -> None:
    merged = fallback_merge(_artifacts())

    assert merged.setup_code == SETUP + "\n\nlet other;"


def test_single_artifact_is_returned_without_a_service_call(make_llm) -> None:
    llm = make_llm()
    [artifact] = _artifacts()[:1]

    result = asyncio.run(TestMerger(llm).merge("Bank", [artifact]))

    assert result.strategy is MergeStrategy.SINGLE
    assert result.output == StructuredMerge(artifact)
    assert result.to_text() == "\n\n".join([f"{HARDHAT}\n{CHAI}", SETUP, artifact.test_body])
    assert llm.calls == []


def test_ai_merge_returns_raw_text(make_llm) -> None:
    llm = make_llm(merge=["```typescript\nimport x;\n\ndescribe('Bank', () => {});\n```"])

    result = asyncio.run(TestMerger(llm).merge("Bank", _artifacts()))

    assert result.strategy is MergeStrategy.AI
    assert result.output == RawTextMerge("import x;\n\ndescribe('Bank', () => {});")
    [prompt] = llm.calls_for("merge")
    for artifact in _artifacts():
        assert artifact.test_body in prompt


def test_ai_merge_structured_mode(make_llm) -> None:
    response = json.dumps({"imports": [CHAI], "setupCode": "let bank;", "testCases": "describe('Bank', () => {});"})
    llm = make_llm(merge=[response])

    result = asyncio.run(TestMerger(llm, structured=True).merge("Bank", _artifacts()))

    assert result.strategy is MergeStrategy.AI
    assert isinstance(result.output, StructuredMerge)
    assert result.to_text() == f"{CHAI}\n\nlet bank;\n\ndescribe('Bank', () => {{}});"


def test_service_failure_falls_back(make_llm, caplog) -> None:
    llm = make_llm(merge=[ConnectionError("offline")])

    result = asyncio.run(TestMerger(llm).merge("Bank", _artifacts()))

    assert result.strategy is MergeStrategy.FALLBACK
    assert result.output == StructuredMerge(fallback_merge(_artifacts()))
    assert "using fallback merge" in caplog.text


def test_empty_response_falls_back(make_llm) -> None:
    result = asyncio.run(TestMerger(make_llm(merge=["   "])).merge("Bank", _artifacts()))

    assert result.strategy is MergeStrategy.FALLBACK


def test_unparsable_structured_response_falls_back(make_llm) -> None:
    llm = make_llm(merge=["here is your file: describe(...)"])

    result = asyncio.run(TestMerger(llm, structured=True).merge("Bank", _artifacts()))

    assert result.strategy is MergeStrategy.FALLBACK
