import asyncio

from ctf_gen.refactor import TestRefactor

MERGED = 'import { expect } from "chai";\n\nlet bank;\n\ndescribe("deposit", () => {});\n'


def test_refactored_text_is_returned(make_llm) -> None:
    llm = make_llm(refactor=["```ts\ndescribe(\"Bank\", () => {});\n```"])

    result = asyncio.run(TestRefactor(llm).refactor("Bank", MERGED))

    assert result.applied
    assert result.text == 'describe("Bank", () => {});'
    assert MERGED in llm.calls_for("refactor")[0]


def test_service_failure_keeps_merged_text(make_llm, caplog) -> None:
    result = asyncio.run(TestRefactor(make_llm(refactor=[RuntimeError("503")])).refactor("Bank", MERGED))

    assert not result.applied
    assert result.text == MERGED
    assert "Failed to refactor tests" in caplog.text


def test_empty_response_keeps_merged_text(make_llm, caplog) -> None:
    result = asyncio.run(TestRefactor(make_llm(refactor=[""])).refactor("Bank", MERGED))

    assert not result.applied
    assert result.text == MERGED
    assert "No refactored code received" in caplog.text
