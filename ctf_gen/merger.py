from __future__ import annotations

import json
import logging

from .llm_client import LLMClient
from .models import (
    GeneratedTestArtifact,
    MergeResult,
    MergeStrategy,
    RawTextMerge,
    StructuredMerge,
)
from .prompts import MERGE_SYSTEM_PROMPT, prompt_merge_tests
from .responses import parse_json_response, strip_code_fences

logger = logging.getLogger(__name__)


def _unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def fallback_merge(artifacts: list[GeneratedTestArtifact]) -> GeneratedTestArtifact:
    """
    Deterministic merge without the completion service: sorted unique imports,
    identical setup blocks collapsed, every test body kept.
    """
    imports = sorted(set(imp for artifact in artifacts for imp in artifact.imports))
    setups = _unique([a.setup_code for a in artifacts if a.setup_code.strip()])
    bodies = [a.test_body for a in artifacts if a.test_body.strip()]
    return GeneratedTestArtifact(
        method_name=",".join(a.method_name for a in artifacts),
        imports=tuple(imports),
        setup_code="\n\n".join(setups),
        test_body="\n\n".join(bodies),
    )


class TestMerger:
    __test__ = False

    def __init__(self, llm_client: LLMClient, structured: bool = False) -> None:
        self.llm = llm_client
        self.structured = structured

    async def merge(self, contract_name: str, artifacts: list[GeneratedTestArtifact]) -> MergeResult:
        if not artifacts:
            raise ValueError("merge() needs at least one artifact")
        if len(artifacts) == 1:
            return MergeResult(StructuredMerge(artifacts[0]), MergeStrategy.SINGLE)

        prompt = prompt_merge_tests(contract_name, artifacts, structured=self.structured)
        try:
            raw = await self.llm.complete(MERGE_SYSTEM_PROMPT, prompt)
        except Exception as exc:
            logger.warning("Failed to merge tests with AI (%s), using fallback merge", exc)
            return self._fallback(artifacts)

        if self.structured:
            try:
                data = parse_json_response(raw)
                if not isinstance(data, dict):
                    raise ValueError("expected a JSON object")
                artifact = GeneratedTestArtifact.from_record(
                    data, method_name=",".join(a.method_name for a in artifacts)
                )
            except (json.JSONDecodeError, ValueError) as exc:
                logger.warning("AI merge returned an unusable artifact (%s), using fallback merge", exc)
                return self._fallback(artifacts)
            return MergeResult(StructuredMerge(artifact), MergeStrategy.AI)

        text = strip_code_fences(raw)
        if not text:
            logger.warning("AI merge returned an empty response, using fallback merge")
            return self._fallback(artifacts)
        return MergeResult(RawTextMerge(text), MergeStrategy.AI)

    @staticmethod
    def _fallback(artifacts: list[GeneratedTestArtifact]) -> MergeResult:
        return MergeResult(StructuredMerge(fallback_merge(artifacts)), MergeStrategy.FALLBACK)
