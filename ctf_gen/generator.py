from __future__ import annotations

import json
import logging

from .errors import GenerationError
from .llm_client import LLMClient
from .models import FunctionAnalysis, GeneratedTestArtifact
from .prompts import generate_system_prompt, prompt_generate_test
from .responses import parse_json_response

logger = logging.getLogger(__name__)


class TestGenerator:
    """Implements the suggested test cases of one function. No caching."""

    __test__ = False

    def __init__(self, llm_client: LLMClient, test_framework: str = "hardhat") -> None:
        self.llm = llm_client
        self.test_framework = test_framework

    async def generate(self, contract_name: str, code: str, analysis: FunctionAnalysis) -> GeneratedTestArtifact:
        prompt = prompt_generate_test(contract_name, code, analysis)
        try:
            raw = await self.llm.complete(generate_system_prompt(self.test_framework), prompt)
        except Exception as exc:
            raise GenerationError(f"Failed to generate test for {analysis.method_name}: {exc}") from exc

        try:
            data = parse_json_response(raw)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return GeneratedTestArtifact.from_record(data, method_name=analysis.method_name)
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("Failed to parse test response for %s: %s", analysis.method_name, exc)
            logger.error("Response: %s", raw)
            raise GenerationError(
                f"Malformed test artifact for {analysis.method_name}: {exc}"
            ) from exc
