from __future__ import annotations

import json
import logging
from pathlib import Path

from .cache import AnalysisCache
from .errors import AnalysisError
from .llm_client import LLMClient
from .models import FunctionAnalysis, FunctionDescriptor, TestCaseSuggestion
from .prompts import ANALYZE_SYSTEM_PROMPT, prompt_analyze_function
from .responses import parse_json_response

logger = logging.getLogger(__name__)

VALID_KINDS = ("positive", "negative")


class FunctionAnalyzer:
    """
    Suggests positive/negative test cases for one function.
    The cache is consulted first; a hit never reaches the completion service.
    """

    def __init__(self, llm_client: LLMClient, cache: AnalysisCache) -> None:
        self.llm = llm_client
        self.cache = cache

    async def analyze(self, descriptor: FunctionDescriptor, contract_file: str | Path) -> FunctionAnalysis:
        cached = self.cache.get(contract_file, descriptor.name, descriptor.source_hash)
        if cached is not None:
            logger.info("Using cached analysis for %s", descriptor.name)
            return cached

        logger.info("No cache found for %s, analyzing with AI...", descriptor.name)
        try:
            raw = await self.llm.complete(
                ANALYZE_SYSTEM_PROMPT, prompt_analyze_function(descriptor.source_code)
            )
        except Exception as exc:
            raise AnalysisError(f"Failed to analyze function {descriptor.name}: {exc}") from exc

        analysis = parse_analysis_response(raw, descriptor.name)
        if analysis is None:
            return FunctionAnalysis(method_name=descriptor.name)

        self.cache.put(contract_file, descriptor.name, analysis, descriptor.source_hash)
        return analysis


def parse_analysis_response(raw: str, method_name: str) -> FunctionAnalysis | None:
    """
    Parse a JSON array of {type, description}. Returns None (after a warning)
    when the response is not such an array.
    """
    try:
        data = parse_json_response(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse AI analysis for %s as JSON: %s", method_name, exc)
        logger.warning("Raw response: %s", raw)
        return None
    if not isinstance(data, list):
        logger.warning("AI analysis for %s is not a JSON array; raw response: %s", method_name, raw)
        return None

    test_cases = []
    for item in data:
        if not isinstance(item, dict):
            logger.warning("Skipping malformed test case for %s: %r", method_name, item)
            continue
        kind = str(item.get("type", ""))
        if kind not in VALID_KINDS:
            logger.warning("Unexpected test case type %r for %s, keeping it", kind, method_name)
        test_cases.append(TestCaseSuggestion(kind=kind, description=str(item.get("description", ""))))

    if not test_cases:
        logger.warning("No test cases found in AI response for %s", method_name)
    return FunctionAnalysis(method_name=method_name, test_cases=tuple(test_cases))


def format_analysis(analysis: FunctionAnalysis) -> str:
    lines = ["", "Suggested test cases:", f"describe('{analysis.method_name}', () => {{"]
    for tc in analysis.test_cases:
        lines.append(f"  it('{tc.kind}: {tc.description}');")
    lines.append("});")
    return "\n".join(lines) + "\n"
