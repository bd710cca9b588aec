from __future__ import annotations

import logging

from .llm_client import LLMClient
from .models import RefactorResult
from .prompts import REFACTOR_SYSTEM_PROMPT, prompt_refactor_tests
from .responses import strip_code_fences

logger = logging.getLogger(__name__)


class TestRefactor:
    """Final cleanup pass; any failure keeps the merged text byte-for-byte."""

    __test__ = False

    def __init__(self, llm_client: LLMClient) -> None:
        self.llm = llm_client

    async def refactor(self, contract_name: str, merged_text: str) -> RefactorResult:
        try:
            raw = await self.llm.complete(
                REFACTOR_SYSTEM_PROMPT, prompt_refactor_tests(contract_name, merged_text)
            )
        except Exception as exc:
            logger.warning("Failed to refactor tests (%s), using merged test code", exc)
            return RefactorResult(text=merged_text, applied=False)

        refactored = strip_code_fences(raw)
        if not refactored:
            logger.warning("No refactored code received, using merged test code")
            return RefactorResult(text=merged_text, applied=False)
        return RefactorResult(text=refactored, applied=True)
