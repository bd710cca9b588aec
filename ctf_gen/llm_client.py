from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import openai

from .config import LLMConfig
from .errors import ConfigError


# Requests and responses go to their own logger; the CLI points it at .ctf/llm_log.log
logger = logging.getLogger("ctf_gen.llm")


def attach_llm_log_file(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
    )
    logger.setLevel(logging.INFO)
    logger.addHandler(file_handler)
    return file_handler


class LLMClient(Protocol):
    async def complete(self, system_prompt: str, user_prompt: str) -> str:  # pragma: no cover - interface
        ...


@dataclass
class OpenAILLMClient(LLMClient):
    """
    Thin wrapper around OpenAI's Chat Completions API.
    Any OpenAI-compatible gateway can be used through ``api_base``.
    """

    config: LLMConfig
    _client: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.config.api_key:
            raise ConfigError("API key is required, please set it in ai.yaml")
        self._client = openai.AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.api_base or None,
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        logger.info(
            "LLM REQUEST model=%s\nSYSTEM:\n%s\nPROMPT:\n%s",
            self.config.model,
            system_prompt,
            user_prompt,
        )

        kwargs: dict[str, Any] = {}
        if self.config.temperature is not None:
            kwargs["temperature"] = self.config.temperature
        completion = await self._client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **kwargs,
        )
        content = completion.choices[0].message.content if completion.choices else None
        content = content or ""

        logger.info("LLM RESPONSE model=%s\nRESPONSE:\n%s", self.config.model, content)

        return content
