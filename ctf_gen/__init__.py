"""
LLM-based smart-contract test generator.

This package provides a pipeline to:
- extract the functions of a Solidity contract
- let an LLM suggest positive/negative test cases per function (cached on disk)
- generate a test fragment per function and merge them into one test file
- run a final refactor pass and write the result to the project's test directory
"""

__all__ = [
    "analyzer",
    "artifact_store",
    "cache",
    "cli",
    "config",
    "errors",
    "function_finder",
    "generator",
    "llm_client",
    "merger",
    "models",
    "orchestrator",
    "prompts",
    "refactor",
    "responses",
]

__version__ = "0.1.0"
