from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from .analyzer import FunctionAnalyzer, format_analysis
from .artifact_store import ArtifactStore
from .cache import AnalysisCache
from .config import AppConfig
from .errors import AnalysisError, ConfigError, MethodNotFoundError
from .function_finder import SolidityParser, extract_functions_from_file, filter_functions_by_name
from .generator import TestGenerator
from .llm_client import LLMClient
from .merger import TestMerger
from .models import (
    FunctionAnalysis,
    FunctionDescriptor,
    GeneratedTestArtifact,
    PipelineResult,
    PipelineStatus,
)
from .refactor import TestRefactor

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[FunctionAnalysis], bool]


class PipelineOrchestrator:
    """
    Runs one contract file through
    extract -> filter -> analyze/confirm -> generate -> merge -> refactor -> write.

    Everything is sequential: each function's analysis (and its confirmation,
    when enabled) completes before the next function is looked at.
    """

    def __init__(
        self,
        config: AppConfig,
        llm_client: LLMClient,
        *,
        parser: SolidityParser | None = None,
        confirm: ConfirmFn | None = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.config = config
        self.llm = llm_client
        self.parser = parser
        self.confirm = confirm
        self.echo = echo

        paths = config.paths
        self.cache = AnalysisCache(paths.cache_dir, enabled=config.use_cache)
        self.analyzer = FunctionAnalyzer(llm_client, self.cache)
        self.generator = TestGenerator(llm_client, config.project.test_framework)
        self.store = ArtifactStore(paths.artifacts_dir, config.project.test_extension)
        self.merger = TestMerger(llm_client, structured=config.project.merge_mode == "structured")
        self.refactorer = TestRefactor(llm_client)

    def resolve_contract(self, contract_file: str | Path) -> Path:
        path = Path(contract_file)
        if not path.is_absolute():
            path = self.config.paths.contracts_dir / path
        if not path.is_file():
            raise ConfigError(f"Contract file {contract_file} not found in contracts directory")
        return path

    def output_path(self, contract_name: str) -> Path:
        ext = self.config.project.test_extension
        return self.config.paths.test_dir / f"{contract_name}.test.{ext}"

    # ---- Step 1 & 2: extract and filter ----

    def select_functions(self, contract_path: Path, method_name: str | None) -> list[FunctionDescriptor]:
        functions = extract_functions_from_file(contract_path, parser=self.parser)
        selected = filter_functions_by_name(functions, method_name)
        if method_name and not selected:
            raise MethodNotFoundError(method_name, contract_path.name)
        if not functions:
            logger.warning("No functions found in %s", contract_path.name)
        return selected

    # ---- Step 3: analyze (cache-or-compute) and confirm ----

    async def analyze_functions(
        self,
        contract_path: Path,
        functions: list[FunctionDescriptor],
        result: PipelineResult,
    ) -> list[tuple[FunctionDescriptor, FunctionAnalysis]] | None:
        """Returns None when the operator declines a suggestion list."""
        analyzed: list[tuple[FunctionDescriptor, FunctionAnalysis]] = []
        for fn in functions:
            try:
                analysis = await self.analyzer.analyze(fn, contract_path)
            except AnalysisError as exc:
                logger.error("Skipping %s: %s", fn.name, exc)
                result.skipped_functions.append(fn.name)
                continue

            self.echo(format_analysis(analysis))
            if not self._confirmed(analysis):
                return None
            analyzed.append((fn, analysis))
            result.analyses.append(analysis)
        return analyzed

    def _confirmed(self, analysis: FunctionAnalysis) -> bool:
        if self.config.project.auto_confirm or self.confirm is None:
            return True
        return self.confirm(analysis)

    # ---- Step 4: generate ----

    async def generate_tests(
        self,
        contract_name: str,
        analyzed: list[tuple[FunctionDescriptor, FunctionAnalysis]],
    ) -> list[GeneratedTestArtifact]:
        artifacts: list[GeneratedTestArtifact] = []
        for fn, analysis in analyzed:
            self.echo(f"Generating tests for {fn.name}...")
            artifacts.append(await self.generator.generate(contract_name, fn.source_code, analysis))
        return artifacts

    # ---- Step 5: merge, refactor, write ----

    async def run(self, contract_file: str | Path, method_name: str | None = None) -> PipelineResult:
        contract_path = self.resolve_contract(contract_file)
        contract_name = contract_path.stem
        result = PipelineResult(contract_name=contract_name, status=PipelineStatus.NOTHING_TO_WRITE)

        functions = self.select_functions(contract_path, method_name)
        analyzed = await self.analyze_functions(contract_path, functions, result)
        if analyzed is None:
            self.echo("Test generation cancelled.")
            result.status = PipelineStatus.ABORTED
            return result
        if not analyzed:
            self.echo("No functions left to generate tests for.")
            return result

        result.artifacts = await self.generate_tests(contract_name, analyzed)
        self.store.save_generated(contract_name, result.artifacts)

        merged = await self.merger.merge(contract_name, result.artifacts)
        merged_text = merged.to_text()
        result.merge_strategy = merged.strategy
        self.store.save_merged(contract_name, merged_text)

        refactored = await self.refactorer.refactor(contract_name, merged_text)
        result.refactored = refactored.applied

        output_path = self.output_path(contract_name)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(refactored.text, encoding="utf-8")
        result.output_path = output_path
        result.status = PipelineStatus.WRITTEN

        self.echo(
            f"Wrote {output_path} ({len(result.artifacts)} function(s), "
            f"merge: {merged.strategy.value}, refactored: {'yes' if refactored.applied else 'no'})"
        )
        return result
