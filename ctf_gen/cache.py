"""
On-disk cache of function analyses.

One JSON record per (contract base name, method name) under ``cache_dir``,
named ``<ContractBaseName>-<methodName>.json``. Records also store the
SHA-256 of the function source; a lookup with a different hash is a miss.

The cache takes no locks: running several ``ctf`` processes against the same
.ctf directory at once is unsafe (last writer wins).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import FunctionAnalysis

logger = logging.getLogger(__name__)


class AnalysisCache:
    def __init__(self, cache_dir: Path, enabled: bool = True) -> None:
        self.cache_dir = cache_dir
        self.enabled = enabled

    def _get_path(self, contract_file: str | Path, method_name: str) -> Path:
        contract_name = Path(contract_file).stem
        return self.cache_dir / f"{contract_name}-{method_name}.json"

    def get(
        self,
        contract_file: str | Path,
        method_name: str,
        source_hash: str | None = None,
    ) -> FunctionAnalysis | None:
        if not self.enabled:
            return None
        cache_path = self._get_path(contract_file, method_name)
        if not cache_path.exists():
            return None
        try:
            with open(cache_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            analysis = FunctionAnalysis.from_record(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Failed to read cache for %s: %s", method_name, exc)
            return None

        stored_hash = data.get("sourceHash")
        if source_hash and stored_hash and stored_hash != source_hash:
            logger.info("Cached analysis for %s is stale (source changed)", method_name)
            return None
        if analysis.method_name != method_name:
            logger.warning(
                "Cached analysis for %s names method %r, ignoring it", method_name, analysis.method_name
            )
            return None
        return analysis

    def put(
        self,
        contract_file: str | Path,
        method_name: str,
        analysis: FunctionAnalysis,
        source_hash: str | None = None,
    ) -> None:
        cache_path = self._get_path(contract_file, method_name)
        record = analysis.to_record()
        if source_hash:
            record["sourceHash"] = source_hash
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(cache_path, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, ensure_ascii=False)
        except OSError as exc:
            logger.warning("Failed to save cache for %s: %s", method_name, exc)
