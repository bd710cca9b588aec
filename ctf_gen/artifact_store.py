from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import GeneratedTestArtifact

logger = logging.getLogger(__name__)


class ArtifactStore:
    """
    Intermediate outputs kept for inspection:
    - <artifacts_dir>/generated/<Contract>_<method>.json
    - <artifacts_dir>/merged/<Contract>.test.<ext>

    Write failures are logged and never raised.
    """

    def __init__(self, artifacts_dir: Path, test_extension: str = "ts") -> None:
        self.artifacts_dir = artifacts_dir
        self.test_extension = test_extension

    @property
    def generated_dir(self) -> Path:
        return self.artifacts_dir / "generated"

    @property
    def merged_dir(self) -> Path:
        return self.artifacts_dir / "merged"

    def save_generated(self, contract_name: str, artifacts: list[GeneratedTestArtifact]) -> list[Path]:
        written: list[Path] = []
        for artifact in artifacts:
            path = self.generated_dir / f"{contract_name}_{artifact.method_name}.json"
            try:
                self.generated_dir.mkdir(parents=True, exist_ok=True)
                path.write_text(
                    json.dumps(artifact.to_record(), indent=2, ensure_ascii=False),
                    encoding="utf-8",
                )
            except OSError as exc:
                logger.warning("Failed to save generated test %s: %s", path.name, exc)
                continue
            written.append(path)
        return written

    def save_merged(self, contract_name: str, text: str) -> Path | None:
        path = self.merged_dir / f"{contract_name}.test.{self.test_extension}"
        try:
            self.merged_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to save merged test %s: %s", path.name, exc)
            return None
        return path
