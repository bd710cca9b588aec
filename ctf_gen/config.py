from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

CTF_DIR_NAME = ".ctf"
PROJECT_CONFIG_FILE = "project.yaml"
AI_CONFIG_FILE = "ai.yaml"
MERGE_MODES = ("text", "structured")


@dataclass
class LLMConfig:
    model: str = "gpt-4"
    api_key: str = ""
    api_base: str | None = None
    temperature: float | None = None


@dataclass
class ProjectConfig:
    name: str = "your-project-name"
    version: str = "1.0.0"
    contracts_dir: str = "./contracts"
    test_dir: str = "./test"
    test_framework: str = "hardhat"
    test_extension: str = "ts"
    merge_mode: str = "text"        # "text" | "structured"
    auto_confirm: bool = False


@dataclass
class WorkspacePaths:
    root: Path
    ctf_dir: Path
    contracts_dir: Path
    test_dir: Path
    cache_dir: Path
    artifacts_dir: Path

    @classmethod
    def from_root(cls, root: Path, project: ProjectConfig) -> WorkspacePaths:
        root = root.resolve()
        ctf_dir = root / CTF_DIR_NAME
        return cls(
            root=root,
            ctf_dir=ctf_dir,
            contracts_dir=(root / project.contracts_dir).resolve(),
            test_dir=(root / project.test_dir).resolve(),
            cache_dir=ctf_dir / "cache",
            artifacts_dir=ctf_dir / "build",
        )


@dataclass
class AppConfig:
    paths: WorkspacePaths
    project: ProjectConfig = field(default_factory=ProjectConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    use_cache: bool = True


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Failed to parse {path.name}: expected a mapping")
    return data


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    names = set(cls.__dataclass_fields__)
    unknown = sorted(set(data) - names)
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, ", ".join(unknown))
    return {k: v for k, v in data.items() if k in names}


def load_project_config(ctf_dir: Path) -> ProjectConfig:
    path = ctf_dir / PROJECT_CONFIG_FILE
    if not path.exists():
        raise ConfigError(f"{PROJECT_CONFIG_FILE} not found. Please run 'ctf init' first")
    project = ProjectConfig(**_known_fields(ProjectConfig, _load_yaml(path)))
    if project.merge_mode not in MERGE_MODES:
        raise ConfigError(
            f"Invalid merge_mode {project.merge_mode!r}; expected one of {', '.join(MERGE_MODES)}"
        )
    return project


def load_llm_config(ctf_dir: Path) -> LLMConfig:
    """
    Read ai.yaml. An empty api_key falls back to OPENAI_API_KEY
    (a .env file in the working directory is honoured).
    """
    path = ctf_dir / AI_CONFIG_FILE
    data = _load_yaml(path) if path.exists() else {}
    llm = LLMConfig(**_known_fields(LLMConfig, data))
    if not llm.api_key:
        load_dotenv()
        llm.api_key = os.environ.get("OPENAI_API_KEY", "")
    return llm


def load_app_config(root: Path) -> AppConfig:
    ctf_dir = root / CTF_DIR_NAME
    if not ctf_dir.is_dir():
        raise ConfigError(f"{CTF_DIR_NAME} directory not found. Please run 'ctf init' first")
    project = load_project_config(ctf_dir)
    return AppConfig(
        paths=WorkspacePaths.from_root(root, project),
        project=project,
        llm=load_llm_config(ctf_dir),
    )


def _read_package_json(root: Path) -> tuple[str | None, str | None]:
    package_json = root / "package.json"
    if not package_json.exists():
        return None, None
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Failed to parse package.json, using default values")
        return None, None
    return data.get("name"), data.get("version")


def init_project(root: Path) -> list[Path]:
    """
    Bootstrap the .ctf directory of a Hardhat-style project.

    Requires a ``contracts`` directory; creates ``test`` and ``.ctf`` and writes
    default project.yaml / ai.yaml unless they already exist.
    Returns the paths that were created.
    """
    root = root.resolve()
    if not (root / "contracts").is_dir():
        raise ConfigError(
            "contracts directory not found. Please ensure your project has a contracts directory."
        )

    created: list[Path] = []
    for directory in (root / "test", root / CTF_DIR_NAME):
        if not directory.exists():
            directory.mkdir()
            created.append(directory)

    name, version = _read_package_json(root)
    project = ProjectConfig()
    project.name = name or project.name
    project.version = version or project.version

    defaults = {
        PROJECT_CONFIG_FILE: asdict(project),
        AI_CONFIG_FILE: {"model": LLMConfig.model, "api_key": ""},
    }
    for file_name, content in defaults.items():
        path = root / CTF_DIR_NAME / file_name
        if path.exists():
            continue
        path.write_text(yaml.safe_dump(content, sort_keys=False), encoding="utf-8")
        created.append(path)
    return created
