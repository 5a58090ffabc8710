"""Settings discovery for todohub.

Settings live in a TOML file (``~/.todohub/config.toml`` by default) and
can be overridden with ``TODOHUB_*`` environment variables. They record
which repository backs the todo list and which project board orders it,
including the ids of the board's custom fields.

Example config.toml:

    verbose = false
    demo_latency = 0.25

    [repository]
    id = "R_kgDOExample"
    owner = "octocat"
    name = "todos"

    [project]
    id = "PVT_kwDOExample"
    number = 3
    title = "Todos"
    due_date_field_id = "PVTF_due"
    priority_field_id = "PVTSSF_priority"

    [[project.priority_options]]
    id = "f75ad846"
    name = "High"
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pydantic as pd

from todohub.sync.constants import ENV_PREFIX, get_config_path
from todohub.sync.contracts import Project, Repository

logger = logging.getLogger(__name__)


class TodoHubSettings(pd.BaseModel):
    """Resolved client settings.

    Attributes:
        repository: Repository whose issues are the todos
        project: Project board holding order, due date and priority
        verbose: Enable debug logging
        demo_latency: Artificial latency (seconds) of the in-memory service
        log_file: Optional file receiving a copy of the logs
    """

    repository: Optional[Repository] = None
    project: Optional[Project] = None
    verbose: bool = False
    demo_latency: float = pd.Field(default=0.0, ge=0.0)
    log_file: Optional[Path] = None

    model_config = pd.ConfigDict(extra="ignore")

    @property
    def repository_full_name(self) -> str:
        return self.repository.full_name if self.repository else "octocat/todos"


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def _apply_env(data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay ``TODOHUB_*`` environment variables onto raw settings data."""
    verbose = environ.get(f"{ENV_PREFIX}VERBOSE")
    if verbose is not None:
        data["verbose"] = _truthy(verbose)

    latency = environ.get(f"{ENV_PREFIX}DEMO_LATENCY")
    if latency is not None:
        data["demo_latency"] = latency

    log_file = environ.get(f"{ENV_PREFIX}LOG_FILE")
    if log_file:
        data["log_file"] = log_file

    repository = environ.get(f"{ENV_PREFIX}REPOSITORY")
    if repository:
        owner, _, name = repository.partition("/")
        if owner and name:
            existing = dict(data.get("repository") or {})
            existing.update({"owner": owner, "name": name})
            existing.setdefault("id", f"R_{owner}_{name}")
            data["repository"] = existing
        else:
            logger.warning(f"Ignoring {ENV_PREFIX}REPOSITORY={repository!r}: expected owner/name")

    project_id = environ.get(f"{ENV_PREFIX}PROJECT_ID")
    if project_id:
        existing = dict(data.get("project") or {})
        existing["id"] = project_id
        existing.setdefault("number", 0)
        existing.setdefault("title", "Todos")
        data["project"] = existing

    return data


def _read_toml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        logger.debug(f"No settings file at {config_path}, using defaults")
        return {}
    try:
        with open(config_path, "rb") as f:
            content = tomllib.load(f)
        logger.debug(f"Loaded settings from {config_path}")
        return content
    except (IOError, OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to parse settings file {config_path}: {e}")
        return {}


def load_settings(
    path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> TodoHubSettings:
    """Load settings from TOML plus environment overrides.

    Args:
        path: Settings file; defaults to ``~/.todohub/config.toml``
        environ: Environment mapping; defaults to ``os.environ``

    Returns:
        TodoHubSettings. Invalid values are logged and replaced by defaults.
    """
    config_path = path or get_config_path()
    env = os.environ if environ is None else environ
    data = _apply_env(_read_toml(config_path), env)
    try:
        return TodoHubSettings.model_validate(data)
    except pd.ValidationError as e:
        logger.warning(f"Invalid settings in {config_path}, using defaults: {e}")
    try:
        return TodoHubSettings.model_validate(_apply_env({}, env))
    except pd.ValidationError as e:
        logger.warning(f"Invalid {ENV_PREFIX}* environment settings, ignoring them: {e}")
        return TodoHubSettings()
