from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from mpr.core.config import DEFAULT_CONFIG_FILENAME, Config, load_config_or_default
from mpr.core.errors import ErrorCode
from mpr.core.result import Err
from mpr.output.console import ConsoleProtocol, RichConsole
from mpr.release.credentials import EnvSecretStore, SecretStore

PROJECT_ROOT_ENV = "MPR_PROJECT_ROOT"
CONFIG_PATH_ENV = "MPR_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    project_root: Path
    config: Config
    console: ConsoleProtocol
    secret_store: SecretStore


def project_root() -> Path:
    raw = os.environ.get(PROJECT_ROOT_ENV)
    return Path(raw) if raw else Path.cwd()


def build_context() -> CLIContext:
    root = project_root()
    if not root.is_dir():
        typer.echo(f"error: project root is not a directory: {root}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config_path = Path(os.environ.get(CONFIG_PATH_ENV) or root / DEFAULT_CONFIG_FILENAME)
    config_result = load_config_or_default(config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    config = config_result.value
    return CLIContext(
        project_root=root,
        config=config,
        console=RichConsole(),
        secret_store=EnvSecretStore(prefix=config.secrets.env_prefix),
    )
