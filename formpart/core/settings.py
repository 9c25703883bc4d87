"""Unified settings for formpart."""

import importlib.metadata
import tomllib
from pathlib import Path
from typing import ClassVar, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict, empty when running from an installed wheel."""
    if not pyproject_path.is_file():
        return {}
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def get_version(package_name: str) -> str:
    """Get version from package metadata."""
    try:
        return importlib.metadata.version(package_name)
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


class Settings(BaseSettings):
    """Unified settings for formpart."""

    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    PACKAGE_NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "formpart")
    VERSION: ClassVar[str] = get_version(PACKAGE_NAME)

    # Blocking I/O workers
    MAX_WORKERS: int = 4

    # Remote resources
    URL_TIMEOUT: float = 30.0
    URL_USER_AGENT: str = f"formpart/{VERSION}"

    model_config = SettingsConfigDict(env_prefix="FORMPART_", env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()  # type: ignore
