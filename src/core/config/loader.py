import json
from pathlib import Path

from pydantic import ValidationError

from src.core.config.env import load_env_from_path
from src.core.config.models import DomainConfig
from src.core.exceptions import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent
DEFAULT_CONFIG_PATH = "config/domains/marketing.json"


def load_domain_config(config_path: str | Path = DEFAULT_CONFIG_PATH, project_root: Path | None = None) -> DomainConfig:
    root = project_root or PROJECT_ROOT
    path = Path(config_path) if not isinstance(config_path, Path) else config_path
    if not path.is_absolute():
        path = root / path
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    try:
        config = DomainConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config schema in {path}: {e}") from e
    load_env_from_path(config.env_file_path, root)
    return config
