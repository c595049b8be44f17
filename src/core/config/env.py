from pathlib import Path

from dotenv import load_dotenv


def load_env_from_path(env_file_path: str | None, project_root: Path | None = None) -> None:
    if not env_file_path:
        return
    root = project_root or Path.cwd()
    path = root / env_file_path
    if path.exists():
        load_dotenv(path, override=False)


def get_app_db_url(env: dict[str, str]) -> str | None:
    """Run-trace store URL in asyncpg form, or None when tracing is disabled."""
    url = env.get("POSTGRES_APP_URL")
    if not url:
        return None
    return url.replace("postgresql+asyncpg://", "postgresql://")
