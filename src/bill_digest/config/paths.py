import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env once, globally
load_dotenv()

# Project root (independent of current working directory).
PROJECT_ROOT = Path(__file__).resolve().parents[3]


def resolve_path(env_key: str, default: str) -> Path:
    """
    Resolve a path from ENV.
    Relative paths are resolved against PROJECT_ROOT.
    """
    path = Path(os.getenv(env_key, default))
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def resolve_dir(env_key: str, default: str) -> Path:
    """Like resolve_path, but makes sure the directory exists."""
    path = resolve_path(env_key, default)
    path.mkdir(parents=True, exist_ok=True)
    return path


SECRETS_DIR = resolve_dir("BILL_DIGEST_SECRETS_DIR", "secrets")
# Created lazily by the attachment writer and purged after each run.
ATTACHMENTS_DIR = resolve_path("BILL_DIGEST_ATTACHMENTS_DIR", "attachments")

CREDENTIALS_PATH = SECRETS_DIR / "credentials.json"
TOKEN_PATH = SECRETS_DIR / "gmail_token.json"
