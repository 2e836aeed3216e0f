"""Anatomy Guru Evaluator package.

Loads environment variables from a local .env file so the model credentials
and timeouts can be configured during local development without exporting
them in the shell.
"""

from pathlib import Path

from dotenv import load_dotenv

__version__ = "0.1.0"


def _load_local_env():
    # Try evaluator/.env first, then project root .env
    pkg_dir = Path(__file__).resolve().parent
    candidates = [
        pkg_dir / ".env",
        pkg_dir.parent / ".env",
    ]
    for p in candidates:
        if p.exists():
            load_dotenv(dotenv_path=p, override=False)


_load_local_env()
