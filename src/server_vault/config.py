# Configuration - paths and log level from the environment
#
# Values are read from the process environment after loading a `.env`
# file (python-dotenv) from the working directory, if present:
#
#   SERVER_VAULT_DB         database file   (default ~/.server-vault/servers.db)
#   SERVER_VAULT_AUDIT_DIR  audit log dir   (default ~/.server-vault/audit_logs)
#   SERVER_VAULT_LOG_LEVEL  stdlib level    (default WARNING)

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

DEFAULT_DATA_DIR = Path.home() / ".server-vault"
DEFAULT_DB_PATH = DEFAULT_DATA_DIR / "servers.db"
DEFAULT_AUDIT_DIR = DEFAULT_DATA_DIR / "audit_logs"


@dataclass(frozen=True)
class VaultSettings:
    """Resolved runtime settings."""
    db_path: Path
    audit_dir: Path
    log_level: int = logging.WARNING

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        load_env_file: bool = True,
    ) -> "VaultSettings":
        """
        Build settings from environment variables.

        Args:
            env_file: `.env` file to load (default: searched upward from cwd)
            load_env_file: Load a `.env` file first (existing variables win)

        Raises:
            ValueError: If SERVER_VAULT_LOG_LEVEL is not a logging level name
        """
        if load_env_file:
            load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

        db_path = os.environ.get("SERVER_VAULT_DB") or DEFAULT_DB_PATH
        audit_dir = os.environ.get("SERVER_VAULT_AUDIT_DIR") or DEFAULT_AUDIT_DIR

        level_name = os.environ.get("SERVER_VAULT_LOG_LEVEL", "WARNING").upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level_name}")

        return cls(
            db_path=Path(db_path).expanduser(),
            audit_dir=Path(audit_dir).expanduser(),
            log_level=level,
        )
