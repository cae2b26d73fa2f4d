"""Configuration and environment handling for crmgraph."""

import os
from pathlib import Path

from dotenv import load_dotenv


class Config:
    """Central configuration object."""

    def __init__(self):
        # Load .env file if it exists
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        # Get project root
        self.project_root = Path(__file__).parent.parent.parent

        # Record store selection
        self.store: str = os.getenv("CRMGRAPH_STORE", "sqlite")

        # Database (sqlite store only)
        self.db_path: Path = Path(os.getenv("CRMGRAPH_DB_PATH", "data/crm.sqlite"))
        if not self.db_path.is_absolute():
            self.db_path = self.project_root / self.db_path

        # Logging
        self.log_level: str = os.getenv("CRMGRAPH_LOG_LEVEL", "INFO")

        # Sweeps and fetches
        self.page_size: int = int(os.getenv("CRMGRAPH_PAGE_SIZE", "100"))
        self.scan_limit: int = int(os.getenv("CRMGRAPH_SCAN_LIMIT", "10000"))
        self.fetch_workers: int = int(os.getenv("CRMGRAPH_FETCH_WORKERS", "1"))

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)


# Global config instance
config = Config()
