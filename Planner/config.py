import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_ROOT / ".env", override=False)
load_dotenv(Path(__file__).resolve().parent / ".env", override=False)

DEFAULT_LOG_LEVEL = "INFO"


# Resolve DATABASE_URL, upgrading bare postgres:// URLs to the psycopg2 driver
def get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url and url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)
    if not url:
        raise RuntimeError("DATABASE_URL must be set.")
    return url


# Engine used for catalog extraction when the caller does not hand in its own bind
def get_engine(url: Optional[str] = None) -> Engine:
    return create_engine(url or get_database_url(), pool_pre_ping=True)


def configure_logging(level: Optional[str] = None) -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return
    level_name = (level or os.getenv("PLANNER_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
