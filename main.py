import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config

from config import get_settings
from database import SessionFactory, SessionLocal
from periods import YearMonth, ZoneLike
from services import ExpenseRepository
from state import ExpenseState


logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


def upgrade_database(database_url: Optional[str] = None) -> None:
    """Apply the Alembic migrations to ``database_url`` (default: settings)."""
    config = Config(str(BASE_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BASE_DIR / "alembic"))
    config.set_main_option(
        "sqlalchemy.url", database_url or get_settings().database_url
    )
    config.attributes["configure_logger"] = False
    command.upgrade(config, "head")


def build_state(
    session_factory: Optional[SessionFactory] = None,
    *,
    zone: Optional[ZoneLike] = None,
    month: Optional[YearMonth] = None,
) -> ExpenseState:
    settings = get_settings()
    factory = session_factory or SessionLocal
    zone = zone or settings.timezone
    repository = ExpenseRepository(factory, write_zone=zone)
    state = ExpenseState(repository, factory, zone=zone, current_month=month)
    state.load_month()
    logger.info(
        f"state_ready: month={state.current_month} budget={state.monthly_budget}"
    )
    return state
