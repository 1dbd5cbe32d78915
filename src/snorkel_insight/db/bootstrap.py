"""Table bootstrap utilities for warehouse databases."""
from sqlalchemy.engine import Engine

from snorkel_insight.db.models import Base
from snorkel_insight.utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="bootstrap")


def ensure_tables(engine: Engine) -> None:
    """Create the forecast tables and their indexes if missing."""
    logger.debug("Ensuring forecast tables exist")
    Base.metadata.create_all(bind=engine, checkfirst=True)
