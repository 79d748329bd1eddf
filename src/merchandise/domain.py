"""Domain initialization and configuration."""

from protean.domain import Domain
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from merchandise.config import get_settings
from merchandise.lifecycle.registry import Registry
from merchandise.utils.logging import configure_logging, get_logger

settings = get_settings()

# Configure logging for the application
configure_logging(settings)

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
merchandise = Domain(name="merchandise")

# Guards and hooks of the item lifecycle register here by name
item_lifecycle = Registry()


def create_db_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """Create the SQLAlchemy engine for the merchandise store."""
    url = database_url or settings.database_url
    connect_args = {}
    if url.startswith("sqlite"):
        # Transitions for different items may run on different threads
        connect_args["check_same_thread"] = False

    return create_engine(
        url,
        echo=settings.echo_sql if echo is None else echo,
        connect_args=connect_args,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessions keep loaded attributes after commit so results outlive the transaction."""
    return sessionmaker(bind=engine, expire_on_commit=False)
