from intavia.db.session import engine
from intavia.db.base import Base
import intavia.db.models  # noqa: F401  registers every table on Base.metadata


def init_db() -> None:
    """Create all tables directly; used for local development and SQLite."""
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
