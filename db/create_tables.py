import argparse
import logging
from typing import Optional

from db.database import Base, get_engine
# Import models so their metadata is registered with Base
from db import models  # noqa: F401


logger = logging.getLogger(__name__)


def create_all(database_url: Optional[str] = None) -> None:
    engine = get_engine(database_url)
    Base.metadata.create_all(bind=engine)
    logger.info("Ensured tables: %s", ", ".join(sorted(Base.metadata.tables)))


def main() -> None:
    parser = argparse.ArgumentParser(description="Create database tables")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL. If omitted, uses DATABASE_URL env var.",
    )
    args = parser.parse_args()

    create_all(args.database_url)
    print("Tables created (no-op for existing tables)")


if __name__ == "__main__":
    main()
