from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base


def create_db_engine(db_file: Path | str, echo: bool = False) -> Engine:
    # Queries run in worker threads, see db.repositories.
    return create_engine(f"sqlite:///{db_file}", echo=echo, connect_args={"check_same_thread": False})


def init_db(db_file: Path | str, echo: bool = False) -> sessionmaker[Session]:
    """Open the ledger database, creating missing tables. Existing data is left untouched."""
    engine = create_db_engine(db_file, echo=echo)
    Base.metadata.create_all(engine)
    return sessionmaker(engine)
