# salon_booking/db.py

from sqlmodel import SQLModel, create_engine, Session

from salon_booking.config import config

# SQLite needs check_same_thread off because FastAPI runs sync routes in a threadpool
connect_args = {"check_same_thread": False} if config.database.url.startswith("sqlite") else {}

engine = create_engine(
    config.database.url,
    echo=config.database.echo,
    connect_args=connect_args,
)


def create_db_and_tables():
    # Import registers the table metadata
    from salon_booking import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
