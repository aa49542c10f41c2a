from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Endpoints run in FastAPI's thread pool.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_timeout": config.DATABASE_POOL_TIMEOUT, "pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_user_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_user_schema(bind=None) -> None:
    """Add the unique email index to a users table created without it."""
    global _user_schema_checked

    if _user_schema_checked and bind is None:
        return

    with _schema_lock:
        if _user_schema_checked and bind is None:
            return

        target = bind if bind is not None else engine
        inspector = inspect(target)

        if 'users' not in inspector.get_table_names():
            if bind is None:
                _user_schema_checked = True
            return

        unique_columns = {
            tuple(constraint['column_names'])
            for constraint in inspector.get_unique_constraints('users')
        }
        unique_columns.update(
            tuple(index['column_names'])
            for index in inspector.get_indexes('users')
            if index.get('unique')
        )

        if ('email',) not in unique_columns:
            with target.begin() as connection:
                connection.execute(
                    text('CREATE UNIQUE INDEX IF NOT EXISTS uq_users_email ON users(email)')
                )

        if bind is None:
            _user_schema_checked = True
