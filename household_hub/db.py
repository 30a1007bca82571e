from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine


class Database:
    """Owns the engine for one application instance.

    Built by ``create_app`` and kept on ``app.state.database`` for the life of
    the process; ``dispose`` is called from the application lifespan on shutdown.
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None:
            if not url:
                raise ValueError("Database needs either a url or an engine")
            connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
            engine = create_engine(url, connect_args=connect_args)
        self.engine = engine

    def init_db(self):
        from . import models  # noqa: F401  register tables with metadata

        SQLModel.metadata.create_all(self.engine)

    def drop_all(self):
        SQLModel.metadata.drop_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        with Session(self.engine) as session:
            yield session

    def dispose(self):
        self.engine.dispose()


def get_session(request: Request):
    with request.app.state.database.session() as session:
        yield session
