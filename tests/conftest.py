from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from newsdesk.db.models import Base


@pytest.fixture()
def db_session(tmp_path):
    """Session factory bound to a fresh temp SQLite file.

    get_session is patched at every module that imports it at top level.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"timeout": 15})
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)

    with (
        patch("newsdesk.articles.store.get_session", side_effect=Session),
        patch("newsdesk.sources.manager.get_session", side_effect=Session),
    ):
        yield Session

    engine.dispose()
