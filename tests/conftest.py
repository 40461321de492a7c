import pytest

from insightboard import database
from insightboard.models import Base, EmployeeInsight


@pytest.fixture()
def db_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'insightboard_test.db'}"
    database.configure(url)
    Base.metadata.create_all(bind=database.engine)
    yield url
    database.engine.dispose()


@pytest.fixture()
def db(db_url):
    session = database.SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def add_records(db):
    """Insert (word_insight, sentiment) pairs into employee_insights; returns the new ids."""

    def _add(pairs):
        objs = [EmployeeInsight(word_insight=k, sentiment=s, source_data="Survey") for k, s in pairs]
        db.add_all(objs)
        db.commit()
        return [o.id for o in objs]

    return _add
