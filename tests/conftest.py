import os
import pytest

os.environ["FLASK_ENV"] = "testing"

from decentscore import create_app
from decentscore.models import db as _db

@pytest.fixture(scope="session")
def app():
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()

@pytest.fixture(autouse=True)
def clean_db(app):
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    app.extensions.pop("decentscore.orchestrator", None)

@pytest.fixture()
def client(app):
    return app.test_client()
