# tests/conftest.py
import os
import tempfile

# must be set before storefront.database creates its engine; a file database
# gives each threadpool worker its own connection
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["STORE_DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["STORE_TAX_RATE"] = "0.1"

import pytest

from storefront.database import SessionLocal, reset_db
from storefront.seed import seed


@pytest.fixture(autouse=True)
def fresh_db():
    reset_db()
    with SessionLocal() as db:
        seed(db)
    yield
