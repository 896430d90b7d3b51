import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest

from db import SessionLocal, reset_db
from main import _hash_password
from seed import seed_all
from storage import Storage


@pytest.fixture(autouse=True)
def seeded_db():
    reset_db()
    with SessionLocal() as db:
        seed_all(Storage(db), _hash_password)
        db.commit()
    yield


@pytest.fixture
def store():
    db = SessionLocal()
    try:
        yield Storage(db)
    finally:
        db.close()
