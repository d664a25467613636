from __future__ import annotations

import pytest
from sqlalchemy import create_engine

from mapboard.infra.db.tables import metadata
from mapboard.infra.db.users_repository import UsersRepository, check_password, hash_password


@pytest.fixture()
def engine(tmp_path):
    db_path = tmp_path / "users_test.db"
    engine = create_engine(f"sqlite:///{db_path}", future=True)
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)


def test_hash_is_bcrypt_and_salted():
    first = hash_password("s3cret", rounds=4)
    second = hash_password("s3cret", rounds=4)
    assert first.startswith("$2b$04$")
    assert first != second
    assert check_password("s3cret", first)
    assert not check_password("S3cret", first)


def test_check_password_rejects_foreign_hashes():
    assert not check_password("s3cret", "pbkdf2_sha256$1$salt$abcd")
    assert not check_password("s3cret", "")


def test_overlong_password_is_refused():
    with pytest.raises(ValueError):
        hash_password("x" * 73, rounds=4)
    assert not check_password("x" * 73, hash_password("x" * 72, rounds=4))


def test_upsert_user_and_verify(engine):
    repo = UsersRepository(engine)
    user_id = repo.upsert_user("ada", "first-pass")
    assert repo.verify_credentials("ada", "first-pass")["role"] == "user"

    assert repo.upsert_user("ada", "second-pass", "admin") == user_id
    assert repo.verify_credentials("ada", "first-pass") is None
    user = repo.verify_credentials("ada", "second-pass")
    assert user["role"] == "admin"
    assert user["password_hash"].startswith("$2b$")
    assert repo.verify_credentials("ghost", "second-pass") is None


def test_upsert_user_rejects_unknown_role(engine):
    with pytest.raises(ValueError):
        UsersRepository(engine).upsert_user("ada", "pw", "root")
