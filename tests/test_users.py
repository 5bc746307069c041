"""Tests for user creation and password hashing."""

from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from forecast_engine.app.schemas import SignUpRequest
from forecast_engine.app.users import (
    PBKDF2_ITERATIONS,
    MissingFieldsError,
    UserAlreadyExistsError,
    create_user,
    ensure_indexes,
    hash_password,
    to_user_out,
)


def _db(existing=None, inserted_id=None):
    users = MagicMock()
    users.find_one.return_value = existing
    users.insert_one.return_value.inserted_id = inserted_id or ObjectId()
    database = MagicMock()
    database.__getitem__.return_value = users
    return database, users


def _payload(**overrides):
    data = {"username": "  Ada ", "email": " ADA@Example.com ", "name": " Ada Lovelace ", "password": "s3cret"}
    data.update(overrides)
    return SignUpRequest(**data)


class TestPasswords:

    def test_format(self):
        encoded = hash_password("hunter2")
        algorithm, iterations, salt, digest = encoded.split("$")
        assert algorithm == "pbkdf2_sha256"
        assert int(iterations) == PBKDF2_ITERATIONS
        assert len(salt) == 32
        assert len(digest) == 64
        assert "hunter2" not in encoded

    def test_salted(self):
        assert hash_password("same") != hash_password("same")
        assert hash_password("same", salt="abc") == hash_password("same", salt="abc")

    def test_password_changes_digest(self):
        assert hash_password("hunter2", salt="abc") != hash_password("hunter3", salt="abc")


class TestCreateUser:

    def test_normalizes_and_hashes(self):
        database, users = _db()
        doc = create_user(database, _payload())

        users.find_one.assert_called_once_with(
            {"$or": [{"email": "ada@example.com"}, {"username": "ada"}]}
        )
        stored = users.insert_one.call_args[0][0]
        assert stored["username"] == "ada"
        assert stored["email"] == "ada@example.com"
        assert stored["name"] == "Ada Lovelace"
        salt = stored["password"].split("$")[2]
        assert stored["password"] == hash_password("s3cret", salt=salt)
        assert stored["created_at"] == stored["updated_at"] == stored["last_login"]
        assert "_id" in doc

    @pytest.mark.parametrize("field", ["username", "email", "name", "password"])
    def test_missing_field(self, field):
        database, users = _db()
        with pytest.raises(MissingFieldsError):
            create_user(database, _payload(**{field: "   " if field != "password" else None}))
        users.insert_one.assert_not_called()

    def test_existing_user(self):
        database, users = _db(existing={"username": "ada"})
        with pytest.raises(UserAlreadyExistsError):
            create_user(database, _payload())
        users.insert_one.assert_not_called()

    def test_duplicate_key_race(self):
        database, users = _db()
        users.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(UserAlreadyExistsError):
            create_user(database, _payload())

    def test_indexes(self):
        database, users = _db()
        ensure_indexes(database)
        users.create_index.assert_any_call("username", unique=True)
        users.create_index.assert_any_call("email", unique=True)


class TestUserOut:

    def test_password_is_not_exposed(self):
        database, _ = _db(inserted_id=ObjectId("65f000000000000000000001"))
        out = to_user_out(create_user(database, _payload()))
        dumped = out.model_dump()

        assert "password" not in dumped
        assert dumped["id"] == "65f000000000000000000001"
        assert dumped["username"] == "ada"
        assert dumped["created_at"].endswith("+00:00")
