from datetime import datetime

import pymongo.errors
import pytest
from bson import ObjectId

from nerdtalks import database
from nerdtalks.config import Settings
from nerdtalks.errors import InvalidArgument
from nerdtalks.pagination import MAX_PAGE, MAX_PAGE_LIMIT, page_params, parse_bool, total_pages


@pytest.mark.parametrize("page,limit,expected", [
    (None, None, (1, 5, 0)),
    ("3", "5", (3, 5, 10)),
    ("0", "0", (1, 5, 0)),
    ("x", "2.5", (1, 5, 0)),
    (2, 10_000, (2, MAX_PAGE_LIMIT, MAX_PAGE_LIMIT)),
    (str(10 ** 19), "5", (MAX_PAGE, 5, (MAX_PAGE - 1) * 5)),
])
def test_page_params(page, limit, expected):
    assert page_params(page, limit, 5) == expected


def test_total_pages():
    assert total_pages(0, 5) == 0
    assert total_pages(12, 5) == 3
    assert total_pages(10, 5) == 2


def test_parse_bool():
    assert parse_bool("true") and parse_bool("1") and parse_bool(True)
    assert not parse_bool(None) and not parse_bool("false") and not parse_bool("nope")


def test_serialize_converts_ids_and_dates():
    oid = ObjectId()
    doc = {"_id": oid, "createdAt": datetime(2024, 5, 1, 12, 0), "tags": ["a"]}

    out = database.serialize(doc)

    assert out == {"_id": str(oid), "createdAt": "2024-05-01T12:00:00", "tags": ["a"]}
    assert isinstance(doc["_id"], ObjectId)


def test_object_id_rejects_malformed():
    oid = ObjectId()
    assert database.object_id(str(oid)) == oid
    for bad in ("", None, "123", "zzzzzzzzzzzzzzzzzzzzzzzz"):
        with pytest.raises(InvalidArgument):
            database.object_id(bad)


@pytest.mark.asyncio
async def test_ensure_indexes_makes_uid_unique(db):
    await database.ensure_indexes(db)

    await db.users.insert_one({"uid": "u1"})
    with pytest.raises(pymongo.errors.DuplicateKeyError):
        await db.users.insert_one({"uid": "u1"})


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "mongodb://db:27017")
    monkeypatch.setenv("DATABASE_NAME", "forum")
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    monkeypatch.setenv("JWT_ALGORITHMS", "HS256, HS512")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test,http://b.test")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.mongodb_uri == "mongodb://db:27017"
    assert settings.database_name == "forum"
    assert settings.jwt_secret == "s3cret"
    assert settings.jwt_algorithms == ["HS256", "HS512"]
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.log_level == "DEBUG"
