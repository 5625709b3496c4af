# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the JSON document store
"""

import asyncio

import pytest

from dotportion.core.errors import InvalidInputError
from dotportion.db.collections import USERS, get_collection
from dotportion.db.store import DuplicateKeyError, get_path, matches, set_path


class TestPaths:
    """Test dotted path helpers"""

    def test_get_path(self):
        document = {"access": {"status": "approved"}}
        assert get_path(document, "access.status") == "approved"
        assert get_path(document, "access.missing", "x") == "x"

    def test_set_path_creates_parents(self):
        document = {}
        set_path(document, "tours.dashboard", True)
        assert document == {"tours": {"dashboard": True}}

    def test_matches(self):
        document = {"email": "a@example.com", "access": {"status": "requested"}}
        assert matches(document, {"access.status": "requested"})
        assert not matches(document, {"email": "b@example.com"})
        assert matches(document, None)


class TestCollection:
    """Test Collection CRUD"""

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamps(self, store):
        users = get_collection(store, USERS)

        stored = await users.insert_one({"email": "a@example.com", "name": "a"})

        assert stored["_id"]
        assert stored["created_at"] and stored["updated_at"]
        assert await users.get(stored["_id"]) == stored

    @pytest.mark.asyncio
    async def test_insert_returns_copy(self, store):
        users = get_collection(store, USERS)
        document = {"email": "a@example.com", "name": "a", "tours": {}}

        stored = await users.insert_one(document)
        stored["tours"]["x"] = True

        assert (await users.get(stored["_id"]))["tours"] == {}
        assert "_id" not in document

    @pytest.mark.asyncio
    async def test_unique_fields(self, store):
        users = get_collection(store, USERS)
        await users.insert_one({"email": "a@example.com", "name": "a"})

        with pytest.raises(DuplicateKeyError) as exc_info:
            await users.insert_one({"email": "a@example.com", "name": "b"})

        assert exc_info.value.field == "email"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_null_values_not_unique(self, store):
        users = get_collection(store, USERS)
        await users.insert_one({"email": "a@example.com", "name": "a", "cognito_sub": None})
        await users.insert_one({"email": "b@example.com", "name": "b", "cognito_sub": None})

        assert await users.count() == 2

    @pytest.mark.asyncio
    async def test_concurrent_unique_inserts(self, store):
        """Only one of several racing inserts of the same email wins"""
        users = get_collection(store, USERS)

        results = await asyncio.gather(
            *[users.insert_one({"email": "a@example.com", "name": f"n{i}"}) for i in range(5)],
            return_exceptions=True,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 1
        assert await users.count() == 1

    @pytest.mark.asyncio
    async def test_update_one_dotted(self, store):
        users = get_collection(store, USERS)
        stored = await users.insert_one({"email": "a@example.com", "name": "a", "profile": {"tools": []}})

        updated = await users.update_one({"_id": stored["_id"]}, {"profile.contact_number": "555"})

        assert updated["profile"] == {"tools": [], "contact_number": "555"}

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        users = get_collection(store, USERS)
        assert await users.update_one({"_id": "nope"}, {"name": "x"}) is None

    @pytest.mark.asyncio
    async def test_upsert(self, store):
        users = get_collection(store, USERS)

        created = await users.update_one({"email": "a@example.com"}, {"name": "a"}, upsert=True)

        assert created["email"] == "a@example.com"
        assert await users.find_one({"email": "a@example.com"}) == created

    @pytest.mark.asyncio
    async def test_find_and_delete(self, store):
        users = get_collection(store, USERS)
        for i in range(3):
            await users.insert_one({"email": f"u{i}@example.com", "name": f"u{i}", "role": "user"})

        assert len(await users.find({"role": "user"}, limit=2)) == 2
        assert await users.delete_one({"email": "u0@example.com"}) is True
        assert await users.delete_one({"email": "u0@example.com"}) is False
        assert await users.delete_many({"role": "user"}) == 2
        assert await users.find() == []

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, store):
        await asyncio.gather(store.connect(), store.connect())
        assert store.connected
        assert store.base_dir.exists()

    @pytest.mark.asyncio
    async def test_reads_during_updates_see_whole_documents(self, store):
        users = get_collection(store, USERS)
        stored = await users.insert_one({"email": "a@example.com", "name": "a", "counter": 0})

        async def update(i):
            await users.update_one({"_id": stored["_id"]}, {"counter": i, "notes": "x" * 50000})

        async def read():
            document = await users.get(stored["_id"])
            assert document["email"] == "a@example.com"

        await asyncio.gather(*[update(i) for i in range(50)], *[read() for _ in range(300)])

        assert (await users.get(stored["_id"]))["counter"] == 49
        assert list(users.path.glob("*.tmp")) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("document_id", ["../users/abc", "a/b", "a\\b", ".."])
    async def test_rejects_ids_outside_collection(self, store, document_id):
        users = get_collection(store, USERS)

        with pytest.raises(InvalidInputError):
            await users.insert_one({"_id": document_id, "email": "a@example.com"})
        with pytest.raises(InvalidInputError):
            await users.get(document_id)

        assert not (store.base_dir / "abc.json").exists()
