# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Document Store - JSON document collections on disk.

Storage structure:
    data/
    └── {collection}/
        ├── {_id}.json
        └── {_id}.json

Every document is a plain JSON object with `_id`, `created_at` and
`updated_at`. Queries are equality matches on (optionally dotted) field
paths. Writes to a collection are serialized by an asyncio lock so unique
field constraints hold.
"""

import asyncio
import copy
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiofiles
import aiofiles.os

from dotportion.core.errors import ConflictError, InvalidInputError
from dotportion.core.logging import get_service_logger

logger = get_service_logger("store")

_MISSING = object()


class DuplicateKeyError(ConflictError):
    """Unique field constraint violated."""

    def __init__(self, collection: str, field: str, value: Any):
        super().__init__(
            f"Duplicate value for {collection}.{field}: {value}",
            resource=collection,
            details={"field": field}
        )
        self.field = field


def check_document_id(document_id: str) -> str:
    """Reject ids that would resolve outside their directory."""
    if not document_id or any(part in document_id for part in ("/", "\\", "..")):
        raise InvalidInputError(f"Invalid id: {document_id!r}")
    return document_id


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_path(document: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted field path from a document."""
    current: Any = document
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted field path, creating intermediate objects."""
    keys = path.split(".")
    current = document
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    """Equality match of every query field against the document."""
    if not query:
        return True
    return all(get_path(document, path, _MISSING) == value for path, value in query.items())


class Collection:
    """A named set of JSON documents."""

    def __init__(self, store: "DocumentStore", name: str, unique_fields: Iterable[str] = ()):
        self.store = store
        self.name = name
        self.unique_fields = tuple(unique_fields)
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self.store.base_dir / self.name

    def _document_path(self, document_id: str) -> Path:
        return self.path / f"{check_document_id(document_id)}.json"

    async def _read_all(self) -> List[Dict[str, Any]]:
        await self.store.connect()
        exists = await asyncio.to_thread(self.path.exists)
        if not exists:
            return []

        files = await asyncio.to_thread(lambda: sorted(self.path.glob("*.json")))
        documents = []
        for file in files:
            try:
                async with aiofiles.open(file, "r") as f:
                    documents.append(json.loads(await f.read()))
            except FileNotFoundError:
                # Deleted between listing and reading
                continue
        documents.sort(key=lambda d: d.get("created_at", ""))
        return documents

    async def _write(self, document: Dict[str, Any]) -> None:
        """Write via temp file + rename so readers never see a partial file"""
        file = self._document_path(document["_id"])
        temp_file = file.parent / f".{file.name}.tmp"
        await asyncio.to_thread(self.path.mkdir, parents=True, exist_ok=True)
        async with aiofiles.open(temp_file, "w") as f:
            await f.write(json.dumps(document, indent=2, default=str))
        await aiofiles.os.replace(temp_file, file)

    async def _check_unique(self, document: Dict[str, Any]) -> None:
        if not self.unique_fields:
            return
        existing = await self._read_all()
        for field in self.unique_fields:
            value = get_path(document, field, _MISSING)
            if value is _MISSING or value is None:
                continue
            for other in existing:
                if other["_id"] != document["_id"] and get_path(other, field, _MISSING) == value:
                    raise DuplicateKeyError(self.name, field, value)

    async def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document and return the stored copy."""
        now = utc_now()
        stored = copy.deepcopy(document)
        stored.setdefault("_id", uuid.uuid4().hex)
        stored.setdefault("created_at", now)
        stored["updated_at"] = now

        async with self._write_lock:
            await self._check_unique(stored)
            await self._write(stored)

        logger.debug(f"Inserted {self.name}/{stored['_id']}")
        return copy.deepcopy(stored)

    async def find_one(self, query: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Return the first matching document, oldest first."""
        if query and set(query) == {"_id"}:
            return await self.get(query["_id"])
        for document in await self._read_all():
            if matches(document, query):
                return document
        return None

    async def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        await self.store.connect()
        file = self._document_path(str(document_id))
        try:
            async with aiofiles.open(file, "r") as f:
                return json.loads(await f.read())
        except FileNotFoundError:
            return None

    async def find(
        self,
        query: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        results = [d for d in await self._read_all() if matches(d, query)]
        return results[:limit] if limit is not None else results

    async def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        return len(await self.find(query))

    async def update_one(
        self,
        query: Dict[str, Any],
        changes: Dict[str, Any],
        upsert: bool = False
    ) -> Optional[Dict[str, Any]]:
        """
        Apply field changes (dotted paths allowed) to the first match.

        Returns the updated document, or None when nothing matched and
        upsert is off.
        """
        async with self._write_lock:
            document = await self.find_one(query)
            if document is None:
                if not upsert:
                    return None
                now = utc_now()
                document = {"_id": uuid.uuid4().hex, "created_at": now}
                for path, value in query.items():
                    set_path(document, path, value)

            for path, value in changes.items():
                set_path(document, path, copy.deepcopy(value))
            document["updated_at"] = utc_now()

            await self._check_unique(document)
            await self._write(document)

        return copy.deepcopy(document)

    async def delete_one(self, query: Dict[str, Any]) -> bool:
        async with self._write_lock:
            document = await self.find_one(query)
            if document is None:
                return False
            await aiofiles.os.remove(self._document_path(document["_id"]))
        return True

    async def delete_many(self, query: Optional[Dict[str, Any]] = None) -> int:
        async with self._write_lock:
            documents = [d for d in await self._read_all() if matches(d, query)]
            for document in documents:
                await aiofiles.os.remove(self._document_path(document["_id"]))
        return len(documents)


class DocumentStore:
    """
    Connection-like handle to the document database.

    Created once at startup and handed to every service. `connect()` is
    lazy and idempotent; concurrent first calls prepare the data directory
    exactly once.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self._connected = False
        self._connect_lock = asyncio.Lock()
        self._collections: Dict[str, Collection] = {}

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> "DocumentStore":
        if self._connected:
            return self

        async with self._connect_lock:
            if not self._connected:
                await asyncio.to_thread(self.base_dir.mkdir, parents=True, exist_ok=True)
                self._connected = True
                logger.info(f"Document store ready at {self.base_dir}")
        return self

    def collection(self, name: str, unique_fields: Iterable[str] = ()) -> Collection:
        """Get (or register) a collection by name."""
        if name not in self._collections:
            self._collections[name] = Collection(self, name, unique_fields)
        return self._collections[name]
