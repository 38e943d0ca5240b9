# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.
#
# See LICENSE for more details.
#
# Copyright (c) 2026 ScyllaDB

import logging
import threading
from abc import ABC, abstractmethod

from docstress.errors import StoreConnectionError


logger = logging.getLogger(__name__)


class Bucket(ABC):
    """A session on one bucket of the store, shared by the workers of a client handler."""

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        ...

    @abstractmethod
    def upsert(self, key: str, value: bytes) -> None:
        ...


class DocumentStore(ABC):
    """Cluster-wide connection manager, shared by every client handler of a run.

    The dispatcher calls ``connect`` once before building handlers and ``disconnect``
    once at the very end, whatever the outcome of the run.
    """

    @abstractmethod
    def connect(self, nodes) -> None:
        ...

    @abstractmethod
    def open_bucket(self, name: str, password: str = "") -> Bucket:
        ...

    @abstractmethod
    def disconnect(self) -> None:
        ...


class MemoryBucket(Bucket):
    def __init__(self, name: str):
        self.name = name
        self.documents: dict[str, bytes] = {}
        self.lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self.lock:
            return self.documents.get(key)

    def upsert(self, key: str, value: bytes) -> None:
        with self.lock:
            self.documents[key] = value


class MemoryDocumentStore(DocumentStore):
    """In-process store, used for dry runs of the harness itself."""

    def __init__(self):
        self.buckets: dict[str, MemoryBucket] = {}
        self.connected = False
        self._lock = threading.Lock()

    def connect(self, nodes) -> None:
        logger.debug(f"Memory store ignoring nodes {list(nodes)}")
        self.connected = True

    def open_bucket(self, name: str, password: str = "") -> MemoryBucket:
        if not self.connected:
            raise StoreConnectionError("Memory store is not connected")
        with self._lock:
            return self.buckets.setdefault(name, MemoryBucket(name))

    def disconnect(self) -> None:
        self.connected = False
