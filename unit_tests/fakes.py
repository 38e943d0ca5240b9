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

import threading
from collections import Counter

from docstress.errors import OperationError, StoreConnectionError
from docstress.opmix import Operation
from docstress.store import MemoryBucket, MemoryDocumentStore


class RecordingBucket(MemoryBucket):
    def __init__(self, name):
        super().__init__(name)
        self.writes = Counter()
        self.reads = Counter()

    def get(self, key):
        with self.lock:
            self.reads[key] += 1
        return super().get(key)

    def upsert(self, key, value):
        with self.lock:
            self.writes[key] += 1
        super().upsert(key, value)


class FailingBucket(MemoryBucket):
    """Fails every call on fail_key."""

    def __init__(self, name, fail_key):
        super().__init__(name)
        self.fail_key = fail_key

    def get(self, key):
        if key == self.fail_key:
            raise OperationError(Operation.READ, key, "simulated read timeout")
        return super().get(key)

    def upsert(self, key, value):
        if key == self.fail_key:
            raise OperationError(Operation.WRITE, key, "simulated write timeout")
        super().upsert(key, value)


class CountingStore(MemoryDocumentStore):
    """Memory store that remembers how many times it was disconnected."""

    def __init__(self):
        super().__init__()
        self.disconnect_count = 0

    def disconnect(self):
        super().disconnect()
        self.disconnect_count += 1


class RecordingStore(CountingStore):
    def __init__(self):
        super().__init__()
        self.bucket = RecordingBucket("default")
        self.opened = 0

    def open_bucket(self, name, password=""):
        if not self.connected:
            raise StoreConnectionError("not connected")
        self.opened += 1
        return self.bucket


class FailingStore(CountingStore):
    def __init__(self, fail_key=None, fail_on_open=None):
        super().__init__()
        self.fail_key = fail_key
        self.fail_on_open = fail_on_open
        self.opened = 0
        self._open_lock = threading.Lock()

    def open_bucket(self, name, password=""):
        with self._open_lock:
            self.opened += 1
            if self.fail_on_open == self.opened:
                raise StoreConnectionError(f"can't open bucket {name}")
        return FailingBucket(name, self.fail_key)


class FakeClock:
    """perf_counter_ns replacement advancing a fixed step on every call."""

    def __init__(self, step_sec):
        self.step_ns = int(step_sec * 1_000_000_000)
        self.now = 0

    def __call__(self):
        now = self.now
        self.now += self.step_ns
        return now
