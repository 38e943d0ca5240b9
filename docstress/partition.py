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

"""
Splitting of the document keyspace across client handlers and their worker threads.

Handler ranges are ``num_docs // num_clients`` keys wide, laid out back to back from 0.
The ``num_docs % num_clients`` documents at the end of the keyspace belong to no handler
and are never touched by a run (see ``unreachable_docs``).
"""

from typing import NamedTuple

from docstress.errors import PartitionDegenerateError


class KeyRange(NamedTuple):
    offset: int
    count: int

    @property
    def end(self) -> int:
        return self.offset + self.count

    def keys(self) -> range:
        return range(self.offset, self.end)


def partition_keyspace(num_docs: int, num_clients: int) -> list[KeyRange]:
    """Return one contiguous, disjoint range per client handler."""
    if num_clients < 1:
        raise PartitionDegenerateError(f"num_clients must be at least 1, got {num_clients}")
    if num_docs < 1:
        raise PartitionDegenerateError(f"num_docs must be at least 1, got {num_docs}")
    if num_clients > num_docs:
        raise PartitionDegenerateError(
            f"Can't split {num_docs} documents across {num_clients} clients without empty partitions"
        )

    docs_per_handler = num_docs // num_clients
    return [KeyRange(offset=i * docs_per_handler, count=docs_per_handler) for i in range(num_clients)]


def unreachable_docs(num_docs: int, num_clients: int) -> int:
    """Number of trailing documents that no handler range covers."""
    return num_docs % num_clients


def split_range(key_range: KeyRange, parts: int) -> list[KeyRange]:
    """
    Split a handler range between ``parts`` worker threads.

    Unlike the handler partition, nothing is dropped here: the first ``count % parts``
    sub-ranges are one key longer. A sub-range is empty when there are more threads than keys.
    """
    if parts < 1:
        raise PartitionDegenerateError(f"Can't split a range into {parts} parts")

    base, extra = divmod(key_range.count, parts)
    ranges = []
    offset = key_range.offset
    for i in range(parts):
        count = base + 1 if i < extra else base
        ranges.append(KeyRange(offset=offset, count=count))
        offset += count
    return ranges
