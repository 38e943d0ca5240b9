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

import pytest

from docstress.errors import ConfigError, PartitionDegenerateError
from docstress.partition import KeyRange, partition_keyspace, split_range, unreachable_docs


def test_even_split_two_clients():
    assert partition_keyspace(100, 2) == [KeyRange(offset=0, count=50), KeyRange(offset=50, count=50)]


def test_uneven_split_drops_remainder():
    ranges = partition_keyspace(10, 3)

    assert ranges == [KeyRange(0, 3), KeyRange(3, 3), KeyRange(6, 3)]
    assert unreachable_docs(10, 3) == 1
    assert all(9 not in key_range.keys() for key_range in ranges)


@pytest.mark.parametrize(
    "num_docs,num_clients",
    [(1, 1), (7, 7), (100, 3), (1000, 7), (1001, 10), (12345, 64)],
)
def test_ranges_are_disjoint_and_sized(num_docs, num_clients):
    ranges = partition_keyspace(num_docs, num_clients)

    assert len(ranges) == num_clients
    assert all(key_range.count == num_docs // num_clients for key_range in ranges)

    covered = [key for key_range in ranges for key in key_range.keys()]
    assert len(covered) == len(set(covered))
    assert set(covered) <= set(range(num_docs))
    assert len(covered) + unreachable_docs(num_docs, num_clients) == num_docs
    assert not set(covered) & set(range(num_docs - unreachable_docs(num_docs, num_clients), num_docs))


@pytest.mark.parametrize("num_docs,num_clients", [(10, 0), (0, 1), (-5, 2), (3, 4)])
def test_degenerate_partitions_are_rejected(num_docs, num_clients):
    with pytest.raises(PartitionDegenerateError):
        partition_keyspace(num_docs, num_clients)


def test_degenerate_partition_is_a_config_error():
    with pytest.raises(ConfigError):
        partition_keyspace(1, 2)


def test_split_range_covers_whole_handler_range():
    parts = split_range(KeyRange(50, 50), 3)

    assert parts == [KeyRange(50, 17), KeyRange(67, 17), KeyRange(84, 16)]
    assert [key for part in parts for key in part.keys()] == list(range(50, 100))


def test_split_range_with_more_threads_than_keys():
    parts = split_range(KeyRange(0, 2), 4)

    assert [part.count for part in parts] == [1, 1, 0, 0]
    assert sum(part.count for part in parts) == 2


def test_split_range_rejects_zero_parts():
    with pytest.raises(PartitionDegenerateError):
        split_range(KeyRange(0, 10), 0)
