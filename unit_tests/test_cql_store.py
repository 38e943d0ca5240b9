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

import os
from unittest.mock import MagicMock, patch

import pytest
from cassandra import OperationTimedOut
from cassandra.cluster import EXEC_PROFILE_DEFAULT, NoHostAvailable

from docstress.config import DEFAULT_REQUEST_TIMEOUT
from docstress.cql_store import CONNECT_TIMEOUT, TABLE_NAME, CqlDocumentStore, create_cluster_connection
from docstress.dispatcher import WorkloadDispatcher
from docstress.errors import OperationError, StoreConnectionError


@pytest.fixture
def cluster_cls():
    with patch("docstress.cql_store.Cluster") as cluster_cls:
        yield cluster_cls


def test_cluster_connection_settings(cluster_cls):
    create_cluster_connection(["10.0.0.1"], user="scylla", password="secret", request_timeout=30)

    kwargs = cluster_cls.call_args.kwargs
    assert kwargs["contact_points"] == ["10.0.0.1"]
    assert kwargs["protocol_version"] == 4
    assert kwargs["auth_provider"].username == "scylla"
    assert kwargs["execution_profiles"][next(iter(kwargs["execution_profiles"]))].request_timeout == 30


def test_cluster_connection_defaults(cluster_cls):
    create_cluster_connection(("10.0.0.1", "10.0.0.2"))

    kwargs = cluster_cls.call_args.kwargs
    assert kwargs["contact_points"] == ["10.0.0.1", "10.0.0.2"]
    assert kwargs["connect_timeout"] == CONNECT_TIMEOUT
    assert kwargs["execution_profiles"][EXEC_PROFILE_DEFAULT].request_timeout == DEFAULT_REQUEST_TIMEOUT


def test_no_auth_without_password(cluster_cls):
    create_cluster_connection(["10.0.0.1"], user="scylla")

    assert cluster_cls.call_args.kwargs["auth_provider"] is None


def test_connect_failure_is_a_connection_error(cluster_cls):
    cluster = cluster_cls.return_value
    cluster.connect.side_effect = NoHostAvailable("Unable to connect to any servers", {})
    store = CqlDocumentStore()

    with pytest.raises(StoreConnectionError, match="Can't connect"):
        store.connect(["10.0.0.1"])

    cluster.shutdown.assert_called_once()
    assert store.cluster is None


def test_open_bucket_creates_schema(cluster_cls):
    session = cluster_cls.return_value.connect.return_value
    store = CqlDocumentStore(replication_factor=3)
    store.connect(["10.0.0.1"])

    bucket = store.open_bucket("bench")

    statements = [call.args[0] for call in session.execute.call_args_list]
    assert any("CREATE KEYSPACE IF NOT EXISTS bench" in stmt and "'replication_factor': 3" in stmt for stmt in statements)
    assert any(f"CREATE TABLE IF NOT EXISTS bench.{TABLE_NAME}" in stmt for stmt in statements)
    session.set_keyspace.assert_called_once_with("bench")
    assert bucket.keyspace_name == "bench"


def test_open_bucket_rejects_bad_keyspace_name(cluster_cls):
    store = CqlDocumentStore()
    store.connect(["10.0.0.1"])

    with pytest.raises(StoreConnectionError, match="not a valid keyspace name"):
        store.open_bucket("drop table; --")


def test_open_bucket_requires_connection():
    with pytest.raises(StoreConnectionError, match="not connected"):
        CqlDocumentStore().open_bucket("bench")


def test_get_and_upsert(cluster_cls):
    session = cluster_cls.return_value.connect.return_value
    session.execute.return_value.one.return_value = MagicMock(value=b"payload")
    store = CqlDocumentStore()
    store.connect(["10.0.0.1"])
    bucket = store.open_bucket("bench")

    assert bucket.get("42") == b"payload"
    bucket.upsert("42", b"new")

    session.execute.assert_called_with(bucket.prepared_write, (b"42", b"new"))


def test_missing_document_reads_as_none(cluster_cls):
    session = cluster_cls.return_value.connect.return_value
    session.execute.return_value.one.return_value = None
    store = CqlDocumentStore()
    store.connect(["10.0.0.1"])

    assert store.open_bucket("bench").get("1") is None


def test_driver_errors_become_operation_errors(cluster_cls):
    session = cluster_cls.return_value.connect.return_value
    store = CqlDocumentStore()
    store.connect(["10.0.0.1"])
    bucket = store.open_bucket("bench")
    session.execute.side_effect = OperationTimedOut("timed out")

    with pytest.raises(OperationError, match="write of key '7' failed"):
        bucket.upsert("7", b"x")
    with pytest.raises(OperationError, match="read of key '7' failed"):
        bucket.get("7")


def test_disconnect_is_idempotent(cluster_cls):
    store = CqlDocumentStore()
    store.connect(["10.0.0.1"])

    store.disconnect()
    store.disconnect()

    cluster_cls.return_value.shutdown.assert_called_once()


def test_dispatcher_disconnects_cluster_once(cluster_cls, make_config):
    config = make_config(store="cql", num_docs=40, num_clients=2, num_threads=2)
    session = cluster_cls.return_value.connect.return_value
    session.execute.return_value.one.return_value = None

    WorkloadDispatcher(config, CqlDocumentStore()).run()

    cluster_cls.return_value.shutdown.assert_called_once()


@pytest.mark.integration
@pytest.mark.skipif(not os.environ.get("DOCSTRESS_CQL_NODE"), reason="DOCSTRESS_CQL_NODE is not set")
def test_load_and_run_against_live_node(make_config):
    node = os.environ["DOCSTRESS_CQL_NODE"]

    load = WorkloadDispatcher(make_config(store="cql", nodes=node, bucket="docstress_test", phase="load",
                                          num_docs=200, num_clients=2, num_threads=2), CqlDocumentStore())
    load.run()
    assert load.get_total_ops() == 200

    mixed = WorkloadDispatcher(make_config(store="cql", nodes=node, bucket="docstress_test", phase="run",
                                           num_docs=200, num_clients=2, num_threads=2), CqlDocumentStore())
    measures = mixed.run()
    assert mixed.get_measured_ops() == 200
    assert set(measures) <= {"Get", "Upsert"}
