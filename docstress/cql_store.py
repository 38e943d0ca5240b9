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
Document store backed by ScyllaDB / Cassandra through the Python driver.

Buckets map to keyspaces. Every document lives in a two column table::

    CREATE TABLE documents (key blob PRIMARY KEY, value blob)

One ``Cluster`` is created per run and shared by all client handlers; each handler gets its
own ``Session`` with prepared statements.
"""

import logging
import re

from cassandra import ConsistencyLevel, DriverException
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, NoHostAvailable
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy

from docstress.config import DEFAULT_REQUEST_TIMEOUT
from docstress.errors import OperationError, StoreConnectionError
from docstress.opmix import Operation
from docstress.store import Bucket, DocumentStore


logger = logging.getLogger(__name__)

TABLE_NAME = "documents"
KEYSPACE_NAME_RE = re.compile(r"^[a-zA-Z0-9_]{1,48}$")
PROTOCOL_VERSION = 4
# seconds
CONNECT_TIMEOUT = 11
CONTROL_CONNECTION_TIMEOUT = 6


def create_cluster_connection(
    nodes,
    user: str | None = None,
    password: str | None = None,
    consistency_level=ConsistencyLevel.ONE,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> Cluster:
    """Build an unconnected Cluster for the given contact points.

    Requests go token-aware to the local DC. Authentication is only set up when both
    user and password are given.
    """
    auth_provider = PlainTextAuthProvider(username=user, password=password) if user and password else None

    profile = ExecutionProfile(
        load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
        consistency_level=consistency_level,
        request_timeout=request_timeout,
    )
    return Cluster(
        contact_points=list(nodes),
        execution_profiles={EXEC_PROFILE_DEFAULT: profile},
        protocol_version=PROTOCOL_VERSION,
        auth_provider=auth_provider,
        connect_timeout=CONNECT_TIMEOUT,
        control_connection_timeout=CONTROL_CONNECTION_TIMEOUT,
    )


class CqlBucket(Bucket):
    """Session bound to one keyspace, with the read and write statements prepared up front."""

    def __init__(self, session, keyspace_name: str):
        self.session = session
        self.keyspace_name = keyspace_name
        self.prepared_write = session.prepare(f"INSERT INTO {TABLE_NAME} (key, value) VALUES (?, ?)")
        self.prepared_read = session.prepare(f"SELECT value FROM {TABLE_NAME} WHERE key = ?")

    @staticmethod
    def _encode_key(key: str) -> bytes:
        return key.encode("utf-8")

    def get(self, key: str) -> bytes | None:
        try:
            row = self.session.execute(self.prepared_read, (self._encode_key(key),)).one()
        except (DriverException, NoHostAvailable, OSError) as exc:
            raise OperationError(Operation.READ, key, str(exc)) from exc
        return row.value if row else None

    def upsert(self, key: str, value: bytes) -> None:
        try:
            self.session.execute(self.prepared_write, (self._encode_key(key), value))
        except (DriverException, NoHostAvailable, OSError) as exc:
            raise OperationError(Operation.WRITE, key, str(exc)) from exc


class CqlDocumentStore(DocumentStore):
    def __init__(
        self,
        user: str | None = None,
        password: str | None = None,
        consistency_level=ConsistencyLevel.ONE,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        replication_factor: int = 1,
    ):
        self.user = user
        self.password = password
        self.consistency_level = consistency_level
        self.request_timeout = request_timeout
        self.replication_factor = replication_factor
        self.cluster = None

    def connect(self, nodes) -> None:
        logger.info(f"Connecting to {list(nodes)}...")
        self.cluster = create_cluster_connection(
            nodes=nodes,
            user=self.user,
            password=self.password,
            consistency_level=self.consistency_level,
            request_timeout=self.request_timeout,
        )
        try:
            # opens the control connection, so an unreachable cluster fails here and not in a worker
            self.cluster.connect().shutdown()
        except (NoHostAvailable, DriverException, OSError) as exc:
            self.cluster.shutdown()
            self.cluster = None
            raise StoreConnectionError(f"Can't connect to {list(nodes)}: {exc}") from exc

    def setup_schema(self, session, keyspace_name: str) -> None:
        strategy = f"{{'class': 'SimpleStrategy', 'replication_factor': {self.replication_factor}}}"
        session.execute(f"CREATE KEYSPACE IF NOT EXISTS {keyspace_name} WITH replication = {strategy}")
        session.execute(f"CREATE TABLE IF NOT EXISTS {keyspace_name}.{TABLE_NAME} (key blob PRIMARY KEY, value blob)")

    def open_bucket(self, name: str, password: str = "") -> CqlBucket:
        """Open a session on keyspace ``name``, creating keyspace and table when missing.

        Authentication happens at cluster level with user/password, so the bucket password is not used.
        """
        if self.cluster is None:
            raise StoreConnectionError("CQL store is not connected")
        if not KEYSPACE_NAME_RE.match(name):
            raise StoreConnectionError(f"'{name}' is not a valid keyspace name")

        try:
            session = self.cluster.connect()
            session.use_client_timestamp = False
            self.setup_schema(session, name)
            session.set_keyspace(name)
            return CqlBucket(session, name)
        except (NoHostAvailable, DriverException, OSError) as exc:
            raise StoreConnectionError(f"Can't open keyspace '{name}': {exc}") from exc

    def disconnect(self) -> None:
        if self.cluster:
            self.cluster.shutdown()
            self.cluster = None
            logger.debug("Cluster connection closed")
