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


class StressError(Exception):
    """Base exception for all docstress errors."""


class ConfigError(StressError):
    """Raised when an option value is malformed or missing."""


class PartitionDegenerateError(ConfigError):
    """Raised when the keyspace cannot be split across the requested clients."""


class StoreConnectionError(StressError):
    """Raised when a connection to the document store cannot be established."""


class OperationError(StressError):
    """Raised when a single get/upsert call against the store fails."""

    def __init__(self, operation: str, key: str, message: str):
        super().__init__(f"{operation} of key {key!r} failed: {message}")
        self.operation = operation
        self.key = key
