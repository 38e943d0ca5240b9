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

from dataclasses import dataclass, fields
from enum import StrEnum

from docstress.errors import ConfigError


class Phase(StrEnum):
    LOAD = "load"
    RUN = "run"


class StoreType(StrEnum):
    CQL = "cql"
    MEMORY = "memory"


class KeyDistribution(StrEnum):
    SEQ = "seq"
    UNIFORM = "uniform"
    GAUSSIAN = "gaussian"


DEFAULT_NODES = ("127.0.0.1",)
DEFAULT_BUCKET = "default"
DEFAULT_PASSWORD = ""
DEFAULT_NUM_THREADS = 1
DEFAULT_NUM_CLIENTS = 1
DEFAULT_NUM_DOCS = 1000
DEFAULT_READ_RATIO = 50
DEFAULT_WRITE_RATIO = 50
DEFAULT_SAMPLING = 100
DEFAULT_PHASE = Phase.RUN
DEFAULT_RAMP = 0
DEFAULT_CLASS = "Simple"
# max_thinktime=0 disables think-time
DEFAULT_MIN_THINKTIME = 0
DEFAULT_MAX_THINKTIME = 0
DEFAULT_BATCHSIZE = 2
DEFAULT_VALUE_SIZE = 1024
DEFAULT_REQUEST_TIMEOUT = 12.0  # seconds, same as cassandra-stress
DEFAULT_LOG_INTERVAL = 1.0


def parse_nodes(nodes_str: str) -> tuple[str, ...]:
    """Split a comma separated node list, e.g. '10.0.0.1,10.0.0.2'."""
    nodes = tuple(node.strip() for node in nodes_str.split(",") if node.strip())
    if not nodes:
        raise ConfigError(f"No nodes found in '{nodes_str}'")
    return nodes


@dataclass(frozen=True)
class GlobalConfig:
    """Immutable settings of a single run."""

    nodes: tuple[str, ...] = DEFAULT_NODES
    bucket: str = DEFAULT_BUCKET
    user: str | None = None
    password: str = DEFAULT_PASSWORD
    num_threads: int = DEFAULT_NUM_THREADS
    num_clients: int = DEFAULT_NUM_CLIENTS
    num_docs: int = DEFAULT_NUM_DOCS
    read_ratio: int = DEFAULT_READ_RATIO
    write_ratio: int = DEFAULT_WRITE_RATIO
    batch_size: int = DEFAULT_BATCHSIZE  # reserved for batched calls
    sampling: int = DEFAULT_SAMPLING
    phase: Phase = DEFAULT_PHASE
    ramp: int = DEFAULT_RAMP
    class_name: str = DEFAULT_CLASS
    min_thinktime: int = DEFAULT_MIN_THINKTIME
    max_thinktime: int = DEFAULT_MAX_THINKTIME
    store: StoreType = StoreType.CQL
    key_dist: KeyDistribution = KeyDistribution.SEQ
    key_prefix: str = ""
    value_size: int = DEFAULT_VALUE_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    log_interval: float = DEFAULT_LOG_INTERVAL
    hdr_file: str | None = None

    def __post_init__(self):
        for name, enum_cls in (("phase", Phase), ("store", StoreType), ("key_dist", KeyDistribution)):
            value = getattr(self, name)
            try:
                # frozen dataclass, so bypass __setattr__ to normalize plain strings
                object.__setattr__(self, name, enum_cls(value))
            except ValueError:
                choices = ", ".join(member.value for member in enum_cls)
                raise ConfigError(f"Unknown {name} '{value}', expected one of: {choices}") from None
        if isinstance(self.nodes, str):
            object.__setattr__(self, "nodes", parse_nodes(self.nodes))
        else:
            object.__setattr__(self, "nodes", tuple(self.nodes))

    def validate(self) -> "GlobalConfig":
        """Check option values, raising ConfigError on the first problem found."""
        if not self.nodes:
            raise ConfigError("At least one node is required")
        if not self.bucket:
            raise ConfigError("Bucket name must not be empty")
        for name in ("num_threads", "num_clients", "num_docs", "batch_size", "value_size"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be a positive integer, got {getattr(self, name)}")
        for name in ("read_ratio", "write_ratio", "sampling"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigError(f"{name} must be between 0 and 100, got {value}")
        if self.phase == Phase.RUN and self.read_ratio + self.write_ratio == 0:
            raise ConfigError("read_ratio and write_ratio can't both be 0 in the run phase")
        if self.ramp < 0:
            raise ConfigError(f"ramp must not be negative, got {self.ramp}")
        if self.min_thinktime < 0 or self.max_thinktime < 0:
            raise ConfigError("Think-time bounds must not be negative")
        if self.min_thinktime > self.max_thinktime:
            raise ConfigError(
                f"min_thinktime ({self.min_thinktime}) is larger than max_thinktime ({self.max_thinktime})"
            )
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.log_interval <= 0:
            raise ConfigError(f"log_interval must be positive, got {self.log_interval}")
        return self

    @property
    def think_time_enabled(self) -> bool:
        return self.max_thinktime > 0

    @classmethod
    def from_args(cls, args) -> "GlobalConfig":
        """Build a config from an argparse namespace, keeping defaults for missing attributes."""
        kwargs = {}
        for config_field in fields(cls):
            value = getattr(args, config_field.name, None)
            if value is not None:
                kwargs[config_field.name] = value
        return cls(**kwargs).validate()

    def __str__(self):
        shown = []
        for config_field in fields(self):
            value = getattr(self, config_field.name)
            if config_field.name == "password" and value:
                value = "***"
            shown.append(f"{config_field.name}={value}")
        return f"GlobalConfig({', '.join(shown)})"
