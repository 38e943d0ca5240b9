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

import random
from enum import StrEnum

from docstress.config import Phase
from docstress.errors import ConfigError


class Operation(StrEnum):
    READ = "read"
    WRITE = "write"


class OperationMixSelector:
    """Decides, per attempted operation, whether it is a read or a write.

    In the load phase every operation is a write, so the keyspace gets populated.
    In the run phase a write is picked with probability write_ratio / (read_ratio + write_ratio).
    """

    def __init__(self, phase: Phase, read_ratio: int, write_ratio: int, rng: random.Random | None = None):
        self.phase = Phase(phase)
        self.read_ratio = read_ratio
        self.write_ratio = write_ratio
        self.rng = rng or random.Random()
        if self.phase == Phase.RUN:
            if read_ratio < 0 or write_ratio < 0 or read_ratio + write_ratio == 0:
                raise ConfigError(f"Invalid read/write ratio {read_ratio}/{write_ratio}")
            self.write_probability = write_ratio / (read_ratio + write_ratio)
        else:
            self.write_probability = 1.0

    def select(self) -> Operation:
        if self.phase == Phase.LOAD:
            return Operation.WRITE
        return Operation.WRITE if self.rng.random() < self.write_probability else Operation.READ
