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
import random
import threading
import time

from docstress.config import GlobalConfig
from docstress.errors import OperationError
from docstress.generators import DocumentGenerator
from docstress.keys import create_key_generator, format_key
from docstress.opmix import Operation, OperationMixSelector
from docstress.partition import KeyRange
from docstress.store import Bucket


NS_PER_SEC = 1_000_000_000


class Worker:
    """Single thread of execution working through one key range.

    The worker attempts exactly ``key_range.count`` operations (fewer only when the run is
    aborted), timing each store call. Counters and samples belong to this worker alone;
    the lock only makes the counters safe to read from the dispatcher's progress loop.
    """

    def __init__(
        self,
        name: str,
        config: GlobalConfig,
        key_range: KeyRange,
        bucket: Bucket,
        generator: DocumentGenerator,
        abort_event: threading.Event | None = None,
        rng: random.Random | None = None,
        clock=time.perf_counter_ns,
        sleep=time.sleep,
    ):
        self.name = name
        self.config = config
        self.key_range = key_range
        self.bucket = bucket
        self.generator = generator
        self.abort_event = abort_event or threading.Event()
        self.rng = rng or random.Random()
        self.clock = clock
        self.sleep = sleep

        self.selector = OperationMixSelector(config.phase, config.read_ratio, config.write_ratio, rng=self.rng)
        self.ramp_ns = config.ramp * NS_PER_SEC

        self.lock = threading.Lock()
        self.total_ops = 0
        self.measured_ops = 0
        self.failed_ops = 0
        self.measures: dict[str, list[int]] = {}
        self.start_time = None
        self.elapsed_ns = 0

        self.logger = logging.getLogger(name)

    def run(self) -> "Worker":
        keys = create_key_generator(self.key_range, self.config.phase, self.config.key_dist, rng=self.rng)
        self.start_time = self.clock()
        self.logger.debug(f"Starting {self.key_range.count} operations from offset {self.key_range.offset}")
        try:
            for op_num in range(self.key_range.count):
                if self.abort_event.is_set():
                    self.logger.debug(f"Run aborted, stopping after {op_num} operations")
                    break
                key = format_key(next(keys), self.config.key_prefix)
                self.process_operation(self.selector.select(), key)

                if self.config.think_time_enabled and op_num < self.key_range.count - 1:
                    self.think()
        finally:
            self.elapsed_ns = self.clock() - self.start_time
        self.logger.debug(f"Finished in {self.elapsed_ns / 1_000_000:.1f} ms")
        return self

    def process_operation(self, operation: Operation, key: str) -> None:
        value = self.generator.value_for(key) if operation == Operation.WRITE else None
        t0 = self.clock()
        try:
            if operation == Operation.WRITE:
                self.bucket.upsert(key, value)
            else:
                self.bucket.get(key)
        except OperationError:
            with self.lock:
                self.total_ops += 1
                self.failed_ops += 1
            raise
        latency = self.clock() - t0
        self.record(operation, latency, t0)

    def record(self, operation: Operation, latency: int, started_at: int) -> None:
        """Count an attempted operation and keep its latency if it is sampled.

        Operations started inside the ramp-up window are counted but never measured.
        """
        in_ramp = started_at - self.start_time < self.ramp_ns
        sampled = not in_ramp and self.rng.random() * 100 < self.config.sampling
        with self.lock:
            self.total_ops += 1
            if sampled:
                self.measured_ops += 1
                self.measures.setdefault(self.generator.label_for(operation), []).append(latency)

    def think(self) -> None:
        delay_ms = self.rng.uniform(self.config.min_thinktime, self.config.max_thinktime)
        self.sleep(delay_ms / 1000.0)

    def get_total_ops(self) -> int:
        with self.lock:
            return self.total_ops

    def get_measured_ops(self) -> int:
        with self.lock:
            return self.measured_ops

    def get_failed_ops(self) -> int:
        with self.lock:
            return self.failed_ops

    def get_measures(self) -> dict[str, list[int]]:
        with self.lock:
            return {label: list(samples) for label, samples in self.measures.items()}
