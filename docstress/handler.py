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
from concurrent.futures import Future, ThreadPoolExecutor

from docstress.config import GlobalConfig
from docstress.generators import DocumentGenerator
from docstress.partition import KeyRange, split_range
from docstress.store import DocumentStore
from docstress.worker import Worker


class ClientHandler:
    """Owns one bucket session and the pool of workers sharing it.

    Workers are created up front, before the workload starts, so that opening the
    session doesn't count against any worker's latency.
    """

    def __init__(
        self,
        config: GlobalConfig,
        name: str,
        key_range: KeyRange,
        store: DocumentStore,
        generator: DocumentGenerator,
        abort_event: threading.Event | None = None,
        seed: int | None = None,
    ):
        self.config = config
        self.name = name
        self.key_range = key_range
        self.generator = generator
        self.abort_event = abort_event or threading.Event()
        self.logger = logging.getLogger(name)

        self.bucket = store.open_bucket(config.bucket, config.password)
        self.workers = [
            Worker(
                name=f"{name}.worker-{i + 1}",
                config=config,
                key_range=worker_range,
                bucket=self.bucket,
                generator=generator,
                abort_event=self.abort_event,
                rng=random.Random(None if seed is None else seed + i),
            )
            for i, worker_range in enumerate(split_range(key_range, config.num_threads))
        ]
        self.executor = None
        self.futures: list[Future] = []
        self.logger.debug(f"Created {len(self.workers)} workers for keys {key_range.offset}..{key_range.end - 1}")

    def execute_workload(self) -> list[Future]:
        """Start all workers and return their futures without waiting for them."""
        self.executor = ThreadPoolExecutor(max_workers=len(self.workers), thread_name_prefix=self.name)
        self.futures = [self.executor.submit(worker.run) for worker in self.workers]
        return self.futures

    def cleanup(self) -> None:
        """Wait for the worker threads to exit. The shared store connection stays open."""
        if self.executor:
            self.executor.shutdown(wait=True)
            self.executor = None
        self.logger.debug("Cleanup complete")

    def get_measures(self) -> dict[str, list[int]]:
        measures = {}
        for worker in self.workers:
            for label, samples in worker.get_measures().items():
                measures.setdefault(label, []).extend(samples)
        return measures

    def get_total_ops(self) -> int:
        return sum(worker.get_total_ops() for worker in self.workers)

    def get_measured_ops(self) -> int:
        return sum(worker.get_measured_ops() for worker in self.workers)

    def get_failed_ops(self) -> int:
        return sum(worker.get_failed_ops() for worker in self.workers)

    def get_expected_ops(self) -> int:
        return self.key_range.count

    def get_thread_elapsed(self) -> list[float]:
        """Wall-clock duration of each worker, in seconds."""
        return [worker.elapsed_ns / 1_000_000_000 for worker in self.workers]
