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
WorkloadDispatcher builds the client handlers, runs their workers and merges the results.

Lifecycle::

    CREATED -> init() -> INITIALIZED -> dispatch_workload() -> COMPLETED -> prepare_measures() -> DONE

Any failure moves the dispatcher to FAILED. The shared store connection is opened in init()
and closed exactly once, when init() fails or when dispatch_workload() returns or raises.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, wait
from enum import StrEnum
from typing import Iterable

from docstress.config import GlobalConfig
from docstress.generators import DocumentGenerator, create_document_generator
from docstress.handler import ClientHandler
from docstress.partition import partition_keyspace, unreachable_docs
from docstress.store import DocumentStore


logger = logging.getLogger(__name__)


class DispatcherState(StrEnum):
    CREATED = "created"
    INITIALIZED = "initialized"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    DONE = "done"
    FAILED = "failed"


def merge_measures(measure_maps: Iterable[dict[str, list[int]]]) -> dict[str, list[int]]:
    """Union the samples of every map, label by label. Input lists are never aliased."""
    merged: dict[str, list[int]] = {}
    for measures in measure_maps:
        for label, samples in measures.items():
            merged.setdefault(label, []).extend(samples)
    return merged


class WorkloadDispatcher:
    def __init__(
        self,
        config: GlobalConfig,
        store: DocumentStore,
        generator: DocumentGenerator | None = None,
        seed: int | None = None,
    ):
        self.config = config
        self.store = store
        self.generator = generator or create_document_generator(config.class_name, config.value_size)
        self.seed = seed
        self.client_handlers: list[ClientHandler] = []
        self.merged_measures: dict[str, list[int]] = {}
        self.abort_event = threading.Event()
        self.poll_interval = config.log_interval
        self.state = DispatcherState.CREATED
        self.elapsed = 0.0
        self.start_timestamp_ms = 0.0

    def _require_state(self, action: str, *states: DispatcherState) -> None:
        if self.state not in states:
            raise RuntimeError(f"Can't {action} while the dispatcher is {self.state}")

    def init(self) -> None:
        """Partition the keyspace and build one ClientHandler per client, all or nothing."""
        self._require_state("init", DispatcherState.CREATED)
        try:
            ranges = partition_keyspace(self.config.num_docs, self.config.num_clients)
        except Exception:
            self.state = DispatcherState.FAILED
            raise

        leftover = unreachable_docs(self.config.num_docs, self.config.num_clients)
        if leftover:
            logger.warning(
                f"{self.config.num_docs} documents don't split evenly across {self.config.num_clients} clients, "
                f"the last {leftover} document(s) won't be used"
            )

        try:
            self.store.connect(self.config.nodes)
        except Exception:
            self.state = DispatcherState.FAILED
            raise

        try:
            for i, key_range in enumerate(ranges):
                self.client_handlers.append(
                    ClientHandler(
                        self.config,
                        f"ClientHandler-{i + 1}",
                        key_range,
                        self.store,
                        self.generator,
                        abort_event=self.abort_event,
                        seed=None if self.seed is None else self.seed + i * self.config.num_threads,
                    )
                )
        except Exception:
            self.client_handlers = []
            self.state = DispatcherState.FAILED
            self.store.disconnect()
            raise

        self.state = DispatcherState.INITIALIZED
        logger.debug(f"Initialized {len(self.client_handlers)} client handlers")

    def dispatch_workload(self) -> None:
        """Run every handler's workers and block until all of them are finished.

        The first worker failure stops the remaining workers and is re-raised once they exit.
        """
        self._require_state("dispatch the workload", DispatcherState.INITIALIZED)
        self.state = DispatcherState.DISPATCHING
        self.start_timestamp_ms = time.time() * 1000
        start_time = time.perf_counter()
        try:
            futures = []
            for handler in self.client_handlers:
                futures.extend(handler.execute_workload())

            error = None
            pending = set(futures)
            progress = (start_time, 0)
            while pending:
                done, pending = wait(pending, timeout=self.poll_interval, return_when=FIRST_EXCEPTION)
                for future in done:
                    if future.exception() is not None and error is None:
                        error = future.exception()
                        logger.error(f"Worker failed, aborting the run: {error}")
                        self.abort_event.set()
                progress = self._log_progress(start_time, progress)

            if error is not None:
                raise error
        except BaseException:
            self.state = DispatcherState.FAILED
            self.abort_event.set()
            raise
        finally:
            for handler in self.client_handlers:
                handler.cleanup()
            self.elapsed = time.perf_counter() - start_time
            self.store.disconnect()

        self.state = DispatcherState.COMPLETED
        total_ops, expected_ops = self.get_total_ops(), self.get_expected_ops()
        if total_ops != expected_ops:
            logger.warning(f"Workers attempted {total_ops} operations, expected {expected_ops}")

    def _log_progress(self, start_time: float, last: tuple[float, int]) -> tuple[float, int]:
        now = time.perf_counter()
        total_ops = self.get_total_ops()
        last_time, last_total = last
        interval = now - last_time
        ops_per_sec = (total_ops - last_total) / interval if interval > 0 else 0
        logger.info(
            f"{total_ops:>10} ops, {ops_per_sec:>8.0f} op/s, "
            f"{self.get_failed_ops():>5} errors, {now - start_time:>6.1f}s"
        )
        return now, total_ops

    def prepare_measures(self) -> dict[str, list[int]]:
        """Merge the measurements of all handlers into the global map."""
        if self.state == DispatcherState.DONE:
            return self.merged_measures
        self._require_state("prepare measures", DispatcherState.COMPLETED)
        self.merged_measures = merge_measures(handler.get_measures() for handler in self.client_handlers)
        self.state = DispatcherState.DONE
        return self.merged_measures

    def run(self) -> dict[str, list[int]]:
        self.init()
        self.dispatch_workload()
        return self.prepare_measures()

    def get_measures(self) -> dict[str, list[int]]:
        return self.merged_measures

    def get_total_ops(self) -> int:
        return sum(handler.get_total_ops() for handler in self.client_handlers)

    def get_measured_ops(self) -> int:
        return sum(handler.get_measured_ops() for handler in self.client_handlers)

    def get_failed_ops(self) -> int:
        return sum(handler.get_failed_ops() for handler in self.client_handlers)

    def get_expected_ops(self) -> int:
        return sum(handler.get_expected_ops() for handler in self.client_handlers)

    def get_thread_elapsed(self) -> list[float]:
        elapsed = []
        for handler in self.client_handlers:
            elapsed.extend(handler.get_thread_elapsed())
        return elapsed
