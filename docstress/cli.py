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
docstress - load tester for a key-value document store.

Usage:
    docstress -P load -d 100000 -c 4 -t 8 -n 192.168.1.10
    docstress -P run -d 100000 -c 4 -t 8 -g 70 -w 30 -s 10 -R 5 -n 192.168.1.10

The key space (-d) is split between client connections (-c); each client runs a pool of
worker threads (-t) sharing its connection. Use the load phase first to populate the
documents, then the run phase for mixed read/write traffic.
"""

import argparse
import logging
import sys

from docstress import config as defaults
from docstress.config import GlobalConfig, KeyDistribution, Phase, StoreType
from docstress.cql_store import CqlDocumentStore
from docstress.dispatcher import WorkloadDispatcher
from docstress.errors import ConfigError, OperationError, StoreConnectionError
from docstress.report import build_report, format_report, write_hdr_log
from docstress.store import DocumentStore, MemoryDocumentStore


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s  [%(name)s] %(asctime)s %(filename)s:%(lineno)s - %(message)s"

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_CONNECTION_ERROR = 2
EXIT_OPERATION_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    # every default is None, so GlobalConfig keeps the values from its own defaults table
    parser = argparse.ArgumentParser(
        prog="docstress", description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("-P", "--phase", choices=[p.value for p in Phase],
                        help=f'load/run phase (default: "{defaults.DEFAULT_PHASE}")')
    parser.add_argument("-n", "--nodes",
                        help=f'List of nodes to connect, separated with "," (default: "{",".join(defaults.DEFAULT_NODES)}")')
    parser.add_argument("-b", "--bucket", help=f'Name of the bucket/keyspace (default: "{defaults.DEFAULT_BUCKET}")')
    parser.add_argument("-u", "--user", help="User name for authentication (default: none)")
    parser.add_argument("-p", "--password", help=f'Password (default: "{defaults.DEFAULT_PASSWORD}")')
    parser.add_argument("-t", "--num-threads", type=int,
                        help=f'Number of worker threads per client (default: "{defaults.DEFAULT_NUM_THREADS}")')
    parser.add_argument("-c", "--num-clients", type=int,
                        help=f'Number of client connections (default: "{defaults.DEFAULT_NUM_CLIENTS}")')
    parser.add_argument("-d", "--num-docs", type=int,
                        help=f'Number of documents to work with (default: "{defaults.DEFAULT_NUM_DOCS}")')
    parser.add_argument("-B", "--batch-size", type=int,
                        help=f'Batch size, reserved (default: "{defaults.DEFAULT_BATCHSIZE}")')
    parser.add_argument("-g", "--read-ratio", type=int, help=f'Read Ratio (default: "{defaults.DEFAULT_READ_RATIO}")')
    parser.add_argument("-w", "--write-ratio", type=int,
                        help=f'Write Ratio (default: "{defaults.DEFAULT_WRITE_RATIO}")')
    parser.add_argument("-s", "--sampling", type=int, help=f'%% Sample Rate (default: "{defaults.DEFAULT_SAMPLING}%%")')
    parser.add_argument("-R", "--ramp", type=int,
                        help=f'Ramp-Up time in seconds - ignored ops (default: "{defaults.DEFAULT_RAMP}")')
    parser.add_argument("-C", "--class", dest="class_name",
                        help=f'Document generator: Simple, Json or Random (default: "{defaults.DEFAULT_CLASS}")')
    parser.add_argument("-z", "--min-thinktime", type=int,
                        help=f'Minimum think time in ms (default: "{defaults.DEFAULT_MIN_THINKTIME}")')
    parser.add_argument("-Z", "--max-thinktime", type=int,
                        help=f'Maximum think time in ms, 0 disables think time (default: "{defaults.DEFAULT_MAX_THINKTIME}")')
    parser.add_argument("--store", choices=[s.value for s in StoreType],
                        help=f'Store backend (default: "{StoreType.CQL}")')
    parser.add_argument("--key-dist", choices=[k.value for k in KeyDistribution],
                        help=f'Key choice in the run phase (default: "{KeyDistribution.SEQ}")')
    parser.add_argument("--key-prefix", help='Prefix prepended to every key (default: "")')
    parser.add_argument("--value-size", type=int,
                        help=f'Document size in bytes (default: "{defaults.DEFAULT_VALUE_SIZE}")')
    parser.add_argument("--request-timeout", type=float,
                        help=f'Request timeout in seconds (default: "{defaults.DEFAULT_REQUEST_TIMEOUT}")')
    parser.add_argument("--log-interval", type=float,
                        help=f'Seconds between progress lines (default: "{defaults.DEFAULT_LOG_INTERVAL}")')
    parser.add_argument("--hdr-file", help="Write the latency histograms to this HDR log file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def create_document_store(config: GlobalConfig) -> DocumentStore:
    if config.store == StoreType.MEMORY:
        return MemoryDocumentStore()

    return CqlDocumentStore(user=config.user, password=config.password, request_timeout=config.request_timeout)


def run(config: GlobalConfig, store: DocumentStore | None = None) -> int:
    store = store or create_document_store(config)
    dispatcher = WorkloadDispatcher(config, store)

    try:
        logger.debug("Initializing ClientHandlers")
        dispatcher.init()
    except (ConfigError, StoreConnectionError) as exc:
        logger.error(f"Error while initializing the ClientHandlers: {exc}")
        return EXIT_CONFIG_ERROR if isinstance(exc, ConfigError) else EXIT_CONNECTION_ERROR

    try:
        logger.info("Running Workload")
        dispatcher.dispatch_workload()
    except StoreConnectionError as exc:
        logger.error(f"Error while running the Workload: {exc}")
        return EXIT_CONNECTION_ERROR
    except OperationError as exc:
        logger.error(f"Error while running the Workload: {exc}")
        return EXIT_OPERATION_ERROR
    logger.debug("Finished Workload")

    logger.info("==== RESULTS ====")
    measures = dispatcher.prepare_measures()
    report = build_report(
        measures,
        total_ops=dispatcher.get_total_ops(),
        measured_ops=dispatcher.get_measured_ops(),
        elapsed=dispatcher.elapsed,
        thread_elapsed=dispatcher.get_thread_elapsed(),
        failed_ops=dispatcher.get_failed_ops(),
        start_timestamp_ms=dispatcher.start_timestamp_ms,
    )
    for line in format_report(report):
        logger.info(line)

    if config.hdr_file:
        try:
            write_hdr_log(config.hdr_file, report)
        except OSError as exc:
            logger.error(f"Failed to write HDR file: {exc}")
    return EXIT_OK


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    try:
        config = GlobalConfig.from_args(args)
    except ConfigError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return EXIT_CONFIG_ERROR

    logger.info(f"Running with Config: {config}")
    try:
        return run(config)
    except ConfigError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
