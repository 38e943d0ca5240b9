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
from dataclasses import dataclass, field
from datetime import datetime

from hdrh.histogram import HdrHistogram
from hdrh.log import HistogramLogWriter


logger = logging.getLogger(__name__)

# latencies are tracked in microseconds, from 1us up to 10 minutes
HISTOGRAM_MAX_US = 10 * 60 * 1_000_000
HISTOGRAM_DIGITS = 3
PERCENTILES = (50.0, 75.0, 95.0, 99.0, 99.9)


class TaggedHistogramLogWriter(HistogramLogWriter):
    """HistogramLogWriter that writes the histogram's tag in front of each interval line.

    Lines have the format: Tag=<tag>,<start>,<interval>,<max>,<encoded>
    """

    def output_start_time(self, start_time_msec):
        start_time_sec = float(start_time_msec) / 1000.0
        datetime_formatted = datetime.fromtimestamp(start_time_sec).isoformat(" ")
        self.log.write(f"#[StartTime: {start_time_sec} (seconds since epoch), {datetime_formatted}]\n")

    def output_interval_histogram(
        self, histogram, start_time_stamp_sec=0, end_time_stamp_sec=0, max_value_unit_ratio=1000000.0
    ):
        if not start_time_stamp_sec:
            start_time_stamp_sec = (histogram.get_start_time_stamp() - self.base_time) / 1000.0
        if not end_time_stamp_sec:
            end_time_stamp_sec = (histogram.get_end_time_stamp() - self.base_time) / 1000.0

        cpayload = histogram.encode()
        prefix = f"Tag={histogram.get_tag()}," if histogram.get_tag() else ""
        self.log.write(
            "%s%f,%f,%f,%s\n"
            % (
                prefix,
                start_time_stamp_sec,
                end_time_stamp_sec - start_time_stamp_sec,
                histogram.get_max_value() / max_value_unit_ratio,
                cpayload.decode("utf-8"),
            )
        )


def new_histogram() -> HdrHistogram:
    return HdrHistogram(1, HISTOGRAM_MAX_US, HISTOGRAM_DIGITS)


def build_histogram(samples_ns) -> HdrHistogram:
    """Record nanosecond samples into a microsecond histogram, clamped to its trackable range."""
    histogram = new_histogram()
    for sample in samples_ns:
        histogram.record_value(min(max(1, sample // 1000), HISTOGRAM_MAX_US))
    return histogram


def get_histogram_stats(histogram: HdrHistogram) -> dict:
    """Extract latency stats from a histogram as dict (values in microseconds)."""
    if histogram.get_total_count() == 0:
        return {"count": 0, "mean": 0.0, "max": 0, **{p: 0 for p in PERCENTILES}}
    return {
        "count": histogram.get_total_count(),
        "mean": histogram.get_mean_value(),
        "max": histogram.get_max_value(),
        **{p: histogram.get_value_at_percentile(p) for p in PERCENTILES},
    }


@dataclass
class RunReport:
    total_ops: int
    measured_ops: int
    failed_ops: int
    elapsed: float
    thread_elapsed: list[float]
    histograms: dict[str, HdrHistogram] = field(default_factory=dict)
    start_timestamp_ms: float = 0.0

    @property
    def op_rate(self) -> float:
        return self.total_ops / self.elapsed if self.elapsed > 0 else 0.0

    @property
    def shortest_thread(self) -> float:
        return min(self.thread_elapsed, default=0.0)

    @property
    def longest_thread(self) -> float:
        return max(self.thread_elapsed, default=0.0)

    def stats(self) -> dict[str, dict]:
        return {label: get_histogram_stats(histogram) for label, histogram in sorted(self.histograms.items())}


def build_report(
    measures: dict[str, list[int]],
    total_ops: int,
    measured_ops: int,
    elapsed: float,
    thread_elapsed: list[float],
    failed_ops: int = 0,
    start_timestamp_ms: float = 0.0,
) -> RunReport:
    """Build the run summary. start_timestamp_ms is the wall-clock time the workload was dispatched."""
    return RunReport(
        total_ops=total_ops,
        measured_ops=measured_ops,
        failed_ops=failed_ops,
        elapsed=elapsed,
        thread_elapsed=list(thread_elapsed),
        histograms={label: build_histogram(samples) for label, samples in measures.items()},
        start_timestamp_ms=start_timestamp_ms,
    )


def format_report(report: RunReport) -> list[str]:
    lines = [
        f"Operations: measured {report.measured_ops} ops out of total {report.total_ops} ops",
        f"Op rate                   : {report.op_rate:,.0f} op/s",
    ]
    if report.failed_ops:
        lines.append(f"Failed operations         : {report.failed_ops}")
    for label, stats in report.stats().items():
        lines.append(f'Percentile (microseconds) for "{label}" Workload ({stats["count"]} samples):')
        lines.append(
            f"   50%:{stats[50.0]}   75%:{stats[75.0]}   95%:{stats[95.0]}   99%:{stats[99.0]}"
            f"   99.9%:{stats[99.9]}   mean:{stats['mean']:.1f}   max:{stats['max']}"
        )
    lines.append(f"Elapsed: {report.elapsed * 1000:.0f}ms")
    lines.append(f"Shortest Thread: {report.shortest_thread * 1000:.0f}ms")
    lines.append(f"Longest Thread: {report.longest_thread * 1000:.0f}ms")
    return lines


def write_hdr_log(path: str, report: RunReport) -> None:
    """Write one tagged histogram per label, covering the whole run, to an HDR log file."""
    with open(path, "w") as hdr_file:
        writer = TaggedHistogramLogWriter(hdr_file)
        writer.output_comment("Logging op latencies for docstress")
        writer.output_log_format_version()
        writer.output_base_time(report.start_timestamp_ms)
        writer.output_start_time(report.start_timestamp_ms)
        writer.output_legend()
        writer.base_time = int(report.start_timestamp_ms)
        end_timestamp_ms = report.start_timestamp_ms + max(report.elapsed, 0.001) * 1000
        for label, histogram in sorted(report.histograms.items()):
            histogram.set_tag(label)
            histogram.set_start_time_stamp(int(report.start_timestamp_ms))
            histogram.set_end_time_stamp(int(end_timestamp_ms))
            writer.output_interval_histogram(histogram)
    logger.info(f"HDR histogram saved to {path}")
