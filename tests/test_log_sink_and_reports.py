import io
import os
import time

import pandas as pd

from grading.managers.log_sink import LogSink
from grading.reports import export_csv, summary_stats

from helpers import make_record


def test_log_sink_keeps_last_lines():
    stream = io.BytesIO(b"".join(f"line {i}\n".encode() for i in range(10)))
    sink = LogSink(stream, max_lines=3)
    sink.start()
    sink._thread.join(5)

    assert sink.close() == ["line 7", "line 8", "line 9"]
    assert stream.closed


def test_log_sink_closes_pipe_once_writer_goes_away():
    read_fd, write_fd = os.pipe()
    stream = os.fdopen(read_fd, "rb")
    sink = LogSink(stream)
    sink.start()
    os.write(write_fd, b"still running\n")
    deadline = time.monotonic() + 5
    while not sink.lines() and time.monotonic() < deadline:
        time.sleep(0.01)

    # The write end is still open, as when an escaped child keeps the pipe
    assert sink.close(timeout=0.1) == ["still running"]
    assert not stream.closed

    os.close(write_fd)
    sink._thread.join(5)

    assert stream.closed


def test_log_sink_without_stream():
    sink = LogSink(None)
    sink.start()

    assert sink.close() == []


def test_summary_stats():
    records = [
        make_record("a", points=(5, 15, 10)),
        make_record("b", points=(5, 0, 0)),
        make_record("c", points=(0, 0, 0), server_started=False),
    ]

    stats = summary_stats(records)

    assert stats.total_submissions == 3
    assert stats.highest_score == 30
    assert stats.lowest_score == 0
    assert stats.perfect_scores == 1
    assert stats.passed_count == 1
    assert stats.failed_count == 2
    assert stats.server_start_failures == 1


def test_summary_stats_empty():
    assert summary_stats([]).total_submissions == 0


def test_export_csv_sorted_by_score(tmp_path):
    records = [make_record("low", points=(5, 0, 0)), make_record("high", points=(5, 15, 10))]

    path = export_csv(records, tmp_path / "out" / "results.csv")

    df = pd.read_csv(path, dtype={"submission_id": str})
    assert list(df["submission_id"]) == ["high", "low"]
    assert "case 1" in df.columns
