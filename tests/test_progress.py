"""Tests for progress events and reporters."""

import io

import pytest
from pydantic import ValidationError

from touchless.progress import (
    ConsoleProgressReporter,
    ProgressEvent,
    RecordingProgressReporter,
    report_progress,
)


class _BrokenReporter:
    def report(self, event):
        raise RuntimeError("display gone")


class TestProgressEvent:
    def test_render(self):
        event = ProgressEvent(stage="Prereqs", percent=30, message="Installing prerequisites")
        assert event.render() == "[Prereqs] 30% - Installing prerequisites"

    @pytest.mark.parametrize("percent", [-1, 101])
    def test_percent_out_of_range_rejected(self, percent):
        with pytest.raises(ValidationError):
            ProgressEvent(stage="X", percent=percent)


class TestReportProgress:
    def test_none_reporter_is_ignored(self):
        report_progress(None, "X", 10, "hi")

    def test_reporter_failure_never_propagates(self):
        report_progress(_BrokenReporter(), "X", 10, "hi")

    def test_invalid_percent_is_dropped(self):
        recorder = RecordingProgressReporter()
        report_progress(recorder, "X", 150, "too far")
        assert recorder.events == []

    def test_delivers_event(self):
        recorder = RecordingProgressReporter()
        report_progress(recorder, "ADDSForest", 40, "Setting up AD")

        assert recorder.latest == ProgressEvent(stage="ADDSForest", percent=40, message="Setting up AD")


class TestRecordingProgressReporter:
    def test_for_stage_filters(self):
        recorder = RecordingProgressReporter()
        report_progress(recorder, "A", 0, "Starting")
        report_progress(recorder, "B", 0, "Starting")
        report_progress(recorder, "A", 50, "Halfway")

        assert [e.percent for e in recorder.for_stage("A")] == [0, 50]

    def test_forwards_events(self):
        downstream = RecordingProgressReporter()
        recorder = RecordingProgressReporter(forward=downstream)
        report_progress(recorder, "A", 10, "x")

        assert downstream.events == recorder.events

    def test_latest_empty(self):
        assert RecordingProgressReporter().latest is None


class TestConsoleProgressReporter:
    def test_overwrites_single_line(self):
        stream = io.StringIO()
        console = ConsoleProgressReporter(stream)
        report_progress(console, "SystemConfig", 20, "Configuring system settings")
        report_progress(console, "SystemConfig", 50, "tz")

        output = stream.getvalue()
        assert output.startswith("\r[SystemConfig] 20% - Configuring system settings")
        assert "\n" not in output
        # The shorter second line is padded to erase the first.
        last = output.split("\r")[-1]
        assert last.startswith("[SystemConfig] 50% - tz")
        assert len(last) == len("[SystemConfig] 20% - Configuring system settings")

    def test_finish_ends_line(self):
        stream = io.StringIO()
        console = ConsoleProgressReporter(stream)
        report_progress(console, "A", 10, "x")
        console.finish()

        assert stream.getvalue().endswith("\n")

    def test_finish_without_output_writes_nothing(self):
        stream = io.StringIO()
        ConsoleProgressReporter(stream).finish()
        assert stream.getvalue() == ""

    def test_closed_stream_does_not_raise(self):
        stream = io.StringIO()
        stream.close()
        console = ConsoleProgressReporter(stream)
        report_progress(console, "A", 10, "x")
        console.finish()
