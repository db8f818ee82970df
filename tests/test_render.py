import json

from stackparse.analysis import bucket_sameish, find_suspicious, frame_statistics
from stackparse.models import Stack
from stackparse.parser import parse_text
from stackparse.query import summarize
from stackparse.render import (
    JsonFormatter,
    TextFormatter,
    create_formatter,
    render_clusters,
    render_frame_statistics,
    render_suspicious_report,
)


class TestStackText:
    def test_header_omits_zero_wait(self):
        assert Stack(number=5, state="running").header() == "goroutine 5 [running]:"

    def test_header_with_wait_and_lock(self, workers_by_number):
        assert (
            workers_by_number[9].header()
            == "goroutine 9 [semacquire, 30 minutes, locked to thread]:"
        )

    def test_full_rendering(self, workers_by_number):
        assert str(workers_by_number[7]) == (
            "goroutine 7 [chan receive, 12 minutes]:\n"
            "main.worker(0xc000010000, 0x1)\n"
            "\t/app/worker.go:42 +0x5a\n"
            "created by main.startWorkers\n"
            "\t/app/worker.go:20 +0x3f\n"
        )

    def test_entry_omitted_when_zero(self):
        stack = parse_text("goroutine 5 [running]:\nfoo.Bar()\n\t/a/b.go:10\n")[0]
        assert str(stack) == "goroutine 5 [running]:\nfoo.Bar()\n\t/a/b.go:10\n"


class TestTextFormatter:
    def test_stacks_output_parses_back(self, workers, make_console):
        output, buffer = make_console()
        TextFormatter(output).format_stacks(workers)
        assert parse_text(buffer.getvalue()) == workers

    def test_summaries_table(self, workers, make_console):
        output, buffer = make_console()
        TextFormatter(output).format_summaries(summarize(workers))
        text = buffer.getvalue()
        assert "main.worker" in text
        assert "net/http.(*persistConn).writeLoop" in text
        assert text.index("main.main") < text.index("main.worker")


class TestJsonFormatter:
    def test_stacks_are_lossless(self, workers, make_console):
        output, buffer = make_console()
        JsonFormatter(output).format_stacks(workers)
        decoded = json.loads(buffer.getvalue())
        assert [Stack.model_validate(item) for item in decoded] == workers
        assert decoded[1]["created_by"]["function"] == "main.startWorkers"
        assert decoded[0]["created_by"] is None

    def test_summaries(self, workers, make_console):
        output, buffer = make_console()
        JsonFormatter(output).format_summaries(summarize(workers))
        assert json.loads(buffer.getvalue())[-1] == {"function": "main.worker", "count": 2}

    def test_report(self, workers, make_console):
        output, buffer = make_console()
        JsonFormatter(output).format_report(find_suspicious(workers))
        decoded = json.loads(buffer.getvalue())
        assert decoded["ranked_frames"][0] == {
            "frame_key": "/app/worker.go:42 main.worker",
            "count": 2,
        }
        assert len(decoded["groups"][0]["clusters"][0]["members"]) == 2

    def test_frame_counts_and_clusters(self, workers, make_console):
        output, buffer = make_console()
        formatter = JsonFormatter(output)
        formatter.format_frame_counts(frame_statistics(workers))
        assert len(json.loads(buffer.getvalue())) == 5

        output, buffer = make_console()
        JsonFormatter(output).format_clusters(bucket_sameish(workers))
        decoded = json.loads(buffer.getvalue())
        assert [len(c["members"]) for c in decoded] == [1, 2, 1, 1]
        assert [c["count"] for c in decoded] == [1, 2, 1, 1]

    def test_report_clusters_carry_count(self, workers, make_console):
        output, buffer = make_console()
        JsonFormatter(output).format_report(find_suspicious(workers))
        cluster = json.loads(buffer.getvalue())["groups"][0]["clusters"][0]
        assert cluster["count"] == len(cluster["members"]) == 2


def test_create_formatter():
    assert isinstance(create_formatter("json"), JsonFormatter)
    assert isinstance(create_formatter("default"), TextFormatter)


class TestTextFormatterReports:
    def test_report_matches_render_helper(self, workers, make_console):
        report = find_suspicious(workers)
        via_formatter, formatter_buffer = make_console()
        create_formatter("default", via_formatter).format_report(report)
        direct, direct_buffer = make_console()
        render_suspicious_report(report, direct)
        assert formatter_buffer.getvalue() == direct_buffer.getvalue()
        assert "FRAME SUS STAT" in formatter_buffer.getvalue()

    def test_frame_counts(self, workers, make_console):
        output, buffer = make_console()
        TextFormatter(output).format_frame_counts(frame_statistics(workers))
        assert buffer.getvalue().rstrip().endswith("main.worker\t2")

    def test_clusters(self, workers, make_console):
        output, buffer = make_console()
        TextFormatter(output).format_clusters(bucket_sameish(workers))
        assert buffer.getvalue().count("count:") == 4


class TestReports:
    def test_suspicious_report(self, workers, make_console):
        output, buffer = make_console()
        render_suspicious_report(find_suspicious(workers), output)
        text = buffer.getvalue()
        assert "Most shared frames" in text
        assert "FRAME SUS STAT" in text
        assert "count: 2" in text
        assert "av/min/max/med: 7m30s/3m0s/12m0s/12m0s" in text
        assert "goroutine 7 [chan receive, 12 minutes]:" in text

    def test_empty_report(self, make_console):
        output, buffer = make_console()
        render_suspicious_report(find_suspicious([]), output)
        assert "No frames to analyze" in buffer.getvalue()

    def test_clusters(self, workers, make_console):
        output, buffer = make_console()
        render_clusters(bucket_sameish(workers), output)
        assert buffer.getvalue().count("count:") == 4

    def test_frame_statistics(self, workers, make_console):
        output, buffer = make_console()
        render_frame_statistics(frame_statistics(workers), output)
        assert buffer.getvalue().rstrip().endswith("main.worker\t2")
