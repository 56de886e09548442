"""End-to-end tests for the export orchestrator."""

import dataclasses
import json

import brotli
import pytest

from osdump.core.errors import (
    ConfigurationError,
    NothingToDumpError,
    ProtocolError,
    SinkError,
    TransportError,
)
from osdump.core.pipeline import ExportPipeline, ExportStats

from conftest import FakeSearchService, make_documents


def _lines(path):
    return path.read_bytes().splitlines()


class TestExportExample:
    """Five documents a..e exported with a window of two."""

    def test_output_and_stats(self, export_config, fake_service):
        """Five lines in id order, sort stripped, count reported as five."""
        stats = ExportPipeline(export_config, client=fake_service).run()

        docs = [json.loads(line) for line in _lines(export_config.output_path)]
        assert [d["_id"] for d in docs] == ["a", "b", "c", "d", "e"]
        assert all("sort" not in d for d in docs)
        assert stats.records == 5
        assert stats.documents_reported == 5
        assert stats.pages_fetched == 4
        assert stats.bytes_written == export_config.output_path.stat().st_size
        assert stats.end_time is not None

    def test_pre_flight_count_happens_first(self, export_config, fake_service):
        """The count endpoint is consulted exactly once before paging."""
        ExportPipeline(export_config, client=fake_service).run()

        assert fake_service.count_calls == 1
        assert fake_service.queries[0].get("search_after") is None

    def test_round_trip(self, export_config, sample_documents):
        """Each line parses back to its source document."""
        ExportPipeline(export_config, client=FakeSearchService(sample_documents)).run()

        assert [json.loads(l) for l in _lines(export_config.output_path)] == sample_documents


class TestExportOrdering:
    """Output order is independent of queue capacity and relative speed."""

    @pytest.mark.parametrize("capacity", [1, 3, 100_000])
    def test_order_across_capacities(self, export_config, capacity):
        ids = [f"id-{i:05d}" for i in range(257)]
        config = dataclasses.replace(export_config, window_size=10, queue_capacity=capacity)
        ExportPipeline(config, client=FakeSearchService(make_documents(reversed(ids)))).run()

        assert [json.loads(l)["_id"] for l in _lines(config.output_path)] == ids

    def test_slow_producer(self, export_config):
        """A slow network does not reorder or lose records."""
        ids = [f"{i:03d}" for i in range(20)]
        service = FakeSearchService(make_documents(ids), delay=0.01)
        config = dataclasses.replace(export_config, window_size=3, queue_capacity=2)
        stats = ExportPipeline(config, client=service).run()

        assert stats.records == 20
        assert [json.loads(l)["_id"] for l in _lines(config.output_path)] == ids

    def test_count_is_advisory(self, export_config, fake_service):
        """A stale pre-flight count neither stops nor extends the walk."""
        fake_service.count_override = 2
        stats = ExportPipeline(export_config, client=fake_service).run()

        assert stats.documents_reported == 2
        assert stats.records == 5


class TestExportFailures:
    """Every failure is fatal and reported as an ExportError."""

    def test_zero_count_aborts_before_paging(self, export_config):
        """An empty index stops before any page or output file."""
        service = FakeSearchService([])

        with pytest.raises(NothingToDumpError):
            ExportPipeline(export_config, client=service).run()
        assert service.queries == []
        assert not export_config.output_path.exists()

    def test_second_run_fails_and_keeps_first_output(self, export_config, sample_documents):
        """Re-running against the same file fails with a sink error."""
        ExportPipeline(export_config, client=FakeSearchService(sample_documents)).run()
        first = export_config.output_path.read_bytes()

        with pytest.raises(SinkError):
            ExportPipeline(export_config, client=FakeSearchService(sample_documents)).run()
        assert export_config.output_path.read_bytes() == first

    def test_existing_file_does_not_hang_blocked_producer(self, export_config):
        """A consumer failure releases a producer stuck on a full queue."""
        export_config.output_path.write_bytes(b"keep me\n")
        ids = [f"{i:04d}" for i in range(200)]
        config = dataclasses.replace(export_config, window_size=50, queue_capacity=1)

        with pytest.raises(SinkError) as exc_info:
            ExportPipeline(config, client=FakeSearchService(make_documents(ids))).run()
        assert exc_info.value.phase == "sink"
        assert config.output_path.read_bytes() == b"keep me\n"

    def test_transport_failure_keeps_partial_output(self, export_config):
        """Records fetched before a transport failure are flushed and kept."""
        service = FakeSearchService(make_documents(["a", "b", "c", "d", "e"]), fail_on_page=2)

        with pytest.raises(TransportError) as exc_info:
            ExportPipeline(export_config, client=service).run()
        assert exc_info.value.phase == "search"
        assert [json.loads(l)["_id"] for l in _lines(export_config.output_path)] == ["a", "b"]

    def test_protocol_failure(self, export_config):
        """A malformed page aborts the run."""

        class BrokenService(FakeSearchService):
            def search(self, query):
                return {"error": {"type": "search_phase_execution_exception"}}

        with pytest.raises(ProtocolError):
            ExportPipeline(export_config, client=BrokenService(make_documents(["a"]))).run()

    def test_invalid_config_rejected_before_count(self, export_config, fake_service):
        """Configuration errors surface before any request."""
        config = dataclasses.replace(export_config, window_size=0)

        with pytest.raises(ConfigurationError):
            ExportPipeline(config, client=fake_service).run()
        assert fake_service.count_calls == 0


class TestExportBrotli:
    """Compressed exports."""

    def test_compressed_matches_plain(self, export_config, sample_documents, temp_dir):
        """Decompressed output equals the uncompressed output."""
        plain = dataclasses.replace(export_config, output_path=temp_dir / "plain.json")
        packed = dataclasses.replace(
            export_config, output_path=temp_dir / "packed.json.br", brotli=True, quality=4
        )
        ExportPipeline(plain, client=FakeSearchService(sample_documents)).run()
        ExportPipeline(packed, client=FakeSearchService(sample_documents)).run()

        assert brotli.decompress(packed.output_path.read_bytes()) == (
            plain.output_path.read_bytes()
        )


class TestExportStats:
    """Tests for ExportStats reporting."""

    def test_summary(self):
        """The summary names records, duration and speed."""
        stats = ExportStats(index="graylog_0", records=10)
        summary = stats.summary()

        assert summary.startswith("Dumped 10 records in ")
        assert "/second" in summary

    def test_records_per_second_with_zero_duration(self):
        """A zero duration does not divide by zero."""
        stats = ExportStats(records=3)
        stats.end_time = stats.start_time

        assert stats.records_per_second() == 3.0

    def test_pipeline_repr(self, export_config):
        """ExportPipeline has a useful string representation."""
        assert "graylog_0" in repr(ExportPipeline(export_config))
