"""Tests for retrieve_records.retrieve_records module."""

import json
from datetime import date
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from common.errors import SourceQueryFailed, SourceTimeout, SourceUnavailable
from retrieve_records.retrieve_records import (
    decode_row,
    fetch_records,
    read_results,
    wait_for_query,
)

HEADER = {"Data": [{"VarCharValue": c} for c in ("article_id", "title", "content", "publication_id", "published_date", "metadata")]}


def _row(record_id: str, metadata: str = "") -> dict:
    values = [record_id, f"Title {record_id}", "Body text", "daily-news", "2024-03-15", metadata]
    return {"Data": [{"VarCharValue": v} for v in values]}


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _state(state: str, reason: str | None = None) -> dict:
    status = {"State": state}
    if reason is not None:
        status["StateChangeReason"] = reason
    return {"QueryExecution": {"Status": status}}


class TestDecodeRow:
    def test_decodes_columns(self) -> None:
        record = decode_row(_row("a1", json.dumps({"section": "politics", "wordCount": 420})))

        assert record.id == "a1"
        assert record.title == "Title a1"
        assert record.publication_id == "daily-news"
        assert record.published_at == date(2024, 3, 15)
        assert record.attributes == (("section", "politics"), ("wordCount", 420))

    def test_too_few_columns_returns_none(self) -> None:
        assert decode_row({"Data": [{"VarCharValue": "a1"}, {"VarCharValue": "t"}]}) is None

    def test_missing_metadata_column(self) -> None:
        row = _row("a1")
        row["Data"] = row["Data"][:5]
        assert decode_row(row).attributes == ()

    def test_undecodable_metadata_is_ignored(self) -> None:
        assert decode_row(_row("a1", "{not json")).attributes == ()

    def test_null_cells_become_empty_strings(self) -> None:
        row = {"Data": [{"VarCharValue": "a1"}, {}, {"VarCharValue": "b"}, {}, {}]}
        record = decode_row(row)
        assert record.title == ""
        assert record.published_at is None


class TestWaitForQuery:
    def test_returns_on_success(self) -> None:
        client = MagicMock()
        client.get_query_execution.side_effect = [_state("QUEUED"), _state("RUNNING"), _state("SUCCEEDED")]
        clock = FakeClock()

        wait_for_query(client, "q1", 300, 2, sleep=clock.sleep, monotonic=clock.monotonic)

        assert clock.sleeps == [2, 2]

    def test_failed_query_carries_backend_reason(self) -> None:
        client = MagicMock()
        client.get_query_execution.return_value = _state("FAILED", "SYNTAX_ERROR: line 1")
        clock = FakeClock()

        with pytest.raises(SourceQueryFailed, match="Query execution FAILED: SYNTAX_ERROR: line 1"):
            wait_for_query(client, "q1", 300, 2, sleep=clock.sleep, monotonic=clock.monotonic)

    def test_cancelled_without_reason(self) -> None:
        client = MagicMock()
        client.get_query_execution.return_value = _state("CANCELLED")
        clock = FakeClock()

        with pytest.raises(SourceQueryFailed, match="Query execution CANCELLED: Unknown error"):
            wait_for_query(client, "q1", 300, 2, sleep=clock.sleep, monotonic=clock.monotonic)

    def test_times_out(self) -> None:
        client = MagicMock()
        client.get_query_execution.return_value = _state("RUNNING")
        clock = FakeClock()

        with pytest.raises(SourceTimeout):
            wait_for_query(client, "q1", 10, 2, sleep=clock.sleep, monotonic=clock.monotonic)

        assert sum(clock.sleeps) == 10


class TestReadResults:
    def test_skips_header_on_first_page_only(self) -> None:
        client = MagicMock()
        client.get_query_results.side_effect = [
            {"ResultSet": {"Rows": [HEADER, _row("a1"), _row("a2")]}, "NextToken": "t1"},
            {"ResultSet": {"Rows": [_row("a3")]}, "NextToken": "t2"},
            {"ResultSet": {"Rows": [_row("a4")]}},
        ]

        records = read_results(client, "q1")

        assert [r.id for r in records] == ["a1", "a2", "a3", "a4"]
        assert client.get_query_results.call_count == 3
        assert client.get_query_results.call_args_list[1].kwargs == {"QueryExecutionId": "q1", "NextToken": "t1"}

    def test_malformed_rows_are_skipped(self) -> None:
        client = MagicMock()
        client.get_query_results.return_value = {
            "ResultSet": {"Rows": [HEADER, _row("a1"), {"Data": [{"VarCharValue": "x"}]}, _row("a2")]}
        }

        assert [r.id for r in read_results(client, "q1")] == ["a1", "a2"]

    def test_header_only_result_is_empty(self) -> None:
        client = MagicMock()
        client.get_query_results.return_value = {"ResultSet": {"Rows": [HEADER]}}

        assert read_results(client, "q1") == []


class TestFetchRecords:
    def test_end_to_end(self, pipeline_config) -> None:
        client = MagicMock()
        client.start_query_execution.return_value = {"QueryExecutionId": "q1"}
        client.get_query_execution.return_value = _state("SUCCEEDED")
        client.get_query_results.return_value = {"ResultSet": {"Rows": [HEADER, _row("a1")]}}
        clock = FakeClock()

        records = fetch_records(pipeline_config, client, sleep=clock.sleep, monotonic=clock.monotonic)

        assert [r.id for r in records] == ["a1"]
        kwargs = client.start_query_execution.call_args.kwargs
        assert kwargs["WorkGroup"] == "primary"
        assert kwargs["ResultConfiguration"] == {"OutputLocation": "s3://training-bucket/athena-results/"}

    def test_start_failure_is_source_unavailable(self, pipeline_config) -> None:
        client = MagicMock()
        client.start_query_execution.side_effect = ClientError(
            {"Error": {"Code": "InternalServerException", "Message": "down"}}, "StartQueryExecution"
        )

        with pytest.raises(SourceUnavailable):
            fetch_records(pipeline_config, client)
