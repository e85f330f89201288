"""Retrieve raw records from the analytical query service."""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from common.aws import get_athena_client
from common.config import PipelineConfig
from common.datetime import parse_date
from common.errors import SourceQueryFailed, SourceTimeout, SourceUnavailable
from retrieve_records.models import Attributes, RawRecord
from retrieve_records.query import build_query

logger = logging.getLogger(__name__)

MIN_COLUMNS = 5


def _cell(data: list[dict], index: int) -> str:
    if index >= len(data):
        return ""
    return data[index].get("VarCharValue") or ""


def _decode_attributes(raw: str, record_id: str) -> Attributes:
    if not raw:
        return ()
    try:
        decoded = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring undecodable metadata for record %s", record_id)
        return ()
    if not isinstance(decoded, dict):
        logger.warning("Ignoring non-object metadata for record %s", record_id)
        return ()
    return tuple((str(key), value) for key, value in decoded.items())


def decode_row(row: dict) -> Optional[RawRecord]:
    """Decode one result row. Returns None for rows with too few columns."""
    data = row.get("Data") or []
    if len(data) < MIN_COLUMNS:
        return None

    record_id = _cell(data, 0)
    return RawRecord(
        id=record_id,
        title=_cell(data, 1),
        body=_cell(data, 2),
        publication_id=_cell(data, 3),
        published_at=parse_date(_cell(data, 4)),
        attributes=_decode_attributes(_cell(data, 5), record_id),
    )


def start_query(client: Any, config: PipelineConfig, query: str) -> str:
    """Start the query and return its execution id."""
    try:
        response = client.start_query_execution(
            QueryString=query,
            QueryExecutionContext={"Database": config.athena_database},
            ResultConfiguration={"OutputLocation": config.athena_output_location},
            WorkGroup=config.athena_workgroup,
        )
    except (BotoCoreError, ClientError) as exc:
        raise SourceUnavailable(f"Failed to start query execution: {exc}") from exc

    execution_id = response.get("QueryExecutionId")
    if not execution_id:
        raise SourceUnavailable("Failed to start query execution: no execution id returned")
    return execution_id


def wait_for_query(
    client: Any,
    execution_id: str,
    timeout_seconds: float,
    poll_interval_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> None:
    """Block until the query succeeds.

    Raises:
        SourceQueryFailed: If the backend reports FAILED or CANCELLED.
        SourceTimeout: If the query is still running after ``timeout_seconds``.
    """
    started = monotonic()
    while monotonic() - started < timeout_seconds:
        try:
            response = client.get_query_execution(QueryExecutionId=execution_id)
        except (BotoCoreError, ClientError) as exc:
            raise SourceUnavailable(f"Failed to read query state: {exc}") from exc

        status = response.get("QueryExecution", {}).get("Status", {})
        state = status.get("State")

        if state == "SUCCEEDED":
            return
        if state in ("FAILED", "CANCELLED"):
            reason = status.get("StateChangeReason") or "Unknown error"
            raise SourceQueryFailed(f"Query execution {state}: {reason}")

        logger.debug("Query %s is %s", execution_id, state)
        sleep(poll_interval_seconds)

    raise SourceTimeout(f"Query execution {execution_id} timed out after {timeout_seconds:.0f}s")


def read_results(client: Any, execution_id: str) -> list[RawRecord]:
    """Page through the results until the backend stops returning a token."""
    records: list[RawRecord] = []
    skipped = 0
    next_token: Optional[str] = None
    first_page = True

    while True:
        kwargs = {"QueryExecutionId": execution_id}
        if next_token:
            kwargs["NextToken"] = next_token
        try:
            response = client.get_query_results(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise SourceUnavailable(f"Failed to read query results: {exc}") from exc

        rows = response.get("ResultSet", {}).get("Rows", [])
        # Only the first page carries the column header row
        if first_page:
            rows = rows[1:]
            first_page = False

        for row in rows:
            record = decode_row(row)
            if record is None:
                skipped += 1
                continue
            records.append(record)

        next_token = response.get("NextToken")
        if not next_token:
            break

    if skipped:
        logger.warning("Skipped %d malformed rows", skipped)
    return records


def fetch_records(
    config: PipelineConfig,
    client: Any = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> list[RawRecord]:
    """Run the look-back query and return decoded records, newest first."""
    client = client or get_athena_client(config.region)
    query = build_query(config, datetime.now(timezone.utc).date())
    logger.info("Executing query:\n%s", query)

    execution_id = start_query(client, config, query)
    logger.info("Query execution started: %s", execution_id)

    wait_for_query(
        client,
        execution_id,
        config.query_timeout_seconds,
        config.query_poll_interval_seconds,
        sleep=sleep,
        monotonic=monotonic,
    )

    records = read_results(client, execution_id)
    logger.info("Retrieved %d records", len(records))
    return records
