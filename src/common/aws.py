import json
import logging
from typing import Any, Iterable, Mapping

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

RETRY_CONFIG = Config(retries={"mode": "standard", "max_attempts": 3})


def _client(service: str, region: str | None, read_timeout: float | None = None):
    config = RETRY_CONFIG
    if read_timeout is not None:
        config = config.merge(Config(read_timeout=read_timeout))
    return boto3.client(service, region_name=region, config=config)


def get_s3_client(region: str | None = None):
    """Create S3 client."""
    return _client("s3", region)


def get_athena_client(region: str | None = None):
    """Create Athena client."""
    return _client("athena", region)


def get_bedrock_client(region: str | None = None):
    """Create Bedrock control-plane client (model customization jobs)."""
    return _client("bedrock", region)


def get_bedrock_runtime_client(region: str | None = None, read_timeout: float | None = None):
    """Create Bedrock runtime client (model invocation)."""
    return _client("bedrock-runtime", region, read_timeout)


def get_sns_client(region: str | None = None):
    """Create SNS client."""
    return _client("sns", region)


def build_s3_uri(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"


def to_jsonl(records: Iterable[Mapping[str, Any]]) -> str:
    """Serialize records to newline-delimited JSON with a trailing newline."""
    return "\n".join(json.dumps(record, ensure_ascii=False) for record in records) + "\n"


def upload_jsonl_to_s3(
    records: Iterable[Mapping[str, Any]],
    bucket: str,
    key: str,
    metadata: Mapping[str, str] | None = None,
    client=None,
) -> None:
    """Upload in-memory records to S3 as JSONL in a single put."""
    body = to_jsonl(records)

    s3 = client or get_s3_client()
    s3.put_object(
        Bucket=bucket,
        Key=key,
        Body=body.encode("utf-8"),
        ContentType="application/jsonl",
        Metadata=dict(metadata or {}),
    )
    logger.debug("Put %d bytes to %s", len(body), build_s3_uri(bucket, key))
