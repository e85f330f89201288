"""Core clean logic: an ordered sequence of record filters and transforms.

Stage order is fixed. Validation measures lengths of plain text, so markup must
be stripped before duplicates are dropped and records validated.
"""

import logging
from dataclasses import dataclass, replace

from clean_records.markup import strip_markup
from retrieve_records.models import RawRecord

logger = logging.getLogger(__name__)

MIN_BODY_LENGTH = 50
MIN_TITLE_LENGTH = 5
SHOUTING_TITLE_LENGTH = 20
MAX_UPPERCASE_RATIO = 0.8


@dataclass(frozen=True)
class CleaningReport:
    """Surviving record count after each stage."""
    input: int
    complete: int
    stripped: int
    deduplicated: int
    validated: int


@dataclass(frozen=True)
class CleaningResult:
    records: list[RawRecord]
    report: CleaningReport


def remove_incomplete(records: list[RawRecord]) -> list[RawRecord]:
    """Drop records missing id, title, body, publication, or publish date."""
    return [
        record
        for record in records
        if record.id
        and record.title and record.title.strip()
        and record.body and record.body.strip()
        and record.publication_id
        and record.published_at
    ]


def strip_record_markup(records: list[RawRecord]) -> list[RawRecord]:
    """Convert title and body to plain text."""
    return [
        replace(record, title=strip_markup(record.title), body=strip_markup(record.body))
        for record in records
    ]


def remove_duplicates(records: list[RawRecord]) -> list[RawRecord]:
    """Keep the first occurrence of each record id."""
    seen_ids: set[str] = set()
    unique = []
    for record in records:
        if record.id in seen_ids:
            continue
        seen_ids.add(record.id)
        unique.append(record)
    return unique


def _uppercase_ratio(title: str) -> float:
    return sum(1 for ch in title if ch.isupper()) / len(title)


def is_valid_record(record: RawRecord) -> bool:
    """Length and spam heuristics.

    An odd number of double quotes is logged and accepted.
    """
    quote_count = record.title.count('"') + record.body.count('"')
    if quote_count % 2 != 0:
        logger.warning("Unbalanced quotes detected in record %s: %s", record.id, record.title[:50])

    if len(record.body) < MIN_BODY_LENGTH or len(record.title) < MIN_TITLE_LENGTH:
        return False

    if len(record.title) > SHOUTING_TITLE_LENGTH and _uppercase_ratio(record.title) > MAX_UPPERCASE_RATIO:
        return False

    return True


def validate_records(records: list[RawRecord]) -> list[RawRecord]:
    return [record for record in records if is_valid_record(record)]


def clean_records(records: list[RawRecord]) -> CleaningResult:
    """Run every cleaning stage in order, logging the count after each."""
    logger.info("Starting cleaning for %d records", len(records))

    complete = remove_incomplete(records)
    logger.info("After completeness filter: %d records", len(complete))

    stripped = strip_record_markup(complete)
    logger.info("After markup stripping: %d records", len(stripped))

    unique = remove_duplicates(stripped)
    logger.info("After duplicate filtering: %d records", len(unique))

    valid = validate_records(unique)
    logger.info("After validation: %d records", len(valid))

    report = CleaningReport(
        input=len(records),
        complete=len(complete),
        stripped=len(stripped),
        deduplicated=len(unique),
        validated=len(valid),
    )
    return CleaningResult(records=valid, report=report)
