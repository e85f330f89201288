"""SQL construction for the record retrieval query."""

import re
from datetime import date, timedelta

from common.config import PipelineConfig

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Column order the row decoder relies on.
COLUMNS = (
    "article_id",
    "title",
    "content",
    "publication_id",
    "published_date",
    "metadata",
)


def _identifier(value: str, name: str) -> str:
    if not _IDENTIFIER.match(value):
        raise ValueError(f"Invalid {name}: {value!r}")
    return value


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_query(config: PipelineConfig, today: date) -> str:
    """Build the look-back query, newest records first."""
    database = _identifier(config.athena_database, "athena database")
    table = _identifier(config.athena_table, "athena table")
    since = today - timedelta(days=config.look_back_days)

    lines = [
        "SELECT",
        "    " + ",\n    ".join(COLUMNS),
        f"FROM {database}.{table}",
        f"WHERE published_date >= DATE({_quote(since.isoformat())})",
        "  AND content IS NOT NULL",
        "  AND title IS NOT NULL",
        "  AND content != ''",
        "  AND title != ''",
    ]
    if config.publication_id:
        lines.append(f"  AND publication_id = {_quote(config.publication_id)}")
    lines.append("ORDER BY published_date DESC")
    return "\n".join(lines)
