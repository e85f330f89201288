"""Common CLI helper utilities."""

from __future__ import annotations

import argparse
import logging


def setup_logging() -> None:
    """Configure standard logging format for CLI tools.

    Logs go to stderr so entry points can keep stdout for their result.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def parse_non_negative_int(value: str, field_name: str = "value") -> int:
    """Parse a non-negative integer for argparse arguments.

    Raises:
        argparse.ArgumentTypeError: If the value is not an integer >= 0.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{field_name} must be an integer") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"{field_name} must be >= 0")
    return parsed
