"""CLI entry point for the data job container.

Configuration comes from the environment. On success one JSON object is
printed to stdout and the process exits 0; any failure exits 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from common.cli_helpers import setup_logging
from common.config import load_pipeline_config
from common.errors import PipelineError
from data_job.data_job import run_data_job

logger = logging.getLogger(__name__)


def parse_data_job_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--load-local", action="store_true", help="Also save the dataset under output/")
    parser.add_argument("--skip-submit", action="store_true", help="Do not submit a training job")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    load_dotenv()
    args = parse_data_job_args(argv)

    try:
        config = load_pipeline_config()
    except (ValueError, FileNotFoundError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    logger.info("Starting data job with config: %s", config.redacted())

    try:
        result = run_data_job(config, submit=not args.skip_submit, load_local=args.load_local)
    except PipelineError as e:
        logger.error("Data job failed (%s): %s", type(e).__name__, e.reason)
        return 1
    except ValueError as e:
        logger.error("Data job failed (invalid configuration): %s", e)
        return 1

    print(json.dumps(result.to_output()))
    logger.info("Data job completed: %d examples at %s", result.prompt_count, result.dataset_location)
    return 0


if __name__ == "__main__":
    sys.exit(main())
