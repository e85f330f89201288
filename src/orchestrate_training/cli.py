"""Command line entry point for training workflow runs."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from common.cli_helpers import parse_non_negative_int, setup_logging
from common.config import OrchestratorConfig, load_orchestrator_config
from common.errors import InvalidInvocation
from orchestrate_training.host import WorkflowHost
from orchestrate_training.models import WorkflowState
from orchestrate_training.notify import LoggingNotifier, SnsNotifier
from orchestrate_training.runners import DatasetSubmitter, InProcessDataJobRunner, SubprocessDataJobRunner
from orchestrate_training.store import JsonFileRunStore

logger = logging.getLogger(__name__)


def parse_orchestrate_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    start = subparsers.add_parser("start", help="Start a run and drive it to completion")
    start.add_argument(
        "--look-back-days",
        type=lambda v: parse_non_negative_int(v, "look-back-days"),
        required=True,
    )
    start.add_argument("--publication-id", default=None)
    start.add_argument("--run-id", default=None)
    start.add_argument(
        "--in-process",
        action="store_true",
        help="Run the data job in this process instead of a subprocess",
    )

    status = subparsers.add_parser("status", help="Show the state of a run")
    status.add_argument("run_id")

    cancel = subparsers.add_parser("cancel", help="Cancel a run at its next wait")
    cancel.add_argument("run_id")

    return parser.parse_args(argv)


def build_host(config: OrchestratorConfig, in_process: bool = False) -> WorkflowHost:
    notifier = (
        SnsNotifier(config.alert_topic_arn, region=config.region)
        if config.alert_topic_arn
        else LoggingNotifier()
    )
    runner = InProcessDataJobRunner() if in_process else SubprocessDataJobRunner()
    return WorkflowHost(
        config,
        data_job_runner=runner,
        notifier=notifier,
        store=JsonFileRunStore(config.state_dir),
        submitter=DatasetSubmitter(),
    )


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    load_dotenv()
    args = parse_orchestrate_args(argv)

    config = load_orchestrator_config()
    host = build_host(config, in_process=getattr(args, "in_process", False))

    if args.command == "start":
        invocation = {"lookBackDays": args.look_back_days, "publicationId": args.publication_id}
        try:
            run_id = host.start_run(invocation, run_id=args.run_id)
        except InvalidInvocation as e:
            logger.error("Invalid invocation: %s", e)
            return 2
        record = host.run_to_completion(run_id)
        print(json.dumps(record.to_dict(), indent=2))
        return 0 if record.state is WorkflowState.SUCCEEDED else 1

    try:
        if args.command == "status":
            print(json.dumps(host.describe_run(args.run_id), indent=2))
        elif args.command == "cancel":
            host.cancel_run(args.run_id)
    except KeyError:
        logger.error("Unknown run: %s", args.run_id)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
