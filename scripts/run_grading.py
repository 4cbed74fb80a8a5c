#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger


def main():
    parser = argparse.ArgumentParser(description="Grade student recipe backends one at a time")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--roster", type=Path, help="Roster CSV with a GitHub URL column")
    source.add_argument("--submissions-dir", type=Path, help="Directory of already checked-out submissions")
    parser.add_argument("--prepare", action="store_true", help="Clone repositories and run npm install first")
    parser.add_argument("--ui", action="store_true", help="Also run the frontend checks")
    parser.add_argument("--results", type=Path, default=None, help="JSON results path")
    parser.add_argument("--csv", type=Path, default=None, help="Also export a CSV report")
    parser.add_argument("--no-db", action="store_true", help="Skip writing records to the database")
    args = parser.parse_args()

    load_dotenv()

    # Settings are read at import time, after .env is loaded
    from config import config
    from grading.errors import RosterError
    from grading.managers import SubmissionManager
    from grading.orchestrator import GradingOrchestrator
    from grading.reports import export_csv, summary_stats
    from grading.roster import discover_submissions, load_roster
    from grading.sinks import DatabaseResultsSink, JsonResultsSink

    try:
        if args.roster:
            submissions = load_roster(args.roster, Path(config.repos_path))
        else:
            submissions = discover_submissions(args.submissions_dir)
    except RosterError as e:
        logger.error("roster_error", error=str(e))
        sys.exit(1)

    if not submissions:
        logger.warning("no_submissions_found")
        sys.exit(1)

    if args.prepare:
        manager = SubmissionManager(
            server_dir_name=config.server_dir_name,
            manifest_name=config.manifest_name,
            npm_executable=config.npm_executable,
            clone_timeout=config.clone_timeout_seconds,
            install_timeout=config.install_timeout_seconds,
        )
        for submission in submissions:
            error = manager.prepare(submission)
            if error:
                logger.warning("prepare_failed", submission_id=submission.id, error=error)

    sinks = [JsonResultsSink(args.results or Path(config.results_path))]
    if not args.no_db:
        from grading.db import get_session, init_db

        init_db()
        sinks.append(DatabaseResultsSink(get_session))

    orchestrator = GradingOrchestrator.from_config(config, sinks=sinks, ui=args.ui or None)
    records = orchestrator.grade_all(submissions)

    stats = summary_stats(records)
    logger.info("grading_summary", **stats.to_dict())

    if args.csv:
        export_csv(records, args.csv)


if __name__ == "__main__":
    main()
