#!/usr/bin/env python3
import argparse

import uvicorn
from dotenv import load_dotenv
from loguru import logger


def main():
    parser = argparse.ArgumentParser(description="Serve stored grading results over HTTP")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    parser.add_argument("--port", type=int, default=8001, help="Bind port (keep clear of the graded server port)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    args = parser.parse_args()

    load_dotenv()

    from config import config

    logger.info("starting_results_api", host=args.host, port=args.port, database=config.get_database_url())

    uvicorn.run(
        "grading.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
