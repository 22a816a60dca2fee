#!/usr/bin/env python3
"""
Start the review search API with uvicorn.
Bind address comes from API_HOST / API_PORT unless overridden on the command line.
"""

import argparse
import sys
from pathlib import Path

import uvicorn

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from reviewsearch.core.config import API_HOST, API_PORT, LOG_LEVEL


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the review search API server")
    parser.add_argument("--host", default=API_HOST, help=f"Bind host (default: {API_HOST})")
    parser.add_argument("--port", type=int, default=API_PORT, help=f"Bind port (default: {API_PORT})")
    args = parser.parse_args(argv)

    print(f"listening on {args.host}:{args.port}")
    uvicorn.run("reviewsearch.api.main:app", host=args.host, port=args.port, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
