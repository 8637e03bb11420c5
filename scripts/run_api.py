"""Serve the POS pricing API with uvicorn.

Usage: python scripts/run_api.py [--host HOST] [--port PORT] [--reload]
"""
import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_DIR))

from pos_pricing.config.settings import get_settings  # noqa: E402

logger = logging.getLogger("pos_pricing.run_api")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the POS pricing API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.environ.get("POS_PRICING_PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="restart on source changes")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    logger.info("Serving catalog from %s on %s:%d", settings.catalog_dir, args.host, args.port)

    uvicorn.run(
        "pos_pricing.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=[str(SRC_DIR)] if args.reload else None,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
