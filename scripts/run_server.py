#!/usr/bin/env python3
"""Launch the MindFlow FastAPI server (REST + WebSocket).

Usage:
    python scripts/run_server.py
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure the repo root is on sys.path so `from mindflow.…` imports work
_root_dir = Path(__file__).resolve().parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

from mindflow.config.settings import LOG_LEVEL, REDIS_URL, SERVER_HOST, SERVER_PORT  # noqa: E402

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s  %(levelname)-7s  %(name)-22s  %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("run_server")


def main() -> None:
    import uvicorn

    logger.info(f"MindFlow server on http://{SERVER_HOST}:{SERVER_PORT} (redis={REDIS_URL})")
    uvicorn.run(
        "mindflow.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        log_level=LOG_LEVEL.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
