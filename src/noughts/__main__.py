"""Entry point for running Noughts via ``python -m noughts``."""

from __future__ import annotations

import logging
import os

import uvicorn

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def main() -> None:
    """Start the FastAPI-powered Noughts web server."""

    level = (os.environ.get("NOUGHTS_LOG_LEVEL", "INFO") or "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    host = os.environ.get("NOUGHTS_HOST", "0.0.0.0")
    port = int(os.environ.get("NOUGHTS_PORT", "8000"))
    uvicorn.run("noughts.ui:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
