#!/usr/bin/env python3
"""Start the maintcost HTTP API with uvicorn."""

import logging
import os

import uvicorn

from maintcost.logging_setup import setup_logging

logger = logging.getLogger("maintcost.web")


def main() -> None:
    host = os.getenv("MAINTCOST_HOST", "127.0.0.1")
    port = int(os.getenv("MAINTCOST_PORT", "8000"))
    setup_logging("INFO")
    logger.info("Serving POST /api/analyze, GET /api/packages/{name} and GET /health on http://%s:%d", host, port)

    uvicorn.run(
        "apps.web.main:app",
        host=host,
        port=port,
        reload=True,
        reload_dirs=["apps", "maintcost"],
    )


if __name__ == "__main__":
    main()
