"""
Back-office backend – production entry point.

During development ``uvicorn app.main:app --reload`` is used instead.

Environment variables:
  HOST                          – bind address (default 127.0.0.1)
  PORT                          – bind port (default 8000)
  BACKOFFICE_PLATFORM_URL/KEY   – platform connection (see app.state)
  BACKOFFICE_LOG_LEVEL          – root log level (default INFO)
"""

from __future__ import annotations

import logging
import os

from app.main import app as _fastapi_app


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("BACKOFFICE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    import uvicorn

    uvicorn.run(
        _fastapi_app,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        workers=1,
        loop="asyncio",
    )


if __name__ == "__main__":
    main()
