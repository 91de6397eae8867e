"""
Entrypoint for running the web server.
"""

import logging
import os

import uvicorn


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LEDGER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    host = os.getenv("LEDGER_HOST", "127.0.0.1")
    port = int(os.getenv("LEDGER_PORT", "8000"))
    uvicorn.run("statement_ledger.web.app:app", host=host, port=port)


if __name__ == "__main__":
    main()
