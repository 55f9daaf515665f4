"""Run the proxy with uvicorn: ``python -m tradeproxy.app``."""

import uvicorn

from tradeproxy.app.core.config import settings


def main() -> None:
    uvicorn.run(
        "tradeproxy.app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
