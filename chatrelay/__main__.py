from __future__ import annotations

import uvicorn

from chatrelay.config import get_settings
from chatrelay.logging import get_logger

logger = get_logger(__name__)


def main() -> None:
    settings = get_settings()
    logger.info("server_listening", url=f"http://localhost:{settings.port}")
    uvicorn.run("chatrelay.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
