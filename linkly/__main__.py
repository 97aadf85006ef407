"""Run the server with ``python -m linkly``."""

import uvicorn

from linkly.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "linkly.main:app",
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        log_config=None,
    )


if __name__ == "__main__":
    main()
