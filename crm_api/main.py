from __future__ import annotations

import sys

import uvicorn

from .config import get_settings
from .errors import ConfigurationError


def main() -> None:
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        sys.exit(f"crm-api: {exc}")
    uvicorn.run(
        "crm_api.api:create_app",
        factory=True,
        host=settings.app.host,
        port=settings.app.port,
        log_level=settings.app.log_level,
        reload=False,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
