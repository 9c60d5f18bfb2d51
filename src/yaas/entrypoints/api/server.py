"""Run the API under uvicorn.

Run via: yaas-api (or python -m yaas.entrypoints.api.server)
"""

import uvicorn

from yaas.entrypoints.api.deps import settings


def main() -> None:
    """Serve the app on YAAS_HOST:YAAS_PORT."""
    uvicorn.run(
        "yaas.entrypoints.api.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
