"""
Run the API server.

Run via: python -m candidate_organizer.cli.serve
Listens on 0.0.0.0:$CANDIDATE_ORGANIZER_PORT (default 8080).
"""

import uvicorn

from candidate_organizer.config import settings


def main() -> None:
    uvicorn.run(
        "candidate_organizer.api.app:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        # structlog owns the log format (configured in the app lifespan)
        log_config=None,
    )


if __name__ == "__main__":
    main()
