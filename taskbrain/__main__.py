"""Run the TaskBrain API server: `python -m taskbrain`."""

import uvicorn

from taskbrain.api import create_app
from taskbrain.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api.host,
        port=settings.api.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
