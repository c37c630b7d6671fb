from __future__ import annotations

import uvicorn

from laptop_inventory import create_app
from laptop_inventory.core.config import settings
from laptop_inventory.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL, service=settings.APP_NAME)
app = create_app(settings)


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
