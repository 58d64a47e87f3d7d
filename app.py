"""
Development entrypoint for the K-Means traffic anomaly API.

The browser uploads a CSV to `/api/anomaly/upload`, picks feature columns,
and posts the parsed rows to `/api/anomaly/detect` for scoring. Nothing is
stored server-side between requests.
"""
from __future__ import annotations

import logging

from backend import create_app
from config import Config

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
