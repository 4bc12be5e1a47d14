"""
ASGI entry point: `uvicorn contractor_api.main:app`.
"""

from __future__ import annotations

import logging

import uvicorn

from contractor_api.app import create_app

logging.basicConfig(level=logging.INFO)

app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
