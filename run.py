"""Entry point for serving the HomeFix API.

Intended to be executed from the project root, for example under
Docker, where you only specify a single Python file to run.

Configuration (``DATABASE_URL``, ``SECRET_KEY``, ``STRIPE_SECRET_KEY``
and friends) is read from environment variables; see
``homefix_api/app/core/config.py`` for the full list.

Usage:
    python run.py
"""
import asyncio
import os
from uvicorn import Config, Server

from homefix_api.app.main import app


async def run_api() -> None:
    """Start the API using Uvicorn.

    Host and port are read from environment variables `HOST` and
    `PORT`. Defaults are `0.0.0.0` and `8000`.
    """
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level="info")
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(run_api())
    except (KeyboardInterrupt, SystemExit):
        pass
