"""
CMS back-office web application

External (OAuth/OIDC) login for the back-office, and the application base
that boots and tears down the CMS runtime with the web server lifecycle.
"""

import logging
import os

from .application import ApplicationBase, CmsApplication
from .version import __version__

logger = logging.getLogger(__name__)

__all__ = ["ApplicationBase", "CmsApplication", "__version__", "create_app", "main"]


def create_app():
    """Create the Starlette application for the default CmsApplication.

    Returns:
        Starlette application whose lifespan boots the runtime
    """
    return CmsApplication().create_app()


def main(host: str = "127.0.0.1", port: int = 8080) -> None:
    """Run the back-office application with uvicorn"""
    import uvicorn
    from dotenv import load_dotenv

    # .env must be loaded before settings are read
    load_dotenv()

    host = os.environ.get("CMS_HTTP_HOST", host)
    port = int(os.environ.get("CMS_HTTP_PORT", str(port)))

    try:
        app = create_app()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        raise SystemExit(1) from e

    config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_level="warning",  # Reduce uvicorn logging, let our logger handle it
        access_log=False,
        lifespan="on",
    )
    server = uvicorn.Server(config)
    logger.info(f"CMS back-office ready on http://{host}:{port}")
    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
