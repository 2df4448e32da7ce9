"""
COW Movement Analytics API entry point.

    uvicorn cow_analytics.main:app
"""

from cow_analytics.config import get_settings
from cow_analytics.serving.api import create_api_app

app = create_api_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
