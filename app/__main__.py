from app.core.config import get_settings  # pragma: no cover
from app.main import app  # pragma: no cover

# Allows `python -m app` to run uvicorn programmatically.
if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
