"""GitHub membership to Permit relay service package."""


def __getattr__(name):
    """Lazy import so `app.relay` can be used without building the FastAPI app."""
    if name == "create_app":
        from .main import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
