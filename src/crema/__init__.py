__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy re-exports from crema.api for convenience."""
    _api_names = {
        "VoiceCommandService",
        "build_service",
    }
    if name in _api_names:
        from crema import api

        return getattr(api, name)
    raise AttributeError(f"module 'crema' has no attribute {name!r}")
