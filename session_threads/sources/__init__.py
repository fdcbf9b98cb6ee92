"""Log source registry."""

from typing import Type

from .base import LogNotFoundError, LogSource, LogSourceError, load_danger_data

# Registry of all available sources
_SOURCES: dict[str, Type[LogSource]] = {}


def register_source(source_class: Type[LogSource]) -> Type[LogSource]:
    """Decorator to register a source class."""
    _SOURCES[source_class.name] = source_class
    return source_class


def get_source(name: str, **kwargs) -> LogSource | None:
    """Get an instance of a source by name."""
    source_class = _SOURCES.get(name)
    if source_class:
        return source_class(**kwargs)
    return None


def get_all_sources() -> list[LogSource]:
    """Get instances of all registered sources."""
    return [cls() for cls in _SOURCES.values()]


__all__ = [
    "LogSource",
    "LogSourceError",
    "LogNotFoundError",
    "load_danger_data",
    "register_source",
    "get_source",
    "get_all_sources",
]

# Import sources to trigger registration
from . import openclaw  # noqa: F401, E402
