from .registry import ContentRegistry

__all__ = ["ContentRegistry"]
