from .base import MessageChannel

__all__ = ["MessageChannel"]
