"""AI package providing agents that move through the streamed world."""

from .chaser import Chaser

__all__ = ["Chaser"]
