"""Router package initialization."""
from . import events, tickets

__all__ = ["events", "tickets"]
