"""modgate: content moderation decision pipeline."""

__version__ = "0.1.0"
