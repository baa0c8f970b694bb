"""Real-time repetition classification for physical-therapy exercises."""

__version__ = "0.1.0"
