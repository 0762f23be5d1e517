"""HTTP-triggered functions backing the music and podcast streaming app."""

__version__ = "0.1.0"
