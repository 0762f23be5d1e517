from .main import TrackCatalog, get_tracks

__all__ = ["TrackCatalog", "get_tracks"]
