from .main import PodcastCatalog, get_podcasts

__all__ = ["PodcastCatalog", "get_podcasts"]
