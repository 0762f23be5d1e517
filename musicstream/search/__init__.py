from .main import CatalogSearch, search

__all__ = ["CatalogSearch", "search"]
