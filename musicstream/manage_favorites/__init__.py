from .main import FavoritesManager, manage_favorites

__all__ = ["FavoritesManager", "manage_favorites"]
