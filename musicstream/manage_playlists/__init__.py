from .main import PlaylistManager, manage_playlists

__all__ = ["PlaylistManager", "manage_playlists"]
