from .cache_key import derive_cache_key, is_allowed_host, validate_source_url
from .main import audio_proxy, audio_stream
from .proxy import AudioProxy, StreamResult

__all__ = ["AudioProxy", "StreamResult", "audio_proxy", "audio_stream",
           "derive_cache_key", "is_allowed_host", "validate_source_url"]
