# config.py
import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

from .errors import ConfigError

# Hosts the audio proxy is allowed to fetch from. Adding one means redeploying.
ALLOWED_AUDIO_HOSTS = frozenset({
    "prod-1.storage.jamendo.com",
    "storage.jamendo.com",
    "mp3l.jamendo.com",
    "mp3d.jamendo.com",
})

DEFAULT_DATABASE_ID = "music_db"
DEFAULT_AUDIO_BUCKET = "audio_files"
USER_AGENT = "MusicStreamingApp/1.0"
DEFAULT_FETCH_TIMEOUT = (5, 60)  # (connect, read) seconds


@dataclass(frozen=True)
class FunctionConfig:
    """Settings shared by every function, resolved once per process."""

    project_id: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    database_id: str = DEFAULT_DATABASE_ID
    allowed_origins: FrozenSet[str] = field(default_factory=lambda: ALLOWED_AUDIO_HOSTS)
    audio_bucket: str = DEFAULT_AUDIO_BUCKET
    user_agent: str = USER_AGENT
    fetch_timeout: Tuple[float, float] = DEFAULT_FETCH_TIMEOUT

    @classmethod
    def from_env(cls, environ=None) -> "FunctionConfig":
        env = os.environ if environ is None else environ

        project_id = env.get("GOOGLE_CLOUD_PROJECT")
        if not project_id:
            raise ConfigError("CRITICAL: GOOGLE_CLOUD_PROJECT environment variable is not set.")

        return cls(
            project_id=project_id,
            endpoint=env.get("API_ENDPOINT") or None,
            api_key=env.get("API_KEY") or None,
            database_id=env.get("FIRESTORE_DATABASE") or DEFAULT_DATABASE_ID,
            audio_bucket=env.get("AUDIO_BUCKET_NAME") or DEFAULT_AUDIO_BUCKET,
            fetch_timeout=_parse_timeout(env.get("FETCH_TIMEOUT_SECONDS")),
        )

    def client_options(self) -> Dict[str, str]:
        """Options passed to the Google Cloud clients."""
        options = {}
        if self.endpoint:
            options["api_endpoint"] = self.endpoint
        if self.api_key:
            options["api_key"] = self.api_key
        return options

    def __repr__(self):
        # Keep the API key out of logs.
        return (f"FunctionConfig(project_id={self.project_id!r}, database_id={self.database_id!r}, "
                f"audio_bucket={self.audio_bucket!r}, endpoint={self.endpoint!r})")


def _parse_timeout(raw: Optional[str]) -> Tuple[float, float]:
    """Accepts '60' (read timeout only) or '5,60' (connect, read)."""
    if not raw:
        return DEFAULT_FETCH_TIMEOUT
    try:
        parts = [float(p) for p in raw.split(",")]
    except ValueError:
        raise ConfigError(f"CRITICAL: FETCH_TIMEOUT_SECONDS is not a number: {raw!r}")
    if len(parts) == 1:
        return (DEFAULT_FETCH_TIMEOUT[0], parts[0])
    if len(parts) == 2:
        return (parts[0], parts[1])
    raise ConfigError(f"CRITICAL: FETCH_TIMEOUT_SECONDS must be 'read' or 'connect,read': {raw!r}")
