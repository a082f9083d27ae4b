"""
SyncCava Configuration Loader
Loads values from the environment, settings.json and built-in defaults.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

from settings import settings

# ==========================================
# Path Configuration
# ==========================================
ROOT_DIR = Path(__file__).parent

# ==========================================
# Version
# ==========================================
VERSION = "0.3.0"

# Only load .env if it exists
env_file = ROOT_DIR / '.env'
if env_file.exists():
    load_dotenv(env_file)


# Helper to prefer Env Var > Settings JSON > Default
def conf(key, default=None):
    # 1. Check Env Var (Highest Priority - good for systemd units and dev)
    env_val = os.getenv(key.upper().replace('.', '_'))
    if env_val is not None:
        return settings.convert(key, env_val)

    # 2. Check Settings JSON (falls back to the schema default)
    json_val = settings.get(key)
    if json_val is not None:
        return json_val

    # 3. Default
    return default


def default_cava_config_path() -> Path:
    """Cava reads $XDG_CONFIG_HOME/cava/config, falling back to ~/.config"""
    xdg = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "cava" / "config"


# ==========================================
# EXPORTED CONFIG DICTS
# ==========================================

DEBUG = {
    "log_file": conf("debug.log_file", "synccava.log"),
    "log_level": conf("debug.log_level", "INFO"),
    "log_to_console": conf("debug.log_to_console", True),
    "log_detailed": conf("debug.log_detailed", False),
    "log_rotation": {
        "max_bytes": conf("debug.log_rotation.max_bytes", 1048576),
        "backup_count": conf("debug.log_rotation.backup_count", 10),
    },
}

SYNC = {
    "source": conf("sync.source", "playerctl"),
    "poll_interval": conf("sync.poll_interval", 1.0),
    "num_colors": conf("sync.num_colors", 3),
}

CAVA = {
    "config_path": Path(os.path.expanduser(conf("cava.config_location") or str(default_cava_config_path()))),
    "process_name": conf("cava.process_name", "cava"),
    "reload_signal": conf("cava.reload_signal", "USR2"),
}

PLAYERCTL = {
    # Empty string means "whichever player playerctl picks"
    "player": conf("playerctl.player", "") or None,
    "timeout": conf("playerctl.timeout", 2.0),
}

ARTWORK = {
    "timeout": conf("artwork.timeout", 10.0),
    "retries": conf("artwork.retries", 3),
    "max_size": conf("artwork.max_size", 300),
    "user_agent": f"SyncCava/{VERSION} (+https://github.com/karlstav/cava)",
}

SPOTIFY = {
    # Empty string instead of None for null safety with spotipy
    "client_id": os.getenv("SPOTIPY_CLIENT_ID") or os.getenv("SPOTIFY_CLIENT_ID", ""),
    "client_secret": os.getenv("SPOTIPY_CLIENT_SECRET") or os.getenv("SPOTIFY_CLIENT_SECRET", ""),
    "redirect_uri": os.getenv("SPOTIPY_REDIRECT_URI") or conf("spotify.redirect_uri", "http://127.0.0.1:8888/callback"),
    "scope": conf("spotify.scope", "user-read-currently-playing"),
    "cache_path": os.getenv("SPOTIPY_CACHE_PATH"),
    "timeout": conf("spotify.timeout", 5.0),
    "retries": conf("spotify.retries", 3),
}
