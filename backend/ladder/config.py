import os

def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

DEFAULT_RATING = 1200
MIN_PIN_LENGTH = _int_env("MIN_PIN_LENGTH", 4)
MAX_PIN_LENGTH = 64
# bcrypt refuses secrets longer than this many bytes
MAX_PIN_BYTES = 72

# List reads of players/matches; approve never reads through the cache.
CACHE_TTL_SECONDS = _float_env("CACHE_TTL_SECONDS", 30.0)

COMMENTARY_API_KEY = os.getenv("COMMENTARY_API_KEY") or None
COMMENTARY_MODEL = os.getenv("COMMENTARY_MODEL", "gemini-2.5-flash")
COMMENTARY_API_URL = os.getenv(
    "COMMENTARY_API_URL",
    "https://generativelanguage.googleapis.com/v1beta/models",
).rstrip("/")
COMMENTARY_TIMEOUT_SECONDS = _float_env("COMMENTARY_TIMEOUT_SECONDS", 10.0)
