import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courtside.db")
SQL_ECHO = _env_bool("SQL_ECHO", False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    CORS_ORIGINS.extend(o.strip() for o in _extra.split(",") if o.strip())

# Bracket defaults; a tournament stores the values it was built with
BRACKET_BYE_POLICY = os.getenv("BRACKET_BYE_POLICY", "trailing").strip().lower()
BRACKET_THIRD_PLACE = _env_bool("BRACKET_THIRD_PLACE", False)
DEFAULT_SEEDING_METHOD = os.getenv("DEFAULT_SEEDING_METHOD", "random").strip().lower()
