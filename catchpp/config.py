import os
from dotenv import load_dotenv

load_dotenv()

# ------------------------------------------------------------------
# CONFIGURATION
# ------------------------------------------------------------------
AR_BONUS = os.environ.get("CATCHPP_AR_BONUS", "gated").strip().lower()
CACHE_DIR = os.environ.get("CATCHPP_CACHE_DIR", "./cache")
WORKERS = int(os.environ.get("CATCHPP_WORKERS", -1))
LOG_LEVEL = os.environ.get("CATCHPP_LOG_LEVEL", "INFO").upper()

if AR_BONUS not in ("gated", "literal"):
    raise ValueError(f"CATCHPP_AR_BONUS must be 'gated' or 'literal', got {AR_BONUS!r}")
