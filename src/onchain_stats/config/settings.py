import os
from typing import Optional

from dotenv import load_dotenv
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    return float(raw)


# ---- JSON-RPC node ----
RPC_URL = os.environ.get("RPC_URL", "http://localhost:8545")
RPC_TIMEOUT_SEC = float(os.environ.get("RPC_TIMEOUT_SEC", "15"))
RPC_MAX_RETRIES = int(os.environ.get("RPC_MAX_RETRIES", "1"))   # 1 = single attempt
RPC_REQUESTS_PER_SEC = float(os.environ.get("RPC_REQUESTS_PER_SEC", "20"))

# ---- Tracing ----
TRACE_TRACER = os.environ.get("TRACE_TRACER", "callTracer")
# geth's callTracer omits "calls" on frames without internal calls
TRACE_MISSING_CALLS_AS_EMPTY = _env_bool("TRACE_MISSING_CALLS_AS_EMPTY", False)

# ---- Balance aggregation ----
BALANCE_FETCH_WORKERS = int(os.environ.get("BALANCE_FETCH_WORKERS", "8"))
BALANCE_FETCH_DEADLINE_SEC = _env_float("BALANCE_FETCH_DEADLINE_SEC")   # None = wait for all

# ---- Logging ----
LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
