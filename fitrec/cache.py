import hashlib
import json
import time
from typing import Any, Dict, Optional, Tuple

from .config import settings


_cache: Dict[str, Tuple[float, Any]] = {}


def key_for(payload: Dict[str, Any]) -> str:
    # stable json hash key
    blob = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    return hashlib.sha256(blob).hexdigest()


def get(payload: Dict[str, Any]) -> Optional[Any]:
    key = key_for(payload)
    entry = _cache.get(key)
    if not entry:
        return None
    expires_at, value = entry
    if time.time() > expires_at:
        _cache.pop(key, None)
        return None
    return value


def set(payload: Dict[str, Any], value: Any) -> None:
    if len(_cache) >= settings.cache_max_items:
        # drop the entry closest to expiry
        oldest_key = min(_cache.items(), key=lambda kv: kv[1][0])[0]
        _cache.pop(oldest_key, None)
    _cache[key_for(payload)] = (time.time() + settings.cache_ttl_seconds, value)


def clear() -> None:
    _cache.clear()


def stats() -> Dict[str, int]:
    now = time.time()
    return {
        "entries": len(_cache),
        "expired": sum(1 for exp, _ in _cache.values() if exp < now),
    }
