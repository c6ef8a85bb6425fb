# src/tracker/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import redis
import redis.asyncio as aioredis
from dotenv import load_dotenv

from tracker.history import HistoryTracker
from tracker.history_async import AsyncHistoryTracker

_TRUTHY = ("1", "true", "yes", "on")

@dataclass(slots=True)
class TrackerConfig:
    name: str = "default"
    ttl_s: float = 300.0
    clean_interval_s: float = 60.0
    use_hashing: bool = False
    strict: bool = False
    redis_url: Optional[str] = None   # None -> process-local backend

def _flag(v: Optional[str], default: bool) -> bool:
    if v is None or not v.strip():
        return default
    return v.strip().lower() in _TRUTHY

def _number(v: Optional[str], default: float) -> float:
    if v is None or not v.strip():
        return default
    return float(v)

def config_from_env(prefix: str = "HISTORY_", load_env: bool = True) -> TrackerConfig:
    """
    Build a TrackerConfig from the environment (and .env, via python-dotenv):
      {prefix}NAME, {prefix}TTL_S, {prefix}CLEAN_INTERVAL_S,
      {prefix}USE_HASHING, {prefix}STRICT, REDIS_URL
    Missing values keep the dataclass defaults; bad numbers raise ValueError.
    """
    if load_env:
        load_dotenv()
    d = TrackerConfig()
    redis_url = os.getenv("REDIS_URL", "").strip()
    return TrackerConfig(
        name=os.getenv(f"{prefix}NAME", d.name),
        ttl_s=_number(os.getenv(f"{prefix}TTL_S"), d.ttl_s),
        clean_interval_s=_number(os.getenv(f"{prefix}CLEAN_INTERVAL_S"), d.clean_interval_s),
        use_hashing=_flag(os.getenv(f"{prefix}USE_HASHING"), d.use_hashing),
        strict=_flag(os.getenv(f"{prefix}STRICT"), d.strict),
        redis_url=redis_url or None,
    )

def tracker_from_config(cfg: TrackerConfig) -> HistoryTracker:
    client = None
    if cfg.redis_url:
        client = redis.from_url(cfg.redis_url, decode_responses=True)
    return HistoryTracker(
        cfg.name,
        ttl_s=cfg.ttl_s,
        clean_interval_s=cfg.clean_interval_s,
        redis=client,
        use_hashing=cfg.use_hashing,
        strict=cfg.strict,
    )

def async_tracker_from_config(cfg: TrackerConfig) -> AsyncHistoryTracker:
    """Build an AsyncHistoryTracker; the caller still has to start() it."""
    client = None
    if cfg.redis_url:
        client = aioredis.from_url(cfg.redis_url, decode_responses=True)
    return AsyncHistoryTracker(
        cfg.name,
        ttl_s=cfg.ttl_s,
        clean_interval_s=cfg.clean_interval_s,
        redis=client,
        use_hashing=cfg.use_hashing,
        strict=cfg.strict,
    )
