"""In-process sliding-window rate limiting keyed by arbitrary strings."""

import re


def normalize_rate_limit_key_part(value, fallback='anon', max_len=120):
    raw = str(value or '').strip().lower()
    if not raw:
        return fallback
    safe = re.sub(r'[^a-z0-9_.:@-]+', '_', raw)
    return safe[:max_len] if safe else fallback


def check_rate_limit(
    key,
    limit,
    window_seconds,
    *,
    in_memory_events,
    in_memory_lock,
    time_module,
):
    """Record one hit for ``key`` and return ``(allowed, retry_after_seconds)``.

    Rejected hits are not recorded, so a client that keeps retrying is let
    through again as soon as its oldest counted hit leaves the window.
    """
    now_ts = time_module.time()
    with in_memory_lock:
        timestamps = in_memory_events.get(key, [])
        cutoff = now_ts - window_seconds
        kept = [ts for ts in timestamps if ts > cutoff]
        if len(kept) >= limit:
            oldest = kept[0]
            retry_after = max(1, int((oldest + window_seconds) - now_ts))
            in_memory_events[key] = kept
            return False, retry_after
        kept.append(now_ts)
        in_memory_events[key] = kept

    return True, 0


def prune_rate_limit_events(in_memory_events, in_memory_lock, max_window_seconds, time_module):
    """Drop keys whose newest hit is older than the longest window in use."""
    cutoff = time_module.time() - max_window_seconds
    with in_memory_lock:
        stale = [key for key, stamps in in_memory_events.items() if not stamps or stamps[-1] <= cutoff]
        for key in stale:
            in_memory_events.pop(key, None)
    return len(stale)
