from datetime import datetime, time


def minutes_since_window_start(now: datetime, window_start: time) -> int:
    """Whole minutes elapsed between today's window start and `now`; negative before the window."""
    start = now.replace(hour=window_start.hour, minute=window_start.minute, second=0, microsecond=0)
    # Floor so a run started at T+L that reads the clock a few seconds late still counts as T+L
    return int((now - start).total_seconds() // 60)


def should_send_heartbeat(now: datetime, window_start: time, window_minutes: int, enabled: bool) -> bool:
    """
    Decides whether the "nothing changed" heartbeat fires on this run.
    Nothing is persisted between runs, so the scheduler's interval must not
    be shorter than the window or the heartbeat is sent more than once.
    """
    if not enabled:
        return False
    elapsed = minutes_since_window_start(now, window_start)
    return 0 <= elapsed <= window_minutes
