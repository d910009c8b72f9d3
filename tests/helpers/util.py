from datetime import UTC, datetime


def _ts() -> str:
    return datetime.now(UTC).strftime("%H:%M:%S.%f")[:-3]


def dbg(tag: str, **kv):
    kvs = " ".join(f"{k}={kv[k]!r}" for k in kv)
    print(f"[{_ts()}] {tag}: {kvs}", flush=True)


def get_record_by_event(caplog, event_name: str):
    """
    Return the first log record whose 'event' attribute equals event_name.
    Raise StopIteration if not found to make failures explicit.
    """
    return next(r for r in caplog.records if getattr(r, "event", "") == event_name)
