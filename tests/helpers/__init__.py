from .inmemory_db import InMemDB
from .models import MODELS
from .util import dbg, get_record_by_event

__all__ = [
    "MODELS",
    "InMemDB",
    "dbg",
    "get_record_by_event",
]
