# squaresum/games/core/store_registry.py
from __future__ import annotations
import logging
import threading
from typing import Callable, TypeVar
from flask import current_app

logger = logging.getLogger(__name__)

T = TypeVar("T")

_create_lock = threading.Lock()


def get_store(key: str, factory: Callable[[], T], load: bool = True) -> T:
    """
    One store per Flask app, parked in `app.extensions[key]`.
    Creation is locked so concurrent first requests share a single store.
    Stores with a `load(force=...)` method are loaded on first fetch.
    """
    ext = current_app.extensions
    store: T | None = ext.get(key)
    if store is None:
        with _create_lock:
            store = ext.get(key)
            if store is None:
                store = factory()
                ext[key] = store
                logger.debug("store %r created", key)
    if load and hasattr(store, "load"):
        store.load(force=False)
    return store
