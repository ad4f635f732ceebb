"""Page state machine shared by the admin list screens.

States: Idle -> Loading -> Loaded | Error. Every load is tagged with a
sequence number; results carrying a number older than the latest issued
one are dropped by the reducer, so a slow response can never overwrite a
newer page.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

log = logging.getLogger(__name__)

IDLE = 'Idle'
LOADING = 'Loading'
LOADED = 'Loaded'
ERROR = 'Error'


@dataclass(frozen=True)
class PageState:
    status: str = IDLE
    data: Any = None
    error: Optional[str] = None
    seq: int = 0


@dataclass(frozen=True)
class LoadStarted:
    seq: int


@dataclass(frozen=True)
class LoadSucceeded:
    seq: int
    data: Any


@dataclass(frozen=True)
class LoadFailed:
    seq: int
    error: str


@dataclass(frozen=True)
class Reset:
    pass


def reduce(state: PageState, action) -> PageState:
    if isinstance(action, Reset):
        return PageState()
    if isinstance(action, LoadStarted):
        if action.seq <= state.seq:
            return state
        # previous data stays visible while the next page loads
        return replace(state, status=LOADING, error=None, seq=action.seq)
    if isinstance(action, (LoadSucceeded, LoadFailed)):
        if action.seq != state.seq:
            log.debug('Dropping stale result %s (latest %s)', action.seq, state.seq)
            return state
        if isinstance(action, LoadSucceeded):
            return replace(state, status=LOADED, data=action.data, error=None)
        return replace(state, status=ERROR, error=action.error)
    raise TypeError(f'Unknown action {action!r}')


class PageController:
    """Runs loads through the reducer; safe to call from several threads."""

    def __init__(self, loader: Callable[..., Any]):
        self.loader = loader
        self.state = PageState()
        self._last_seq = 0
        self._lock = threading.Lock()

    def dispatch(self, action) -> PageState:
        with self._lock:
            self.state = reduce(self.state, action)
            return self.state

    def begin(self) -> int:
        with self._lock:
            self._last_seq += 1
            seq = self._last_seq
        self.dispatch(LoadStarted(seq))
        return seq

    def load(self, *args, **kwargs) -> PageState:
        seq = self.begin()
        try:
            data = self.loader(*args, **kwargs)
        except Exception as exc:  # surfaced through the Error state
            log.warning('Page load %s failed: %s', seq, exc)
            return self.dispatch(LoadFailed(seq, str(exc)))
        return self.dispatch(LoadSucceeded(seq, data))

    def reset(self) -> PageState:
        return self.dispatch(Reset())
