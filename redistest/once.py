import threading
from typing import Callable, Generic, TypeVar

_T = TypeVar("_T")


class Once(Generic[_T]):
    """
    Run a function exactly once and hand its outcome to every caller.

    Callers arriving while the function runs block on the lock until it
    returns. A raised exception is the outcome too: later callers get the
    same exception object re-raised, the function is not retried.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._done: bool = False
        self._result: _T | None = None
        self._error: BaseException | None = None

    @property
    def done(self) -> bool:
        return self._done

    def do(self, func: Callable[[], _T]) -> _T:
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        self._result = func()
                    except Exception as e:
                        self._error = e
                    self._done = True

        if self._error is not None:
            raise self._error
        return self._result  # type: ignore[return-value]
