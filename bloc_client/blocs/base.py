"""Event-to-state dispatcher in the BLoC style.

Each bloc owns a single worker thread. Events are queued and handled one at a
time in submission order; a handler turns its event into zero or more states
through the ``emit`` callable it receives. Listeners are called on the worker
thread in emission order.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Generic, TypeVar

E = TypeVar("E")
S = TypeVar("S")

Listener = Callable[[S], None]

logger = logging.getLogger(__name__)

_STOP = object()


class Emitter(Generic[S]):
    def __init__(self, bloc: "Bloc[object, S]"):
        self._bloc = bloc
        self._done = False

    @property
    def is_done(self) -> bool:
        return self._done

    def __call__(self, state: S) -> None:
        if self._done:
            logger.warning("%s ignored a state emitted after its handler finished", type(self._bloc).__name__)
            return
        self._bloc._emit(state)

    def _complete(self) -> None:
        self._done = True


class Bloc(Generic[E, S]):
    def __init__(self, initial_state: S):
        self._state = initial_state
        self._state_lock = threading.Lock()
        self._handlers: dict[type, Callable[[E, Emitter[S]], None]] = {}
        self._listeners: list[Listener[S]] = []
        self._events: queue.Queue = queue.Queue()
        self._closed = False
        self._worker = threading.Thread(
            target=self._run,
            name=f"{type(self).__name__}-worker",
            daemon=True,
        )
        self._worker.start()

    @property
    def state(self) -> S:
        with self._state_lock:
            return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    def on(self, event_type: type, handler: Callable[[E, Emitter[S]], None]) -> None:
        if event_type in self._handlers:
            raise ValueError(f"Handler for {event_type.__name__} is already registered")
        self._handlers[event_type] = handler

    def listen(self, listener: Listener[S]) -> Callable[[], None]:
        with self._state_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._state_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def add(self, event: E) -> None:
        if self._closed:
            raise RuntimeError(f"Cannot add {type(event).__name__} to a closed {type(self).__name__}")
        if self._find_handler(event) is None:
            raise ValueError(f"No handler registered for {type(event).__name__}")
        self._events.put(event)

    def wait_until_idle(self) -> None:
        self._events.join()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._events.put(_STOP)
        self._worker.join()

    def on_error(self, event: E, error: Exception) -> None:
        logger.exception("%s failed while handling %s", type(self).__name__, type(event).__name__, exc_info=error)

    def _find_handler(self, event: E) -> Callable[[E, Emitter[S]], None] | None:
        for event_type in type(event).__mro__:
            handler = self._handlers.get(event_type)
            if handler is not None:
                return handler
        return None

    def _run(self) -> None:
        while True:
            event = self._events.get()
            try:
                if event is _STOP:
                    return
                self._handle(event)
            finally:
                self._events.task_done()

    def _handle(self, event: E) -> None:
        handler = self._find_handler(event)
        if handler is None:
            return
        emit: Emitter[S] = Emitter(self)
        try:
            handler(event, emit)
        except Exception as error:
            self.on_error(event, error)
        finally:
            emit._complete()

    def _emit(self, state: S) -> None:
        with self._state_lock:
            # Equal consecutive states are collapsed into one.
            if state == self._state:
                return
            self._state = state
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Listener of %s raised", type(self).__name__)
