import threading
from typing import Type, Callable, List, Dict, Any, Optional
from jpegid.domain.events import Event


class EventBus:
    """Synchronous pub/sub shared by the worker threads.

    Callbacks run on the publishing thread; subscribers guard their own state.
    """

    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Callable[[Any], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], callback: Optional[Callable[[Any], None]] = None):
        """Subscribes a callback to an event type. Can be used as a decorator."""
        if callback is None:
            def decorator(func: Callable[[Any], None]):
                self.subscribe(event_type, func)
                return func
            return decorator

        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: Event):
        """Delivers the event to subscribers of its exact type and of its base classes."""
        with self._lock:
            callbacks = [
                callback
                for event_type in type(event).__mro__
                for callback in self._subscribers.get(event_type, [])
            ]
        for callback in callbacks:
            callback(event)
