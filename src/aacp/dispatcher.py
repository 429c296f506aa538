"""Per-topic listener registration and fan-out."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .coalescer import WriteCoalescer

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_subscription_ids = itertools.count(1)


@dataclass(eq=False)
class Subscription(Generic[T]):
    """Handle returned by ``ListenerRegistry.register``.

    Pass it back to ``unregister`` (or call ``cancel``) to stop delivery.
    Handles compare by identity, so registering the same callback twice
    yields two independent subscriptions.
    """

    topic: Any
    callback: Callable[[T], None]
    _registry: ListenerRegistry[T] | None = field(repr=False, default=None)
    id: int = field(default_factory=lambda: next(_subscription_ids))

    @property
    def active(self) -> bool:
        return self._registry is not None

    def cancel(self) -> None:
        if self._registry is not None:
            self._registry.unregister(self)


class ListenerRegistry(Generic[T]):
    """Ordered subscriber lists keyed by topic.

    ``dispatch`` walks a snapshot of the topic's subscribers, so callbacks
    may register or unregister (themselves or siblings) while a dispatch is
    in progress. A subscription removed mid-pass is skipped if it has not
    been called yet; subscriptions added mid-pass first fire on the next
    frame.

    Callbacks run on whatever context calls ``dispatch``, normally the
    transport receive task.
    """

    def __init__(self, name: str = "listeners"):
        self._name = name
        self._subscriptions: dict[Any, list[Subscription[T]]] = {}

    def register(self, topic: Any, callback: Callable[[T], None]) -> Subscription[T]:
        subscription = Subscription(topic=topic, callback=callback, _registry=self)
        self._subscriptions.setdefault(topic, []).append(subscription)
        _LOGGER.debug("%s: registered #%d on %r", self._name, subscription.id, topic)
        return subscription

    def unregister(self, subscription: Subscription[T]) -> None:
        """Remove a subscription. Unknown or already removed handles are ignored."""
        if subscription._registry is not self:
            return
        subscription._registry = None

        subscribers = self._subscriptions.get(subscription.topic)
        if subscribers is None:
            return
        # Rebuild rather than mutate in place; dispatch iterates a snapshot
        remaining = [s for s in subscribers if s is not subscription]
        if remaining:
            self._subscriptions[subscription.topic] = remaining
        else:
            del self._subscriptions[subscription.topic]
        _LOGGER.debug("%s: unregistered #%d from %r", self._name, subscription.id, subscription.topic)

    def clear(self) -> None:
        for subscribers in self._subscriptions.values():
            for subscription in subscribers:
                subscription._registry = None
        self._subscriptions.clear()

    def count(self, topic: Any | None = None) -> int:
        if topic is None:
            return sum(len(s) for s in self._subscriptions.values())
        return len(self._subscriptions.get(topic, ()))

    def dispatch(self, topic: Any, payload: T) -> int:
        """Deliver ``payload`` to every subscriber of ``topic``.

        Returns:
            Number of callbacks invoked (including ones that raised)
        """
        delivered = 0
        for subscription in tuple(self._subscriptions.get(topic, ())):
            if not subscription.active:
                continue
            delivered += 1
            try:
                subscription.callback(payload)
            except Exception:
                _LOGGER.exception(
                    "%s: listener #%d on %r raised", self._name, subscription.id, topic
                )
        return delivered


class SubscriptionScope:
    """Owns the subscriptions and debounce streams of one UI scope.

    Closing the scope unregisters every subscription and cancels every
    pending write, so nothing fires after the owner is gone.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription[Any]] = []
        self._coalescers: list[WriteCoalescer] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def add(self, subscription: Subscription[T]) -> Subscription[T]:
        if self._closed:
            subscription.cancel()
            raise RuntimeError("Scope already closed")
        self._subscriptions.append(subscription)
        return subscription

    def own(self, coalescer: WriteCoalescer) -> WriteCoalescer:
        if self._closed:
            coalescer.cancel_all()
            raise RuntimeError("Scope already closed")
        self._coalescers.append(coalescer)
        return coalescer

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription.cancel()
        for coalescer in self._coalescers:
            coalescer.cancel_all()
        self._subscriptions.clear()
        self._coalescers.clear()

    def __enter__(self) -> SubscriptionScope:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
