"""Dependency-tracked reactivity for skema render closures.

A small push-based reactive core: reads performed while an ``Effect`` runs
are recorded against per-key ``Dep`` objects, and writes schedule every
effect that read the changed key. Effects triggered together are flushed
once each, in first-triggered order, with "pre" effects ahead of "post" ones.

Primitives:
    - ``Ref``: an observable cell (``ref.value``)
    - ``reactive()``: deep, lazily-wrapping mapping/list proxies
    - ``watch_effect()``: run a function now and again whenever what it read changes
    - ``EffectScope``: collect effects so they can be stopped together
    - ``batch()``: defer flushing until the outermost batch exits

Example:
    >>> state = reactive({"count": 1})
    >>> seen = []
    >>> effect = watch_effect(lambda: seen.append(state["count"]))
    >>> state["count"] = 2
    >>> seen
    [1, 2]

Thread-Safety:
The active effect and active scope are ContextVars and the flush queue is
thread-local, so independent trees can be evaluated on different threads.
A single reactive object must not be mutated from two threads at once.

"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator, MutableMapping, MutableSequence
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generic, Literal, TypeAlias, TypeVar

T = TypeVar("T")

FlushTiming: TypeAlias = Literal["pre", "post"]

_active_effect: ContextVar[Effect | None] = ContextVar("active_effect", default=None)
_active_scope: ContextVar[EffectScope | None] = ContextVar("active_effect_scope", default=None)


class _Scheduler(threading.local):
    """Per-thread queues of effects waiting to re-run.

    ``"pre"`` effects (derived values such as resolver refs) always drain
    before any ``"post"`` effect (renders), so a post effect sees every
    derived value of the flush already updated and runs once.
    """

    def __init__(self) -> None:
        self.batch_depth = 0
        self.flushing = False
        # dicts preserve first-triggered order and dedupe
        self.queue: dict[Effect, None] = {}
        self.post_queue: dict[Effect, None] = {}

    @property
    def pending(self) -> bool:
        return bool(self.queue or self.post_queue)

    def schedule(self, effect: Effect) -> None:
        if effect.flush == "post":
            self.post_queue.setdefault(effect, None)
        else:
            self.queue.setdefault(effect, None)
        if self.batch_depth == 0 and not self.flushing:
            self.flush()

    def flush(self) -> None:
        self.flushing = True
        try:
            while self.pending:
                queue = self.queue or self.post_queue
                effect = next(iter(queue))
                del queue[effect]
                if effect.active:
                    effect.run()
        finally:
            self.flushing = False


_scheduler = _Scheduler()


class Dep:
    """A set of effects subscribed to one piece of reactive state."""

    __slots__ = ("_subscribers",)

    def __init__(self) -> None:
        self._subscribers: dict[Effect, None] = {}

    def track(self) -> None:
        effect = _active_effect.get()
        if effect is not None and effect.active:
            self._subscribers[effect] = None
            effect._deps[self] = None

    def trigger(self) -> None:
        current = _active_effect.get()
        for effect in list(self._subscribers):
            # An effect never re-triggers itself
            if effect is not current:
                _scheduler.schedule(effect)

    def _unsubscribe(self, effect: Effect) -> None:
        self._subscribers.pop(effect, None)

    def __len__(self) -> int:
        return len(self._subscribers)


class Effect:
    """A function re-run whenever reactive state it read changes.

    Created through ``watch_effect()``. Dependencies are re-collected on
    every run, so branches not taken stop being dependencies.
    """

    __slots__ = ("_deps", "active", "flush", "fn", "runs")

    def __init__(self, fn: Callable[[], Any], flush: FlushTiming = "pre") -> None:
        self.fn = fn
        self.flush = flush
        self.active = True
        self.runs = 0
        self._deps: dict[Dep, None] = {}

    def run(self) -> Any:
        if not self.active:
            return self.fn()
        self._cleanup()
        self.runs += 1
        token = _active_effect.set(self)
        try:
            return self.fn()
        finally:
            _active_effect.reset(token)

    def stop(self) -> None:
        """Detach from every dependency; the effect never runs again."""
        if self.active:
            self._cleanup()
            self.active = False

    def _cleanup(self) -> None:
        for dep in self._deps:
            dep._unsubscribe(self)
        self._deps.clear()

    @property
    def dependency_count(self) -> int:
        return len(self._deps)

    def __repr__(self) -> str:
        state = "active" if self.active else "stopped"
        return f"<Effect {getattr(self.fn, '__name__', 'fn')} {state} runs={self.runs}>"


class EffectScope:
    """Collects effects created while it is active so they can be stopped together.

    Example:
        >>> scope = EffectScope()
        >>> with scope.activate():
        ...     watch_effect(lambda: state["count"])
        >>> scope.stop()  # the effect above no longer reacts
    """

    __slots__ = ("active", "effects")

    def __init__(self) -> None:
        self.effects: list[Effect] = []
        self.active = True

    @contextmanager
    def activate(self) -> Iterator[EffectScope]:
        token = _active_scope.set(self)
        try:
            yield self
        finally:
            _active_scope.reset(token)

    def stop(self) -> None:
        for effect in self.effects:
            effect.stop()
        self.effects.clear()
        self.active = False

    def __len__(self) -> int:
        return len(self.effects)


def watch_effect(fn: Callable[[], Any], *, flush: FlushTiming = "pre") -> Effect:
    """Run ``fn`` immediately, then again each time a value it read changes.

    Args:
        fn: The effect body
        flush: ``"pre"`` for effects that derive values, ``"post"`` for
            effects that consume them; queued pre effects run first
    """
    effect = Effect(fn, flush)
    scope = _active_scope.get()
    if scope is not None and scope.active:
        scope.effects.append(effect)
    effect.run()
    return effect


@contextmanager
def batch() -> Iterator[None]:
    """Defer effect re-runs until the outermost ``batch()`` exits.

    Every effect triggered inside the batch runs at most once afterwards.
    """
    _scheduler.batch_depth += 1
    try:
        yield
    finally:
        _scheduler.batch_depth -= 1
        if _scheduler.batch_depth == 0 and not _scheduler.flushing and _scheduler.pending:
            _scheduler.flush()


@contextmanager
def untracked() -> Iterator[None]:
    """Run a block without recording reads against the active effect."""
    token = _active_effect.set(None)
    try:
        yield
    finally:
        _active_effect.reset(token)


def _has_changed(old: Any, new: Any) -> bool:
    if old is new:
        return False
    # Distinct proxies are distinct state even when their contents compare equal
    if isinstance(old, _ReactiveBase) or isinstance(new, _ReactiveBase):
        return True
    try:
        return not (type(old) is type(new) and old == new)
    except Exception:
        return True


class Ref(Generic[T]):
    """An observable value cell.

    Reading ``ref.value`` inside an effect subscribes the effect; assigning a
    different value re-runs subscribers.
    """

    __slots__ = ("_dep", "_value")

    def __init__(self, value: T) -> None:
        self._value = value
        self._dep = Dep()

    @property
    def value(self) -> T:
        self._dep.track()
        return self._value

    @value.setter
    def value(self, new: T) -> None:
        if _has_changed(self._value, new):
            self._value = new
            self._dep.trigger()

    def peek(self) -> T:
        """Current value without tracking."""
        return self._value

    def __repr__(self) -> str:
        return f"Ref({self._value!r})"


class _ReactiveBase:
    __slots__ = ()

    _raw: Any


class ReactiveDict(_ReactiveBase, MutableMapping):
    """Tracked proxy over a ``dict``.

    Key reads (``[]``, ``in``, ``get``) subscribe to that key only; iteration
    and ``len()`` subscribe to the key set. Nested ``dict``/``list`` values are
    wrapped on access, and the wrapper is cached per key so repeated reads
    return the same proxy.
    """

    __slots__ = ("_children", "_deps", "_keys_dep", "_raw")

    def __init__(self, raw: dict[Any, Any] | None = None) -> None:
        self._raw = raw if raw is not None else {}
        self._deps: dict[Any, Dep] = {}
        self._keys_dep = Dep()
        self._children: dict[Any, _ReactiveBase] = {}

    def _dep(self, key: Any) -> Dep:
        dep = self._deps.get(key)
        if dep is None:
            dep = self._deps[key] = Dep()
        return dep

    def _wrap(self, key: Any, value: Any) -> Any:
        if not isinstance(value, (dict, list)):
            return value
        cached = self._children.get(key)
        if cached is not None and cached._raw is value:
            return cached
        proxy = reactive(value)
        self._children[key] = proxy
        return proxy

    def __getitem__(self, key: Any) -> Any:
        self._dep(key).track()
        return self._wrap(key, self._raw[key])

    def __contains__(self, key: object) -> bool:
        self._dep(key).track()
        return key in self._raw

    def __setitem__(self, key: Any, value: Any) -> None:
        value = to_raw(value)
        had_key = key in self._raw
        old = self._raw.get(key)
        self._raw[key] = value
        self._children.pop(key, None)
        with batch():
            if not had_key:
                self._keys_dep.trigger()
            if not had_key or _has_changed(old, value):
                self._dep(key).trigger()

    def __delitem__(self, key: Any) -> None:
        del self._raw[key]
        self._children.pop(key, None)
        with batch():
            self._keys_dep.trigger()
            self._dep(key).trigger()

    def __iter__(self) -> Iterator[Any]:
        self._keys_dep.track()
        return iter(list(self._raw))

    def __len__(self) -> int:
        self._keys_dep.track()
        return len(self._raw)

    def update(self, *args: Any, **kwargs: Any) -> None:
        with batch():
            super().update(*args, **kwargs)

    def __repr__(self) -> str:
        return f"ReactiveDict({self._raw!r})"


class ReactiveList(_ReactiveBase, MutableSequence):
    """Tracked proxy over a ``list``.

    Any read subscribes to the whole list; any write re-runs every subscriber.
    """

    __slots__ = ("_children", "_dep", "_raw")

    def __init__(self, raw: list[Any] | None = None) -> None:
        self._raw = raw if raw is not None else []
        self._dep = Dep()
        self._children: dict[int, _ReactiveBase] = {}

    def _wrap(self, index: int, value: Any) -> Any:
        if not isinstance(value, (dict, list)):
            return value
        cached = self._children.get(index)
        if cached is not None and cached._raw is value:
            return cached
        proxy = reactive(value)
        self._children[index] = proxy
        return proxy

    def _changed(self) -> None:
        self._children.clear()
        self._dep.trigger()

    def __getitem__(self, index: Any) -> Any:
        self._dep.track()
        if isinstance(index, slice):
            return [reactive(value) for value in self._raw[index]]
        if index < 0:
            index += len(self._raw)
        return self._wrap(index, self._raw[index])

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            self._raw[index] = [to_raw(v) for v in value]
        else:
            self._raw[index] = to_raw(value)
        self._changed()

    def __delitem__(self, index: Any) -> None:
        del self._raw[index]
        self._changed()

    def __len__(self) -> int:
        self._dep.track()
        return len(self._raw)

    def __iter__(self) -> Iterator[Any]:
        self._dep.track()
        for index, value in enumerate(list(self._raw)):
            yield self._wrap(index, value)

    def insert(self, index: int, value: Any) -> None:
        self._raw.insert(index, to_raw(value))
        self._changed()

    def extend(self, values: Iterable[Any]) -> None:
        self._raw.extend(to_raw(v) for v in values)
        self._changed()

    def __repr__(self) -> str:
        return f"ReactiveList({self._raw!r})"


def reactive(obj: Any) -> Any:
    """Wrap a ``dict`` or ``list`` in a tracked proxy; other values pass through."""
    if isinstance(obj, _ReactiveBase):
        return obj
    if isinstance(obj, dict):
        return ReactiveDict(obj)
    if isinstance(obj, list):
        return ReactiveList(obj)
    return obj


def is_reactive(obj: Any) -> bool:
    return isinstance(obj, _ReactiveBase)


def to_raw(obj: Any) -> Any:
    """Return the plain object behind a proxy (or ``obj`` itself)."""
    if isinstance(obj, _ReactiveBase):
        return obj._raw
    return obj
