"""Hierarchical scopes and value resolution.

Every compiled schema node owns one ``ScopeId``. A node's scope path is its
parent's path plus its own id, so a token is looked up in the ``let``
bindings of the node, then each ancestor (nearest first), and finally in
the root data object.

Lookups distinguish "absent" from "present but falsy": a key that exists
with value ``None`` or ``UNDEFINED`` is a hit and stops the search.

Example:
    >>> store = ScopeStore()
    >>> root, child = ScopeId("root"), ScopeId("child")
    >>> store.bind((root, child), "x", 1)
    >>> find_value(store.chain((root, child), {"x": 2}), ["x"])
    1

"""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Mapping, Sequence
from functools import lru_cache
from typing import Any, TypeAlias

from skema._types import MISSING, UNDEFINED
from skema.reactivity import Ref, reactive, watch_effect

__all__ = [
    "MISSING",
    "UNDEFINED",
    "ScopeId",
    "ScopePath",
    "ScopeStore",
    "find_value",
    "resolve",
    "split_token",
]

_serial = itertools.count(1)

# Values that are never walked into by attribute
_SCALARS = (str, bytes, int, float, complex, bool, type(None))


class ScopeId:
    """Unique, unforgeable scope identifier.

    Compares and hashes by identity only; the label and serial exist purely
    for readable reprs.
    """

    __slots__ = ("label", "serial")

    def __init__(self, label: str = "") -> None:
        self.label = label
        self.serial = next(_serial)

    def __repr__(self) -> str:
        if self.label:
            return f"<ScopeId {self.label}#{self.serial}>"
        return f"<ScopeId #{self.serial}>"


ScopePath: TypeAlias = tuple[ScopeId, ...]


@lru_cache(maxsize=1024)
def split_token(token: str) -> tuple[str, ...]:
    """Split a dotted token (``user.address.city``) into path segments."""
    return tuple(token.split("."))


def _owns(obj: Any, segment: str) -> bool:
    if isinstance(obj, Mapping):
        return segment in obj
    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        try:
            index = int(segment)
        except ValueError:
            return False
        return -len(obj) <= index < len(obj)
    if isinstance(obj, _SCALARS) or segment.startswith("_"):
        return False
    return hasattr(obj, segment)


def _get(obj: Any, segment: str) -> Any:
    if isinstance(obj, Mapping):
        return obj[segment]
    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        return obj[int(segment)]
    return getattr(obj, segment)


def find_value(candidates: Iterable[Any], path: Sequence[str]) -> Any:
    """Return the value at ``path`` in the first candidate that owns it.

    Intermediate segments only descend into values that own the next
    segment; at the final segment the parent must explicitly own the key.

    Args:
        candidates: Objects searched in order (scope bindings, then data)
        path: Path segments, as produced by ``split_token``

    Returns:
        The value found (possibly ``None`` or ``UNDEFINED``), or ``MISSING``
    """
    if not path:
        return MISSING
    *parents, last = path
    for candidate in candidates:
        obj = candidate
        for segment in parents:
            obj = _get(obj, segment) if _owns(obj, segment) else MISSING
            if obj is MISSING:
                break
        else:
            if _owns(obj, last):
                return _get(obj, last)
    return MISSING


class ScopeStore:
    """Mapping of ``ScopeId`` → local ``let`` bindings.

    Backed by a reactive mapping: a resolver created before a binding was
    written re-resolves once the binding appears.
    """

    __slots__ = ("_scopes",)

    def __init__(self) -> None:
        self._scopes = reactive({})

    def bind(
        self,
        scopes: ScopePath,
        key: str | Mapping[str, Any],
        value: Any = None,
    ) -> None:
        """Bind variables in the innermost scope of ``scopes``.

        Ancestor scopes are never written. Existing bindings are shallow
        merged, later writes winning.
        """
        if not scopes:
            raise ValueError("Cannot bind into an empty scope path")
        scope = scopes[-1]
        new_data = {key: value} if isinstance(key, str) else dict(key)
        if scope in self._scopes:
            self._scopes[scope].update(new_data)
        else:
            self._scopes[scope] = new_data

    def get(self, scope: ScopeId) -> Mapping[str, Any] | None:
        """Bindings of ``scope``, or None when it has none."""
        if scope in self._scopes:
            bindings = self._scopes[scope]
            if len(bindings):
                return bindings
        return None

    def chain(self, scopes: ScopePath, data: Any) -> list[Any]:
        """Lookup chain for ``scopes``: bound scopes nearest first, then ``data``."""
        sets: list[Any] = []
        for scope in reversed(scopes):
            bindings = self.get(scope)
            if bindings is not None:
                sets.append(bindings)
        sets.append(data)
        return sets

    def clear(self) -> None:
        for scope in list(self._scopes):
            del self._scopes[scope]

    def __contains__(self, scope: object) -> bool:
        return scope in self._scopes

    def __len__(self) -> int:
        return len(self._scopes)


def resolve(data: Any, store: ScopeStore, scopes: ScopePath, token: str) -> Ref[Any]:
    """Create a ``Ref`` that tracks the value of ``token`` for a scope path.

    The ref is kept current by an effect, so any mutation of the data or of
    a scope along the chain re-resolves it. When nothing owns the token the
    ref keeps whatever it held before (initially ``None``).
    """
    path = split_token(token)
    ref: Ref[Any] = Ref(None)

    def update() -> None:
        found = find_value(store.chain(scopes, data), path)
        if found is not MISSING:
            ref.value = found

    watch_effect(update, flush="pre")
    return ref
