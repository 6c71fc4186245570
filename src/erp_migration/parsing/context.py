from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Union

from .schema import ValueMapping

logger = logging.getLogger(__name__)

# a lookup is a plain mapping (key -> value) or an async resolver `key -> value | None`
Lookup = Union[Mapping[str, Any], Callable[[str], Awaitable[Any]]]


@dataclass(slots=True)
class ParseContext:
    """
    Per-run state threaded through the interpreter, evaluators and composers.

    Holds the run's correction tables and lookups so parse configurations stay static:
    - `value_mapping`: exact raw value overrides (see `parsing.adapter.lookup_value_mapping`),
    - `human_names`: entity ids always classified as people,
    - `lookups`: named dictionaries or async resolvers (e.g. `"item"`: SKU -> internal id),
    - `cache`: memoized lookup results for this run only,
    - `pending`: resolver calls in flight, shared by concurrent callers of the same key.
    """
    value_mapping: ValueMapping = field(default_factory=dict)
    human_names: frozenset[str] = frozenset()
    lookups: dict[str, Lookup] = field(default_factory=dict)
    cache: dict[tuple[str, str], Any] = field(default_factory=dict)
    pending: dict[tuple[str, str], asyncio.Task[Any]] = field(default_factory=dict, repr=False)

    async def lookup(self, name: str, key: str) -> Any:
        """
        Resolve `key` through the `name` lookup. Returns `None` when unresolved.

        A failing resolver is logged and treated as unresolved; the miss is cached too.
        Concurrent lookups of one key call the resolver once.
        """
        cache_key = (name, key)
        if cache_key in self.cache:
            return self.cache[cache_key]
        in_flight = self.pending.get(cache_key)
        if in_flight is not None:
            return await in_flight

        source = self.lookups.get(name)
        value: Any = None
        if source is None:
            logger.debug("no %r lookup configured, %r left unresolved", name, key)
        elif isinstance(source, Mapping):
            value = source.get(key)
        else:
            task = asyncio.create_task(_resolve(name, key, source))
            self.pending[cache_key] = task
            try:
                value = await task
            finally:
                self.pending.pop(cache_key, None)

        self.cache[cache_key] = value
        return value


async def _resolve(name: str, key: str, resolver: Callable[[str], Any]) -> Any:
    try:
        value = resolver(key)
        if inspect.isawaitable(value):
            value = await value
        return value
    except Exception:
        logger.warning("lookup %r failed for key %r", name, key, exc_info=True)
        return None
