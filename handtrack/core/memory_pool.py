"""
Object pools for short-lived per-frame records.

A tracking loop running at 30-60 Hz creates a handful of transient records
every frame. The pool manager keeps released records around and hands them
out again, reset to their default values, instead of building fresh ones.
Nothing in the pipeline depends on object identity; pooling only reduces
allocation churn.

One ``PoolManager`` is created per pipeline (or per process) and passed to
the components that need it.
"""

import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

POOL_NAME_ATTR = '_pool_name'
POOL_ID_ATTR = '_pool_id'


class ObjectPool:
    """A single named pool: factory, available stack, in-use set and limits."""

    def __init__(self, name: str, factory: Callable[[], Any], max_size: int = 100):
        self.name = name
        self.factory = factory
        self.max_size = max_size
        self.available: List[Any] = []
        # Keyed by id() so unhashable records (plain dataclasses) can be pooled
        self.in_use: Dict[int, Any] = {}
        self.stats = {
            'created': 0,
            'reused': 0,
            'disposed': 0,
        }

    def describe(self) -> Dict[str, Any]:
        return {
            'available': len(self.available),
            'in_use': len(self.in_use),
            'max_size': self.max_size,
            **self.stats,
        }


class PoolScope:
    """
    Scoped lease over a pool manager.

    Every object obtained through the scope is released when the scope is
    released or when the ``with`` block exits.

    Example:
        >>> with pool_manager.create_scope() as scope:
        ...     observation = scope.get('HandObservation')
    """

    def __init__(self, manager: 'PoolManager'):
        self._manager = manager
        self._objects: List[Any] = []

    def get(self, pool_name: str, reset_fn: Optional[Callable[[Any], None]] = None) -> Any:
        obj = self._manager.get(pool_name, reset_fn)
        self._objects.append(obj)
        return obj

    def release(self) -> None:
        for obj in self._objects:
            self._manager.release(obj)
        self._objects.clear()

    def __enter__(self) -> 'PoolScope':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class PoolManager:
    """
    Manages named object pools.

    ``get`` never blocks and never fails for a registered pool: when the
    pool is exhausted and already at its maximum size, an un-pooled object
    is built from the factory instead. ``get`` and ``release`` are guarded
    by a lock so a manager may be shared by several tracked hands.
    """

    def __init__(self):
        """Initialize an empty pool manager."""
        self.pools: Dict[str, ObjectPool] = {}
        self.stats = {
            'total_allocations': 0,
            'total_reuses': 0,
            'pool_hits': 0,
            'pool_misses': 0,
            'memory_freed': 0,
        }
        self._lock = threading.Lock()

        logger.info("PoolManager initialized")

    def create_pool(self,
                    pool_name: str,
                    factory: Callable[[], Any],
                    initial_size: int = 10,
                    max_size: int = 100) -> None:
        """
        Create a new object pool.

        Args:
            pool_name: Name of the pool
            factory: Callable building a new object with default values
            initial_size: Number of objects to pre-populate
            max_size: Maximum number of pooled objects
        """
        if max_size <= 0:
            raise ConfigurationError('pool', f"max_size must be positive for '{pool_name}'")

        pool = ObjectPool(pool_name, factory, max_size)

        for _ in range(min(initial_size, max_size)):
            obj = factory()
            self._tag(obj, pool_name)
            pool.available.append(obj)
            pool.stats['created'] += 1

        with self._lock:
            self.pools[pool_name] = pool

        logger.info(f"Created pool '{pool_name}' with {len(pool.available)} objects")

    def has_pool(self, pool_name: str) -> bool:
        return pool_name in self.pools

    def get(self, pool_name: str, reset_fn: Optional[Callable[[Any], None]] = None) -> Any:
        """
        Get an object from the pool.

        Args:
            pool_name: Name of the pool
            reset_fn: Optional function applied to the object instead of the
                default reset

        Returns:
            Pooled object reset to its default values
        """
        with self._lock:
            pool = self.pools.get(pool_name)
            if pool is None:
                self.stats['pool_misses'] += 1
                raise ConfigurationError('pool', f"pool '{pool_name}' not found")

            if pool.available:
                obj = pool.available.pop()
                pool.stats['reused'] += 1
                self.stats['total_reuses'] += 1
                self.stats['pool_hits'] += 1
            elif len(pool.in_use) < pool.max_size:
                obj = pool.factory()
                self._tag(obj, pool_name)
                pool.stats['created'] += 1
                self.stats['total_allocations'] += 1
            else:
                logger.warning(f"Pool '{pool_name}' at maximum capacity")
                self.stats['pool_misses'] += 1
                obj = pool.factory()
                self._reset(obj, reset_fn)
                return obj

            self._reset(obj, reset_fn)
            pool.in_use[id(obj)] = obj
            return obj

    def release(self, obj: Any) -> None:
        """
        Return an object to its pool.

        Objects that were never pooled (overflow objects, foreign objects)
        are ignored.

        Args:
            obj: Object to return
        """
        pool_name = getattr(obj, POOL_NAME_ATTR, None)
        if obj is None or pool_name is None:
            return

        with self._lock:
            pool = self.pools.get(pool_name)
            if pool is None:
                return

            if pool.in_use.pop(id(obj), None) is None:
                logger.debug(f"Ignoring release of object not in use in pool '{pool_name}'")
                return

            if len(pool.available) < pool.max_size:
                pool.available.append(obj)
            else:
                pool.stats['disposed'] += 1
                self.stats['memory_freed'] += 1

    def create_scope(self) -> PoolScope:
        """Create a scoped lease whose objects are released together."""
        return PoolScope(self)

    def get_stats(self, pool_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Get pool statistics.

        Args:
            pool_name: Optional specific pool name

        Returns:
            Statistics for one pool, or overall statistics for all pools
        """
        with self._lock:
            if pool_name is not None:
                pool = self.pools.get(pool_name)
                if pool is None:
                    return None
                return {'pool_name': pool_name, **pool.describe()}

            return {
                'overall': dict(self.stats),
                'pools': {name: pool.describe() for name, pool in self.pools.items()},
                'total_pools': len(self.pools),
            }

    def clear(self, pool_name: Optional[str] = None) -> None:
        """
        Clear a specific pool or all pools.

        Args:
            pool_name: Optional specific pool name
        """
        with self._lock:
            names = [pool_name] if pool_name is not None else list(self.pools)
            for name in names:
                pool = self.pools.get(name)
                if pool is None:
                    continue
                pool.available.clear()
                pool.in_use.clear()
                pool.stats['disposed'] += pool.stats['created']
                pool.stats['created'] = 0
                pool.stats['reused'] = 0

        logger.info(f"Cleared {'pool ' + repr(pool_name) if pool_name else 'all pools'}")

    def dispose(self) -> None:
        """Dispose all pools."""
        self.clear()
        with self._lock:
            self.pools.clear()
        logger.info("PoolManager disposed")

    @staticmethod
    def _tag(obj: Any, pool_name: str) -> None:
        setattr(obj, POOL_NAME_ATTR, pool_name)
        setattr(obj, POOL_ID_ATTR, uuid.uuid4().hex[:9])

    @staticmethod
    def _reset(obj: Any, reset_fn: Optional[Callable[[Any], None]]) -> None:
        if reset_fn is not None:
            reset_fn(obj)
        elif hasattr(obj, 'reset') and callable(obj.reset):
            obj.reset()
        else:
            reset_object(obj)


def reset_object(obj: Any) -> None:
    """
    Generic reset for objects without a ``reset`` method.

    Numbers become 0, strings empty, booleans False and lists are emptied.
    Nested objects are left alone so references held elsewhere stay valid.
    """
    for key, value in list(vars(obj).items()):
        if key.startswith('_pool'):
            continue
        if isinstance(value, bool):
            setattr(obj, key, False)
        elif isinstance(value, (int, float)):
            setattr(obj, key, 0)
        elif isinstance(value, str):
            setattr(obj, key, '')
        elif isinstance(value, list):
            value.clear()
