"""
Live State Cache

In-memory snapshot cache for live event views with push invalidation.

Every mutation calls invalidate(event_id): the snapshot is dropped, the
event's version is bumped and subscribers receive {"event_id", "version"}.
"""
import asyncio
import logging
import time
from typing import Dict, Any, Optional, Set, Tuple

logger = logging.getLogger(__name__)


class LiveStateCache:
    
    def __init__(self, ttl_seconds: int = 30):
        self.ttl_seconds = ttl_seconds
        self._snapshots: Dict[int, Tuple[float, int, Dict[str, Any]]] = {}
        self._versions: Dict[int, int] = {}
        self._subscribers: Dict[int, Set[asyncio.Queue]] = {}
        self._lock = asyncio.Lock()
    
    def version(self, event_id: int) -> int:
        return self._versions.get(event_id, 0)
    
    def subscriber_count(self, event_id: int) -> int:
        return len(self._subscribers.get(event_id, ()))
    
    def get(self, event_id: int) -> Optional[Dict[str, Any]]:
        """Cached snapshot, or None when missing, stale or expired."""
        cached = self._snapshots.get(event_id)
        if cached is None:
            return None
        
        stored_at, version, snapshot = cached
        if version != self.version(event_id):
            return None
        if self.ttl_seconds <= 0 or time.monotonic() - stored_at > self.ttl_seconds:
            self._snapshots.pop(event_id, None)
            return None
        return snapshot
    
    def put(self, event_id: int, snapshot: Dict[str, Any], version: Optional[int] = None) -> None:
        """
        Store a snapshot computed at `version`.
        
        A snapshot computed before a concurrent invalidation is discarded.
        """
        if version is None:
            version = self.version(event_id)
        if version != self.version(event_id):
            return
        self._snapshots[event_id] = (time.monotonic(), version, snapshot)
    
    async def invalidate(self, event_id: int) -> int:
        """Mark the event's live view stale and notify subscribers."""
        async with self._lock:
            self._snapshots.pop(event_id, None)
            version = self.version(event_id) + 1
            self._versions[event_id] = version
            
            message = {"event_id": event_id, "version": version}
            for queue in list(self._subscribers.get(event_id, ())):
                try:
                    queue.put_nowait(message)
                except asyncio.QueueFull:
                    # Slow subscriber; it will still see the newest version on refetch
                    pass
        
        logger.debug(f"Live view of event {event_id} invalidated (version {version})")
        return version
    
    async def subscribe(self, event_id: int):
        """
        Yield invalidation messages for one event.
        
        Yields:
            {"event_id": int, "version": int}
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=100)
        
        async with self._lock:
            self._subscribers.setdefault(event_id, set()).add(queue)
        
        try:
            while True:
                message = await queue.get()
                if message is None:
                    break
                yield message
        finally:
            async with self._lock:
                queues = self._subscribers.get(event_id)
                if queues is not None:
                    queues.discard(queue)
                    if not queues:
                        del self._subscribers[event_id]
    
    async def close(self) -> None:
        """Stop every subscriber and drop all snapshots."""
        async with self._lock:
            for queues in self._subscribers.values():
                for queue in queues:
                    try:
                        queue.put_nowait(None)  # Signal shutdown
                    except asyncio.QueueFull:
                        pass
            self._subscribers.clear()
            self._snapshots.clear()
