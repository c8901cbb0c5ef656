"""
Storage backends behind the Manager contract.

- InMemoryManager: process-local, offset page tokens
- MongoManager: durable, anchored page tokens
- CachedManager: Redis cache-aside over another Manager
"""
from .base import Manager
from .cached import CachedManager
from .memory import InMemoryManager
from .mongo import MongoManager

__all__ = ["Manager", "InMemoryManager", "MongoManager", "CachedManager"]
