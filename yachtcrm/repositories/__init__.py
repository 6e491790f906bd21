"""
Repository Layer Package.

Data-access abstractions over the SQLite store.  All database operations
flow through repositories; services never touch ``db.sqlite`` directly.

Usage:
    from yachtcrm.repositories.client_repository import ClientRepository
    from yachtcrm.repositories.user_repository import UserRepository
"""

from yachtcrm.repositories.base_repository import BaseRepository, OwnedRepository
from yachtcrm.repositories.boat_repository import BoatRepository
from yachtcrm.repositories.client_repository import ClientRepository
from yachtcrm.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "BoatRepository",
    "ClientRepository",
    "OwnedRepository",
    "UserRepository",
]
