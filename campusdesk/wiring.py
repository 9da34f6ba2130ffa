from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Callable

from campusdesk.models import utcnow
from campusdesk.settings import settings
from campusdesk.storage.inmemory import InMemoryCampusRepository
from campusdesk.storage.mongo import MongoCampusRepository
from campusdesk.storage.repo import CampusRepository


@lru_cache
def get_repo() -> CampusRepository:
    backend = (settings.storage_backend or "inmemory").lower()
    if backend == "mongo":
        return MongoCampusRepository(settings.mongodb_uri, settings.mongodb_db)
    return InMemoryCampusRepository()


def get_clock() -> Callable[[], datetime]:
    return utcnow
