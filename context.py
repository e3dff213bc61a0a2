"""Application context handed to every operation instead of module-level clients."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Callable

from activity import ConnectionManager
from config import Settings
from database import DocumentStore, open_store
from identity import FirebaseIdentityProvider, IdentityProvider


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AppContext:
    store: DocumentStore
    identity: IdentityProvider
    settings: Settings = field(default_factory=Settings)
    clock: Callable[[], datetime] = utc_now
    feed: ConnectionManager = field(default_factory=ConnectionManager)

    @property
    def tz(self) -> tzinfo:
        return self.settings.tzinfo

    def now(self) -> datetime:
        return self.clock().astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()


def build_context(settings: Settings) -> AppContext:
    return AppContext(
        store=open_store(settings),
        identity=FirebaseIdentityProvider(settings.firebase_credentials),
        settings=settings,
    )
