"""Application-wide services, built once at startup and shared by requests."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from expenser.core.config import settings
from expenser.core.database import AsyncSessionLocal
from expenser.core.session import SessionProvider, get_current_user
from expenser.domain.chat.services import ChatAssistant
from expenser.domain.storage.services import KeyValueStorage
from expenser.domain.transactions.store import TransactionStore, TransactionStoreRegistry
from expenser.domain.users.schemas import Identity
from expenser.services.identity_client import IdentityClient
from expenser.services.llm_client import GeminiClient
from expenser.services.reports import SummaryCache


@dataclass
class AppServices:
    storage: KeyValueStorage
    identity_client: IdentityClient
    sessions: SessionProvider
    stores: TransactionStoreRegistry
    chat: ChatAssistant
    cache: SummaryCache


def build_services(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    identity_client: IdentityClient | None = None,
    llm_client: GeminiClient | None = None,
) -> AppServices:
    """Wire the services together and subscribe the store registry to sign-in changes."""
    storage = KeyValueStorage(session_factory or AsyncSessionLocal)
    identity_client = identity_client or IdentityClient()
    sessions = SessionProvider(identity_client, provider_id=settings.IDENTITY_PROVIDER_ID)
    stores = TransactionStoreRegistry(
        storage,
        namespace=settings.STORAGE_NAMESPACE,
        category_namespace=settings.CATEGORY_NAMESPACE,
        seed_demo=settings.SEED_DEMO_DATA,
    )
    cache = SummaryCache(settings.SUMMARY_CACHE_SIZE)
    chat = ChatAssistant(llm_client or GeminiClient())

    async def on_identity_change(uid: str, identity: Identity | None) -> None:
        cache.invalidate(uid)
        if identity is None:
            chat.forget(uid)
        await stores.on_identity_change(uid, identity)

    sessions.subscribe(on_identity_change)
    return AppServices(
        storage=storage,
        identity_client=identity_client,
        sessions=sessions,
        stores=stores,
        chat=chat,
        cache=cache,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


async def get_store(
    identity: Identity = Depends(get_current_user),
    services: AppServices = Depends(get_services),
) -> TransactionStore:
    """The loaded transaction store of the signed-in user."""
    return await services.stores.get(identity)


__all__ = ["AppServices", "build_services", "get_services", "get_store"]
