from supabase import create_client, Client
from app.config import settings
from app.database.memory_store import InMemoryStore
from typing import Union

Store = Union[Client, InMemoryStore]


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Use for scripts only."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def create_store() -> Store:
    """Build the data store handle selected by STORE_BACKEND"""
    if settings.is_memory_backend:
        return InMemoryStore()
    return get_supabase()
