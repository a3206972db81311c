from typing import Optional
from supabase import create_client, Client
from paycore.config import get_settings

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        settings = get_settings()
        _supabase = create_client(settings.supabase_url, settings.supabase_anon)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client service-role (bypass RLS): utilisé pour les profils client et les cartes enregistrées,
    qui ne doivent jamais être lisibles directement par le navigateur.
    """
    global _service_supabase
    settings = get_settings()
    if not settings.supabase_service_key:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(settings.supabase_url, settings.supabase_service_key)
    return _service_supabase
