"""Record storage."""

from storage.supabase_store import SupabaseRecordStore

__all__ = ["SupabaseRecordStore"]
