"""
Supabase storage for GithubIssue records.

Plays the role of the control-plane API server:
- every write bumps ``resource_version`` and is conditional on the version
  the writer read, so concurrent writers get StatusConflict instead of
  silently overwriting each other
- deleting a record that still carries finalizers only stamps
  ``deletion_timestamp``; the row is erased once the last finalizer is
  removed
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from supabase import Client, create_client

from controller.errors import RecordNotFound, StatusConflict
from models.data_models import (
    Condition,
    GithubIssue,
    GithubIssueSpec,
    GithubIssueStatus,
    NamespacedName,
    ObjectMeta,
)

logger = logging.getLogger(__name__)


def record_to_row(record: GithubIssue) -> Dict[str, Any]:
    """Flatten a record into a github_issues row."""
    meta = record.metadata
    return {
        "namespace": meta.namespace,
        "name": meta.name,
        "uid": meta.uid,
        "resource_version": meta.resource_version,
        "finalizers": list(meta.finalizers),
        "deletion_timestamp": meta.deletion_timestamp.isoformat() if meta.deletion_timestamp else None,
        "creation_timestamp": meta.creation_timestamp.isoformat() if meta.creation_timestamp else None,
        "repo": record.spec.repo,
        "title": record.spec.title,
        "description": record.spec.description,
        "conditions": [c.model_dump(mode="json") for c in record.status.conditions],
    }


def row_to_record(row: Dict[str, Any]) -> GithubIssue:
    """Rebuild a record from a github_issues row."""
    return GithubIssue(
        metadata=ObjectMeta(
            namespace=row["namespace"],
            name=row["name"],
            uid=row.get("uid"),
            resource_version=row.get("resource_version") or 0,
            finalizers=row.get("finalizers") or [],
            deletion_timestamp=row.get("deletion_timestamp"),
            creation_timestamp=row.get("creation_timestamp"),
        ),
        spec=GithubIssueSpec(
            repo=row["repo"],
            title=row["title"],
            description=row.get("description") or "",
        ),
        status=GithubIssueStatus(
            conditions=[Condition.model_validate(c) for c in row.get("conditions") or []]
        ),
    )


class SupabaseRecordStore:
    """Record store backed by the Supabase ``github_issues`` table."""
    
    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[Client] = None):
        """
        Initialize Supabase client.
        
        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            client: Pre-built client (tests)
        """
        self.client: Client = client or create_client(supabase_url, supabase_key)
        self.table_name = "github_issues"
        logger.info(f"Initialized SupabaseRecordStore for {supabase_url}")
    
    def _by_key(self, query, key: NamespacedName):
        return query.eq("namespace", key.namespace).eq("name", key.name)
    
    def get(self, key: NamespacedName) -> Optional[GithubIssue]:
        """
        Fetch one record.
        
        Returns:
            The record, or None if it does not exist
        """
        try:
            result = self._by_key(self.client.table(self.table_name).select("*"), key).execute()
        except Exception as e:
            logger.error(f"Failed to fetch GithubIssue {key}: {e}")
            raise
        
        if not result.data:
            return None
        return row_to_record(result.data[0])
    
    def list(self, namespace: Optional[str] = None) -> List[GithubIssue]:
        """List records, optionally restricted to one namespace."""
        try:
            query = self.client.table(self.table_name).select("*")
            if namespace:
                query = query.eq("namespace", namespace)
            result = query.order("namespace").order("name").execute()
        except Exception as e:
            logger.error(f"Failed to list GithubIssues (namespace={namespace}): {e}")
            raise
        
        return [row_to_record(row) for row in result.data or []]
    
    def create(self, record: GithubIssue) -> GithubIssue:
        """
        Insert a new record.
        
        Raises:
            StatusConflict: If a record with the same namespace/name exists
        """
        if self.get(record.key) is not None:
            raise StatusConflict(f"GithubIssue {record.key} already exists")
        
        created = record.model_copy(deep=True)
        created.metadata.uid = str(uuid.uuid4())
        created.metadata.resource_version = 1
        created.metadata.creation_timestamp = datetime.now(timezone.utc)
        created.metadata.deletion_timestamp = None
        
        try:
            self.client.table(self.table_name).insert(record_to_row(created)).execute()
        except Exception as e:
            logger.error(f"Failed to create GithubIssue {record.key}: {e}")
            raise
        
        logger.info(f"Created GithubIssue {record.key}")
        return created
    
    def _conditional_update(self, record: GithubIssue, fields: Dict[str, Any]) -> GithubIssue:
        """Write ``fields`` if the stored resource_version still matches."""
        key = record.key
        expected = record.metadata.resource_version
        fields = {**fields, "resource_version": expected + 1}
        
        try:
            query = self.client.table(self.table_name).update(fields)
            result = self._by_key(query, key).eq("resource_version", expected).execute()
        except Exception as e:
            logger.error(f"Failed to update GithubIssue {key}: {e}")
            raise
        
        if not result.data:
            if self.get(key) is None:
                raise RecordNotFound(f"GithubIssue {key} not found")
            raise StatusConflict(
                f"GithubIssue {key} was modified (expected resource_version {expected})"
            )
        
        return row_to_record(result.data[0])
    
    def _erase(self, key: NamespacedName) -> None:
        try:
            self._by_key(self.client.table(self.table_name).delete(), key).execute()
        except Exception as e:
            logger.error(f"Failed to erase GithubIssue {key}: {e}")
            raise
        logger.info(f"Erased GithubIssue {key}")
    
    def update(self, record: GithubIssue) -> GithubIssue:
        """
        Persist metadata (finalizers) and spec.
        
        A terminating record left without finalizers is erased.
        
        Raises:
            StatusConflict: On a resource_version mismatch
            RecordNotFound: If the record no longer exists
        """
        row = record_to_row(record)
        fields = {k: row[k] for k in ("finalizers", "repo", "title", "description")}
        updated = self._conditional_update(record, fields)
        
        if updated.is_being_deleted and not updated.metadata.finalizers:
            self._erase(record.key)
        return updated
    
    def update_status(self, record: GithubIssue) -> GithubIssue:
        """Persist status conditions only (same concurrency rules as update)."""
        conditions = [c.model_dump(mode="json") for c in record.status.conditions]
        return self._conditional_update(record, {"conditions": conditions})
    
    def delete(self, key: NamespacedName) -> Optional[GithubIssue]:
        """
        Request deletion of a record.
        
        Returns:
            The terminating record if finalizers hold it, None if it was erased
        
        Raises:
            RecordNotFound: If there is no such record
        """
        record = self.get(key)
        if record is None:
            raise RecordNotFound(f"GithubIssue {key} not found")
        
        if not record.metadata.finalizers:
            self._erase(key)
            return None
        
        if record.is_being_deleted:
            return record
        
        stamped = self._conditional_update(
            record, {"deletion_timestamp": datetime.now(timezone.utc).isoformat()}
        )
        logger.info(f"Marked GithubIssue {key} for deletion (finalizers: {stamped.metadata.finalizers})")
        return stamped
