"""
API routes for GithubIssue records.

Mirrors the verbs a control-plane API server offers for a custom resource:
create, get, list, replace spec, delete. Deleting a record that carries the
operator's finalizer only marks it; the operator erases it after closing the
GitHub issue.
"""

import logging
from functools import lru_cache
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from pydantic import BaseModel, Field, field_validator

from controller.errors import InvalidRepoURL, RecordNotFound, StatusConflict
from controller.repo_locator import parse_repo_url
from models.data_models import GithubIssue, GithubIssueSpec, NamespacedName, ObjectMeta
from utils.config_loader import load_config, load_controller_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["githubissues"])

# DNS-1123 label, as used for namespaces and record names
NAME_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"


@lru_cache(maxsize=1)
def get_store():
    """Record store shared by all requests (overridden in tests)."""
    from storage.supabase_store import SupabaseRecordStore
    
    config = load_config()
    return SupabaseRecordStore(
        config.credentials.supabase_url,
        config.credentials.supabase_key
    )


class IssueSpecRequest(BaseModel):
    """Desired issue state, validated on admission."""
    repo: str = Field(..., description="Repository URL, e.g. https://github.com/acme/widgets")
    title: str = Field(..., min_length=1, description="Issue title (unique per repository)")
    description: str = Field("", description="Issue body")
    
    @field_validator("repo")
    @classmethod
    def validate_repo(cls, v: str) -> str:
        host = load_controller_config().github_host
        try:
            parse_repo_url(v, host)
        except InvalidRepoURL as e:
            raise ValueError(e.reason) from e
        if v.endswith("/") or not v.startswith("https://"):
            raise ValueError(f"repo must match https://{host}/<owner>/<repo>")
        return v


class CreateIssueRequest(BaseModel):
    """Request body for record creation."""
    name: str = Field(..., max_length=63, pattern=NAME_PATTERN)
    spec: IssueSpecRequest


class UpdateIssueRequest(BaseModel):
    """Request body for spec replacement."""
    spec: IssueSpecRequest
    resource_version: Optional[int] = Field(
        None, description="Fail with 409 unless the stored record has this version"
    )


class IssueListResponse(BaseModel):
    """Response model for the list endpoint."""
    items: List[GithubIssue]
    total: int


def _key(namespace: str, name: str) -> NamespacedName:
    return NamespacedName(namespace=namespace, name=name)


Namespace = Annotated[str, Path(max_length=63, pattern=NAME_PATTERN)]


@router.get("/health")
def health():
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/namespaces/{namespace}/githubissues", response_model=IssueListResponse)
def list_issues(namespace: Namespace, store=Depends(get_store)):
    """List the GithubIssue records of a namespace."""
    items = store.list(namespace=namespace)
    return IssueListResponse(items=items, total=len(items))


@router.post(
    "/namespaces/{namespace}/githubissues",
    response_model=GithubIssue,
    status_code=status.HTTP_201_CREATED,
)
def create_issue(request: CreateIssueRequest, namespace: Namespace, store=Depends(get_store)):
    """Create a GithubIssue record."""
    record = GithubIssue(
        metadata=ObjectMeta(namespace=namespace, name=request.name),
        spec=GithubIssueSpec(**request.spec.model_dump()),
    )
    try:
        return store.create(record)
    except StatusConflict as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/namespaces/{namespace}/githubissues/{name}", response_model=GithubIssue)
def get_issue(name: str, namespace: Namespace, store=Depends(get_store)):
    """Fetch one GithubIssue record, including its status conditions."""
    record = store.get(_key(namespace, name))
    if record is None:
        raise HTTPException(status_code=404, detail=f"GithubIssue {namespace}/{name} not found")
    return record


@router.put("/namespaces/{namespace}/githubissues/{name}", response_model=GithubIssue)
def update_issue(
    name: str,
    request: UpdateIssueRequest,
    namespace: Namespace,
    store=Depends(get_store),
):
    """Replace the spec of a GithubIssue record."""
    key = _key(namespace, name)
    record = store.get(key)
    if record is None:
        raise HTTPException(status_code=404, detail=f"GithubIssue {key} not found")
    if record.is_being_deleted:
        raise HTTPException(status_code=409, detail=f"GithubIssue {key} is being deleted")
    
    if request.resource_version is not None:
        if request.resource_version != record.metadata.resource_version:
            raise HTTPException(status_code=409, detail=f"GithubIssue {key} was modified")
    
    record.spec = GithubIssueSpec(**request.spec.model_dump())
    try:
        return store.update(record)
    except StatusConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/namespaces/{namespace}/githubissues/{name}")
def delete_issue(name: str, response: Response, namespace: Namespace, store=Depends(get_store)):
    """
    Request deletion of a GithubIssue record.
    
    Returns 202 with the terminating record while the operator still has to
    close the GitHub issue, 200 once the record is gone.
    """
    key = _key(namespace, name)
    try:
        record = store.delete(key)
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StatusConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    
    if record is None:
        logger.info(f"GithubIssue {key} deleted")
        return {"deleted": True, "record": None}
    
    response.status_code = status.HTTP_202_ACCEPTED
    logger.info(f"GithubIssue {key} is terminating, waiting for finalizers")
    return {"deleted": False, "record": record.model_dump(mode="json")}
