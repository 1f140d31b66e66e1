# tenant_relay/tenants/models.py
import logging
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any, Union
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

# Document keys as stored. The store writes only LAST_SEEN_FIELD plus
# provenance fields that are still empty; everything else belongs to the
# admin console or the storage layer.
ID_FIELD = "id"
LAST_SEEN_FIELD = "lastSeen"
ETAG_FIELD = "_etag"
PROVENANCE_FIELDS = ("userId", "companyName", "email")
PROVIDER_SECRET_FIELD = "voiceflowSecret"
PROVIDER_VERSION_FIELD = "voiceflowVersion"

# Keys the admin path may never set directly.
RESERVED_FIELDS = frozenset({ID_FIELD, LAST_SEEN_FIELD, ETAG_FIELD})


class StoredDocument(BaseModel):
    """A tenant document as returned by a backend, with its version token."""
    body: Dict[str, Any]
    etag: str


class Found(BaseModel):
    """Read result: the document exists."""
    document: StoredDocument


class NotFound(BaseModel):
    """Read result: no document for this identity. Not an error."""
    tenant_id: str


ReadResult = Union[Found, NotFound]


class TenantHints(BaseModel):
    """Provenance captured from the inbound message that triggered an upsert."""
    user_id: Optional[str] = None
    company_name: Optional[str] = None
    email: Optional[str] = None

    def as_document_fields(self) -> Dict[str, str]:
        """Non-empty hints keyed by their document names."""
        fields = {
            "userId": self.user_id,
            "companyName": self.company_name,
            "email": self.email,
        }
        return {key: value for key, value in fields.items() if value}


class TenantRecord(BaseModel):
    """
    Read-only view over a stored tenant document.

    Unknown keys written by the admin console are kept as extras so they
    travel with the record; the raw document body stays the source of truth
    for writes.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    user_id: Optional[str] = Field(default=None, alias="userId")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    email: Optional[str] = None
    voiceflow_secret: Optional[str] = Field(default=None, alias="voiceflowSecret")
    voiceflow_version: Optional[str] = Field(default=None, alias="voiceflowVersion")
    last_seen: Optional[datetime] = Field(default=None, alias="lastSeen")
    etag: Optional[str] = Field(default=None, alias="_etag")

    @field_validator(
        "user_id", "company_name", "email", "voiceflow_secret", "voiceflow_version", mode="before"
    )
    @classmethod
    def _tolerate_non_string(cls, value: Any) -> Optional[str]:
        # The console may store any JSON value under these keys.
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float, bool)):
            return str(value)
        logger.warning(f"Ignoring non-scalar tenant field value: {value!r}")
        return None

    @field_validator("last_seen", mode="before")
    @classmethod
    def _tolerate_bad_timestamp(cls, value: Any) -> Optional[datetime]:
        if isinstance(value, datetime):
            return value
        return parse_timestamp(value)

    @classmethod
    def from_document(cls, document: StoredDocument) -> "TenantRecord":
        data = dict(document.body)
        data[ETAG_FIELD] = document.etag
        return cls.model_validate(data)

    def to_public_dict(self) -> Dict[str, Any]:
        """Document-shaped dict with the provider secret masked."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        if data.get(PROVIDER_SECRET_FIELD):
            data[PROVIDER_SECRET_FIELD] = "********"
        return data


class NewTenantNotification(BaseModel):
    """Payload handed to notification sinks when a tenant is first created."""
    tenant_id: str
    user_id: Optional[str] = None
    company_name: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime


class ProviderCredentialsUpdate(BaseModel):
    """Admin request to set the conversational runtime credentials of a tenant."""
    voiceflow_secret: str = Field(min_length=1)
    voiceflow_version: Optional[str] = None


class TenantFieldsUpdate(BaseModel):
    """Admin request to set arbitrary administrative fields on a tenant."""
    fields: Dict[str, Any] = Field(default_factory=dict)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored ISO-8601 timestamp; garbled values yield None."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring unparseable {LAST_SEEN_FIELD} value: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def next_last_seen(previous: Any, now: datetime) -> datetime:
    """
    Timestamp to write as ``lastSeen``.

    Always later than the stored value, even when the wall clock has not
    moved or went backwards.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    previous_dt = parse_timestamp(previous)
    if previous_dt is not None and now <= previous_dt:
        return previous_dt + timedelta(microseconds=1)
    return now


def merge_tenant_document(
    base: Optional[Dict[str, Any]],
    tenant_id: str,
    hints: TenantHints,
    now: datetime
) -> Dict[str, Any]:
    """
    Build the document body to write for an upsert.

    Precedence rules:
      * ``base is None`` (first contact): ``id`` plus every non-empty hint.
      * Otherwise every stored key is copied unchanged. ``id`` is never
        rewritten. A provenance hint is applied only when the stored value
        is missing or empty, so an absent hint never erases provenance.
      * ``lastSeen`` is always owned by the store and always advanced.
      * The storage layer's ``_etag`` is dropped from the body; backends
        track it separately.
    """
    if base is None:
        merged: Dict[str, Any] = {ID_FIELD: tenant_id}
        merged.update(hints.as_document_fields())
        previous_last_seen = None
    else:
        merged = dict(base)
        merged.pop(ETAG_FIELD, None)
        merged.setdefault(ID_FIELD, tenant_id)
        for key, value in hints.as_document_fields().items():
            if not merged.get(key):
                merged[key] = value
        previous_last_seen = base.get(LAST_SEEN_FIELD)

    merged[LAST_SEEN_FIELD] = format_timestamp(next_last_seen(previous_last_seen, now))
    return merged
