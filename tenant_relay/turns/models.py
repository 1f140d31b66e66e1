# tenant_relay/turns/models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional


class ChannelAccount(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    id: Optional[str] = None
    name: Optional[str] = None


class ConversationAccount(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    id: Optional[str] = None
    name: Optional[str] = None
    tenant_id: Optional[str] = Field(default=None, alias="tenantId")


class TenantInfo(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: Optional[str] = None


class TeamInfo(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: Optional[str] = None
    name: Optional[str] = None


class ChannelData(BaseModel):
    model_config = ConfigDict(extra="allow")
    tenant: Optional[TenantInfo] = None
    team: Optional[TeamInfo] = None


class InboundActivity(BaseModel):
    """The subset of a channel activity the relay reads. Other keys are ignored."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = "message"
    text: Optional[str] = None
    from_account: ChannelAccount = Field(default_factory=ChannelAccount, alias="from")
    conversation: ConversationAccount = Field(default_factory=ConversationAccount)
    channel_data: Optional[ChannelData] = Field(default=None, alias="channelData")


class MessageContext(BaseModel):
    """Identity and content of one inbound message, independent of the channel."""
    tenant_id: str
    user_id: str
    company_name: Optional[str] = None
    email: Optional[str] = None
    utterance: str = ""


class ProviderCredentials(BaseModel):
    api_key: Optional[str] = None
    version_id: Optional[str] = None
    source: Literal["tenant", "default"] = "default"


class RuntimeOutput(BaseModel):
    """A reply item already translated into channel-neutral form."""
    type: Literal["text", "image", "buttons"]
    value: Optional[str] = None
    buttons: List[str] = Field(default_factory=list)


class TurnResult(BaseModel):
    tenant_id: str
    record_status: Literal["committed", "stale", "unavailable", "skipped"]
    credentials_source: Literal["tenant", "default"]
    outputs: List[RuntimeOutput] = Field(default_factory=list)
