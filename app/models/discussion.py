from typing import Optional
from uuid import UUID
from datetime import datetime
from sqlmodel import SQLModel, Field


class DiscussionCreate(SQLModel):
    recipient_id: Optional[UUID] = None
    content: str = Field(min_length=1)


class ParticipantRead(SQLModel):
    id: UUID
    name: str


class DiscussionRead(SQLModel):
    id: UUID
    sender_id: UUID
    recipient_id: Optional[UUID] = None
    content: str
    read_at: Optional[datetime] = None
    created_at: datetime
    sender: ParticipantRead
    recipient: Optional[ParticipantRead] = None


class ChannelAuthRequest(SQLModel):
    channel_name: str = Field(description="Example: 'private-discussion.<id>'")


class ChannelAuthResult(SQLModel):
    channel_name: str
    authorized: bool
