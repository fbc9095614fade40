import uuid
from typing import List
from fastapi import APIRouter, Depends, status, HTTPException

from app.core.dependencies import get_discussion_service, get_actor
from app.models.auth import ActorContext
from app.models.discussion import (
    DiscussionCreate, DiscussionRead, ChannelAuthRequest, ChannelAuthResult
)
from app.models.user import RecipientRead
from app.services.discussion import DiscussionService


router = APIRouter()


@router.post(
    "",
    response_model=DiscussionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Send a Message",
    description="Stores the message and broadcasts 'message.sent' on 'private-discussion.<id>'."
)
def create_discussion(
    data: DiscussionCreate,
    actor: ActorContext = Depends(get_actor),
    service: DiscussionService = Depends(get_discussion_service)
):
    return service.create_discussion(actor, data)


@router.get(
    "",
    response_model=List[DiscussionRead],
    summary="My Discussions",
    description="Messages sent or received by the current user."
)
def list_discussions(
    actor: ActorContext = Depends(get_actor),
    service: DiscussionService = Depends(get_discussion_service)
):
    return service.list_discussions(actor)


@router.get(
    "/recipients",
    response_model=List[RecipientRead],
    summary="Possible Recipients",
    description="Members of the caller's company, the caller excluded."
)
def list_recipients(
    actor: ActorContext = Depends(get_actor),
    service: DiscussionService = Depends(get_discussion_service)
):
    return service.list_recipients(actor)


@router.get(
    "/{discussion_id}",
    response_model=DiscussionRead,
    summary="Get a Discussion"
)
def get_discussion(
    discussion_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    service: DiscussionService = Depends(get_discussion_service)
):
    return service.get_discussion(actor, discussion_id)


@router.patch(
    "/{discussion_id}/read",
    summary="Mark as Read"
)
def mark_as_read(
    discussion_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    service: DiscussionService = Depends(get_discussion_service)
):
    return service.mark_as_read(actor, discussion_id)


@router.post(
    "/channels/auth",
    response_model=ChannelAuthResult,
    summary="Authorize a Channel Subscription",
    description="Only the sender and the recipient may listen on 'private-discussion.<id>'."
)
def authorize_channel(
    data: ChannelAuthRequest,
    actor: ActorContext = Depends(get_actor),
    service: DiscussionService = Depends(get_discussion_service)
):
    if not service.authorize_channel(actor.user_id, data.channel_name):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized channel subscription."
        )
    return ChannelAuthResult(channel_name=data.channel_name, authorized=True)
