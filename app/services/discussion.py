from typing import List, Optional
import uuid
from datetime import datetime
from loguru import logger
from sqlmodel import Session, select, or_
from fastapi import HTTPException

from app.core.broadcast import (
    Broadcaster, MESSAGE_SENT_EVENT, DISCUSSION_CHANNEL_PREFIX, discussion_channel
)
from app.db.schema import User, Role, Discussion
from app.models.auth import ActorContext
from app.models.discussion import DiscussionCreate, DiscussionRead, ParticipantRead
from app.models.user import RecipientRead


# Roles a company member may write to
RECIPIENT_ROLES = (Role.ADMINISTRATOR, Role.TECHNICIAN, Role.VALIDATOR)


class DiscussionService:
    """
    Direct messages between users. Each new message is persisted first,
    then announced on its private channel.
    """

    def __init__(self, session: Session, broadcaster: Broadcaster):
        self.session = session
        self.broadcaster = broadcaster

    def _to_read(self, discussion: Discussion) -> DiscussionRead:
        return DiscussionRead(
            id=discussion.id,
            sender_id=discussion.sender_id,
            recipient_id=discussion.recipient_id,
            content=discussion.content,
            read_at=discussion.read_at,
            created_at=discussion.created_at,
            sender=ParticipantRead.model_validate(discussion.sender),
            recipient=ParticipantRead.model_validate(
                discussion.recipient) if discussion.recipient else None
        )

    def _is_participant(self, user_id: uuid.UUID, discussion: Discussion) -> bool:
        return user_id in (discussion.sender_id, discussion.recipient_id)

    def create_discussion(self, actor: ActorContext, data: DiscussionCreate) -> DiscussionRead:
        if data.recipient_id and not self.session.get(User, data.recipient_id):
            raise HTTPException(404, "Recipient not found.")

        discussion = Discussion(
            sender_id=actor.user_id,
            recipient_id=data.recipient_id,
            content=data.content
        )
        try:
            self.session.add(discussion)
            self.session.commit()
            self.session.refresh(discussion)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Discussion creation failed: {e}")
            raise HTTPException(500, "Could not send message.")

        logger.info(
            f"Discussion {discussion.id} created by {actor.user_id}")
        result = self._to_read(discussion)

        payload = result.model_dump(mode="json", exclude={"read_at"})
        self.broadcaster.publish(
            discussion_channel(discussion.id), MESSAGE_SENT_EVENT, payload)

        return result

    def list_discussions(self, actor: ActorContext) -> List[DiscussionRead]:
        discussions = self.session.exec(
            select(Discussion)
            .where(or_(
                Discussion.sender_id == actor.user_id,
                Discussion.recipient_id == actor.user_id
            ))
            .order_by(Discussion.created_at)
        ).all()
        return [self._to_read(d) for d in discussions]

    def get_discussion(self, actor: ActorContext, discussion_id: uuid.UUID) -> DiscussionRead:
        discussion = self.session.get(Discussion, discussion_id)
        if not discussion:
            raise HTTPException(404, "Discussion not found.")
        if not self._is_participant(actor.user_id, discussion):
            raise HTTPException(403, "Unauthorized")
        return self._to_read(discussion)

    def mark_as_read(self, actor: ActorContext, discussion_id: uuid.UUID) -> dict:
        """No-op when the caller takes no part in the discussion."""
        discussion = self.session.get(Discussion, discussion_id)
        if discussion and self._is_participant(actor.user_id, discussion):
            discussion.read_at = datetime.utcnow()
            self.session.add(discussion)
            self.session.commit()
        return {"message": "Messages marked as read"}

    def list_recipients(self, actor: ActorContext) -> List[RecipientRead]:
        if not actor.company_id:
            return []
        users = self.session.exec(
            select(User)
            .where(User.company_id == actor.company_id)
            .where(User.role.in_(RECIPIENT_ROLES))
            .where(User.id != actor.user_id)
            .order_by(User.name)
        ).all()
        return [RecipientRead.model_validate(u) for u in users]

    def authorize_channel(self, user_id: uuid.UUID, channel: str) -> bool:
        """May this user listen on `private-discussion.<id>`?"""
        if not channel.startswith(DISCUSSION_CHANNEL_PREFIX):
            return False
        try:
            discussion_id = uuid.UUID(channel[len(DISCUSSION_CHANNEL_PREFIX):])
        except ValueError:
            return False

        discussion: Optional[Discussion] = self.session.get(
            Discussion, discussion_id)
        if not discussion:
            return False
        return self._is_participant(user_id, discussion)
