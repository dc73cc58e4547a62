"""Thread service: conversation channels and their append-only messages."""

from sqlmodel import Session, select, or_, and_

from app.core.roles import Principal
from app.models.enums import MessageType
from app.models.thread import Message, MessageCreate, Thread
from app.models.user import User
from app.exceptions import InsufficientPermissionsError, NotFoundError, ValidationError
from app.utils.validation import mask_contacts


def append_message(
    session: Session,
    thread: Thread,
    author_id: int,
    content: str,
    message_type: MessageType = MessageType.TEXT,
) -> Message:
    """Append a message to a thread; contact details are masked except in reward messages."""
    if message_type != MessageType.REWARD:
        content = mask_contacts(content.strip())
    message = Message(
        id_thread=thread.id_thread,
        id_author=author_id,
        type=message_type,
        content=content,
    )
    session.add(message)
    session.flush()
    return message


def get_user_threads(
    session: Session, user_id: int, *, offset: int = 0, limit: int = 50
) -> list[Thread]:
    """Threads the user takes part in, newest first."""
    statement = (
        select(Thread)
        .where(or_(Thread.id_user_a == user_id, Thread.id_user_b == user_id))
        .order_by(Thread.created_at.desc(), Thread.id_thread.desc())  # type: ignore
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all())


def get_thread(session: Session, principal: Principal, thread_id: int) -> Thread:
    """
    Retrieve a thread the caller may read (participant or admin).

    Raises:
        NotFoundError: If the thread does not exist.
        InsufficientPermissionsError: If the caller is not allowed to read it.
    """
    thread = session.get(Thread, thread_id)
    if not thread:
        raise NotFoundError("Thread", thread_id)
    if not thread.has_participant(principal.id) and not principal.is_admin:
        raise InsufficientPermissionsError("Not a participant of this thread")
    return thread


def get_messages(
    session: Session,
    principal: Principal,
    thread_id: int,
    *,
    offset: int = 0,
    limit: int = 100,
) -> list[Message]:
    """Messages of a readable thread in posting order."""
    get_thread(session, principal, thread_id)
    statement = (
        select(Message)
        .where(Message.id_thread == thread_id)
        .order_by(Message.id_message)  # type: ignore
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all())


def post_message(
    session: Session, principal: Principal, thread_id: int, message_in: MessageCreate
) -> Message:
    """
    Post a message to a thread. Only participants may write, admins included.

    REWARD messages are written by the system on acceptance, never by users.

    Raises:
        NotFoundError: If the thread does not exist.
        InsufficientPermissionsError: If the caller is not a participant.
        ValidationError: If the content is blank or the type is REWARD.
    """
    thread = session.get(Thread, thread_id)
    if not thread:
        raise NotFoundError("Thread", thread_id)
    if not thread.has_participant(principal.id):
        raise InsufficientPermissionsError("Not a participant of this thread")
    if message_in.type == MessageType.REWARD:
        raise ValidationError("Reward messages cannot be posted", field="type")
    if not message_in.content.strip():
        raise ValidationError("Message cannot be empty", field="content")

    return append_message(
        session, thread, principal.id, message_in.content, message_in.type
    )


def get_or_create_direct_thread(
    session: Session, principal: Principal, target_id: int
) -> Thread:
    """
    Find the free-standing thread between the caller and another user, or open one.

    Raises:
        NotFoundError: If the target user does not exist.
        ValidationError: If the caller targets themselves.
    """
    if target_id == principal.id:
        raise ValidationError("Cannot message yourself", field="id_user")
    if not session.get(User, target_id):
        raise NotFoundError("User", target_id)

    pair = or_(
        and_(Thread.id_user_a == principal.id, Thread.id_user_b == target_id),
        and_(Thread.id_user_a == target_id, Thread.id_user_b == principal.id),
    )
    thread = session.exec(
        select(Thread).where(
            pair,
            Thread.id_application == None,  # noqa: E711
            Thread.id_submission == None,  # noqa: E711
        )
    ).first()
    if thread:
        return thread

    thread = Thread(id_user_a=principal.id, id_user_b=target_id)
    session.add(thread)
    session.flush()
    return thread


def send_direct_message(
    session: Session, principal: Principal, target_id: int, message_in: MessageCreate
) -> Message:
    """Post to the direct thread with another user, opening it when needed."""
    thread = get_or_create_direct_thread(session, principal, target_id)
    return post_message(session, principal, thread.id_thread, message_in)
