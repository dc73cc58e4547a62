"""Thread router: conversations between mission participants."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import CurrentPrincipal
from app.core.rate_limit import rate_limit
from app.models.thread import MessageCreate, MessagePublic, ThreadPublic
from app.services import thread as thread_service

router = APIRouter(prefix="/threads", tags=["threads"])


@router.get("/", response_model=list[ThreadPublic])
def read_my_threads(
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
):
    threads = thread_service.get_user_threads(
        session, principal.id, offset=offset, limit=limit
    )
    return [ThreadPublic.model_validate(t) for t in threads]


@router.get("/{thread_id}", response_model=ThreadPublic)
def read_thread(
    thread_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Retrieve a thread (participants or admin).

    `binding` tells whether it belongs to an application, a submission, or is a
    direct conversation.
    """
    thread = thread_service.get_thread(session, principal, thread_id)
    return ThreadPublic.model_validate(thread)


@router.get("/{thread_id}/messages", response_model=list[MessagePublic])
def read_messages(
    thread_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=200)] = 100,
):
    return thread_service.get_messages(
        session, principal, thread_id, offset=offset, limit=limit
    )


@router.post(
    "/{thread_id}/messages",
    response_model=MessagePublic,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("message", 30))],
)
def post_message(
    thread_id: int,
    message_in: MessageCreate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Post a message (participants only).

    E-mail addresses and phone numbers are masked before the message is stored.
    """
    message = thread_service.post_message(session, principal, thread_id, message_in)
    session.commit()
    session.refresh(message)
    return message
