# helpdesk/routers/tickets.py
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from helpdesk.auth import TokenClaims
from helpdesk.dependencies import get_current_user, get_db
from helpdesk.errors import BadRequest, NotFound
from helpdesk.models import Comment, Ticket, User, utcnow
from helpdesk.schemas.ticket import CommentCreate, Priority, Status, TicketCreate, TicketUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])

Creator = aliased(User, name="creator")
Assignee = aliased(User, name="assignee")

# Columns that may be changed but never cleared
NON_NULLABLE_FIELDS = ("title", "description", "status", "priority")


# -----------------------------
# Helpers: row -> JSON
# -----------------------------
def _iso(value):
    return value.isoformat() if value else None


def ticket_to_out(t: Ticket) -> dict:
    return {
        "id": t.id,
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "category": t.category,
        "assigned_to": t.assigned_to,
        "created_by": t.created_by,
        "created_at": _iso(t.created_at),
        "updated_at": _iso(t.updated_at),
    }


def comment_to_out(c: Comment) -> dict:
    return {
        "id": c.id,
        "ticket_id": c.ticket_id,
        "user_id": c.user_id,
        "content": c.content,
        "created_at": _iso(c.created_at),
    }


def _ticket_query(*extra_columns):
    return (
        select(
            Ticket,
            Creator.username.label("created_by_username"),
            Assignee.username.label("assigned_to_username"),
            *extra_columns,
        )
        .outerjoin(Creator, Ticket.created_by == Creator.id)
        .outerjoin(Assignee, Ticket.assigned_to == Assignee.id)
    )


# -----------------------------
# LIST Tickets
# -----------------------------
@router.get("")
async def list_tickets(
    status: Optional[Status] = None,
    priority: Optional[Priority] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    conditions = []
    if status:
        conditions.append(Ticket.status == status)
    if priority:
        conditions.append(Ticket.priority == priority)

    page_stmt = _ticket_query()
    count_stmt = select(func.count(Ticket.id))
    if conditions:
        page_stmt = page_stmt.where(*conditions)
        count_stmt = count_stmt.where(*conditions)

    stmt = (
        page_stmt
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    rows = (await db.execute(stmt)).all()

    # Separate read; writes landing in between can skew total against the page
    total = await db.scalar(count_stmt)

    tickets = []
    for row in rows:
        item = ticket_to_out(row.Ticket)
        item["created_by_username"] = row.created_by_username
        item["assigned_to_username"] = row.assigned_to_username
        tickets.append(item)

    return {
        "tickets": tickets,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


# -----------------------------
# GET Ticket Detail
# -----------------------------
@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    stmt = _ticket_query(
        Creator.email.label("created_by_email"),
        Assignee.email.label("assigned_to_email"),
    ).where(Ticket.id == ticket_id)
    row = (await db.execute(stmt)).first()
    if row is None:
        raise NotFound("Ticket not found")

    comments_stmt = (
        select(Comment, User.username.label("author_username"))
        .join(User, Comment.user_id == User.id)
        .where(Comment.ticket_id == ticket_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    comments = []
    for c_row in (await db.execute(comments_stmt)).all():
        item = comment_to_out(c_row.Comment)
        item["author_username"] = c_row.author_username
        comments.append(item)

    ticket = ticket_to_out(row.Ticket)
    ticket.update(
        created_by_username=row.created_by_username,
        created_by_email=row.created_by_email,
        assigned_to_username=row.assigned_to_username,
        assigned_to_email=row.assigned_to_email,
        comments=comments,
    )
    return ticket


# -----------------------------
# CREATE Ticket
# -----------------------------
@router.post("", status_code=201)
async def create_ticket(
    payload: TicketCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    ticket = Ticket(
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        category=payload.category,
        status="open",
        created_by=current_user.id,
    )
    db.add(ticket)
    await db.commit()

    logger.info("Ticket %s created by %s", ticket.id, current_user.username)
    return {**ticket_to_out(ticket), "message": "Ticket created successfully"}


# -----------------------------
# UPDATE Ticket
# -----------------------------
@router.put("/{ticket_id}")
async def update_ticket(
    ticket_id: int,
    payload: TicketUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    update_fields = payload.model_dump(exclude_unset=True)
    if not update_fields:
        raise BadRequest("No fields to update")

    for field in NON_NULLABLE_FIELDS:
        if field in update_fields and update_fields[field] is None:
            raise BadRequest(f"{field} cannot be null")

    update_fields["updated_at"] = utcnow()
    stmt = update(Ticket).where(Ticket.id == ticket_id).values(**update_fields)
    try:
        result = await db.execute(stmt)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise BadRequest("assigned_to must reference an existing user")

    if result.rowcount == 0:
        raise NotFound("Ticket not found")

    logger.info("Ticket %s updated by %s", ticket_id, current_user.username)
    return {"message": "Ticket updated successfully"}


# -----------------------------
# ADD Comment
# -----------------------------
@router.post("/{ticket_id}/comments", status_code=201)
async def add_comment(
    ticket_id: int,
    payload: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    exists = await db.scalar(select(Ticket.id).where(Ticket.id == ticket_id))
    if exists is None:
        raise NotFound("Ticket not found")

    comment = Comment(ticket_id=ticket_id, user_id=current_user.id, content=payload.content)
    db.add(comment)
    await db.commit()

    return {**comment_to_out(comment), "message": "Comment added successfully"}


# -----------------------------
# DELETE Ticket
# -----------------------------
@router.delete("/{ticket_id}")
async def delete_ticket(
    ticket_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(get_current_user),
):
    # comments go with it through ON DELETE CASCADE
    result = await db.execute(delete(Ticket).where(Ticket.id == ticket_id))
    await db.commit()

    if result.rowcount == 0:
        raise NotFound("Ticket not found")

    logger.info("Ticket %s deleted by %s", ticket_id, current_user.username)
    return {"message": "Ticket deleted successfully"}
