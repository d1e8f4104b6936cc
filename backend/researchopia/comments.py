from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .auth import Identity
from .config import COMMENT_MAX_LENGTH
from .errors import Forbidden, NotFound, ValidationError
from .repository import (
    Partition,
    delete_comment,
    find_comment,
    find_paper_by_identifier,
    find_webpage_by_id,
    insert_comment,
    list_comments_by_target,
    update_comment,
)
from .schemas import Comment, CommentCreate
from .targets import ResolvedTarget, TargetType

logger = logging.getLogger(__name__)


def clean_body(body: str) -> str:
    text = (body or "").strip()
    if not text:
        raise ValidationError("body is required")
    if len(text) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"body is too long (max {COMMENT_MAX_LENGTH} characters)")
    return text


def to_comment(
    row: Dict[str, Any],
    target_type: str,
    target_id: str,
    viewer: Optional[Identity] = None,
) -> Comment:
    is_anonymous = bool(row.get("is_anonymous"))
    is_own = viewer is not None and viewer.user_id == row.get("user_id")
    return Comment(
        id=row["id"],
        target_type=target_type,
        target_id=target_id,
        user_id=None if is_anonymous and not is_own else row.get("user_id"),
        parent_id=row.get("parent_id"),
        body=row["content"],
        is_anonymous=is_anonymous,
        is_own_comment=is_own,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def build_tree(comments: List[Comment]) -> List[Comment]:
    by_id = {c.id: c for c in comments}
    roots: List[Comment] = []
    for comment in comments:
        parent = by_id.get(comment.parent_id) if comment.parent_id else None
        if parent is not None:
            parent.children.append(comment)
        else:
            roots.append(comment)
    return roots


def _public_target_id(conn, partition: Partition, row: Dict[str, Any]) -> str:
    entity_id = row[partition.target_column]
    if partition.name == TargetType.PAPER.value:
        paper = find_paper_by_identifier(conn, str(entity_id))
        return (paper or {}).get("doi") or str(entity_id)
    webpage = find_webpage_by_id(conn, entity_id)
    return webpage["url_hash"] if webpage else str(entity_id)


def create_comment(conn, identity: Identity, target: ResolvedTarget, payload: CommentCreate) -> Comment:
    body = clean_body(payload.body)
    if payload.parent_id:
        found = find_comment(conn, payload.parent_id)
        if (
            not found
            or found[0] != target.partition
            or found[1][target.partition.target_column] != target.entity_id
        ):
            raise NotFound("Parent comment not found")
    row = insert_comment(
        conn,
        target.partition,
        target.entity_id,
        identity.user_id,
        body,
        parent_id=payload.parent_id,
        is_anonymous=payload.is_anonymous,
    )
    logger.info("Created comment %s on %s %s", row["id"], target.target_type.value, target.entity_id)
    return to_comment(row, target.target_type.value, target.target_id, identity)


def comments_for_target(
    conn,
    target: ResolvedTarget,
    viewer: Optional[Identity] = None,
    limit: int = 50,
    offset: int = 0,
    descending: bool = False,
    nested: bool = False,
) -> Dict[str, Any]:
    if not target.exists:
        return {"comments": [], "total": 0, "hasMore": False}
    rows, total = list_comments_by_target(
        conn, target.partition, target.entity_id, limit, offset, descending=descending
    )
    comments = [
        to_comment(r, target.target_type.value, target.target_id, viewer) for r in rows
    ]
    if nested:
        comments = build_tree(comments)
    return {
        "comments": comments,
        "total": total,
        "hasMore": offset + limit < total,
    }


def _owned_comment(conn, identity: Identity, comment_id: str):
    found = find_comment(conn, comment_id)
    if not found:
        raise NotFound("Comment not found")
    partition, row = found
    if row["user_id"] != identity.user_id:
        logger.info("Rejected change to comment %s by non-owner", comment_id)
        raise Forbidden("Only the author can modify this comment")
    return partition, row


def edit_comment(conn, identity: Identity, comment_id: str, body: str) -> Comment:
    text = clean_body(body)
    partition, _ = _owned_comment(conn, identity, comment_id)
    row = update_comment(conn, partition, comment_id, text)
    logger.info("Updated comment %s", comment_id)
    return to_comment(row, partition.name, _public_target_id(conn, partition, row), identity)


def remove_comment(conn, identity: Identity, comment_id: str) -> None:
    partition, _ = _owned_comment(conn, identity, comment_id)
    removed = delete_comment(conn, partition, comment_id)
    logger.info("Deleted comment %s (%s rows)", comment_id, removed)
