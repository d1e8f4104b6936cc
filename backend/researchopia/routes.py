from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .auth import Identity, get_identity, get_optional_identity, require
from .comments import comments_for_target, create_comment, edit_comment, remove_comment
from .config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .db import get_conn
from .ratings import ratings_for_target, submit_rating
from .schemas import CommentCreate, CommentUpdate, RatingCreate
from .targets import resolve

router = APIRouter(prefix="/api/v2", tags=["Evaluations"])


def envelope(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "data": jsonable_encoder(data, by_alias=True)},
    )


@router.post("/ratings")
def post_rating(payload: RatingCreate, identity: Optional[Identity] = Depends(get_identity)):
    user = require(identity)
    with get_conn() as conn:
        target = resolve(
            conn,
            payload.target_type,
            payload.target_id,
            create=True,
            url=payload.url,
            title=payload.title,
            created_by=user.user_id,
        )
        rating = submit_rating(conn, user, target, payload)
    return envelope(rating, status_code=201)


@router.get("/ratings")
def get_ratings(
    target_type: str = Query(alias="targetType"),
    target_id: str = Query(alias="targetId"),
    include_user_rating: bool = Query(default=False, alias="includeUserRating"),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    with get_conn() as conn:
        target = resolve(conn, target_type, target_id)
        data = ratings_for_target(conn, target, identity, include_user_rating)
    return envelope(data)


@router.post("/comments")
def post_comment(payload: CommentCreate, identity: Optional[Identity] = Depends(get_identity)):
    user = require(identity)
    with get_conn() as conn:
        target = resolve(
            conn,
            payload.target_type,
            payload.target_id,
            create=True,
            url=payload.url,
            title=payload.title,
            created_by=user.user_id,
        )
        comment = create_comment(conn, user, target, payload)
    return envelope(comment, status_code=201)


@router.get("/comments")
def get_comments(
    target_type: str = Query(alias="targetType"),
    target_id: str = Query(alias="targetId"),
    order: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    nested: bool = False,
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    with get_conn() as conn:
        target = resolve(conn, target_type, target_id)
        data = comments_for_target(
            conn,
            target,
            identity,
            limit=limit,
            offset=offset,
            descending=order == "desc",
            nested=nested,
        )
    return envelope(data)


@router.patch("/comments/{comment_id}")
def patch_comment(
    comment_id: str,
    payload: CommentUpdate,
    identity: Optional[Identity] = Depends(get_identity),
):
    user = require(identity)
    with get_conn() as conn:
        comment = edit_comment(conn, user, comment_id, payload.body)
    return envelope(comment)


@router.delete("/comments/{comment_id}", status_code=204)
def delete_comment(comment_id: str, identity: Optional[Identity] = Depends(get_identity)):
    user = require(identity)
    with get_conn() as conn:
        remove_comment(conn, user, comment_id)
    return Response(status_code=204)
