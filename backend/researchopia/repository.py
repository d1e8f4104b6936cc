from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from .identifiers import hash_url, normalize_doi, normalize_url


@dataclass(frozen=True)
class Partition:
    """Tables a resolved target reads from and writes to."""

    name: str
    entity_table: str
    ratings_table: str
    comments_table: str
    target_column: str


PAPER_PARTITION = Partition(
    name="paper",
    entity_table="papers",
    ratings_table="paper_ratings",
    comments_table="paper_comments",
    target_column="paper_id",
)

WEBPAGE_PARTITION = Partition(
    name="webpage",
    entity_table="webpages",
    ratings_table="webpage_ratings",
    comments_table="webpage_comments",
    target_column="webpage_id",
)

PARTITIONS = {
    PAPER_PARTITION.name: PAPER_PARTITION,
    WEBPAGE_PARTITION.name: WEBPAGE_PARTITION,
}


PAPER_FIELDS = [
    "doi",
    "title",
    "authors",
    "year",
    "url",
    "created_at",
    "updated_at",
]

RATING_FIELDS = [
    "overall_score",
    "dimension1",
    "dimension2",
    "dimension3",
    "is_anonymous",
    "show_username",
]


def _now_ts() -> int:
    return int(time.time())


def _new_id() -> str:
    return uuid4().hex


def insert_paper(conn, data: Dict[str, Any]) -> Dict[str, Any]:
    values = [data.get(field) for field in PAPER_FIELDS]
    now_ts = _now_ts()
    for field in ("created_at", "updated_at"):
        idx = PAPER_FIELDS.index(field)
        if values[idx] is None:
            values[idx] = now_ts
    doi_idx = PAPER_FIELDS.index("doi")
    values[doi_idx] = normalize_doi(values[doi_idx])
    placeholders = ",".join(["?"] * len(PAPER_FIELDS))
    cur = conn.execute(
        f"INSERT INTO papers ({','.join(PAPER_FIELDS)}) VALUES ({placeholders})",
        values,
    )
    row = conn.execute("SELECT * FROM papers WHERE id = ?", (cur.lastrowid,)).fetchone()
    return dict(row)


def find_paper_by_doi(conn, doi: Optional[str]):
    if not doi:
        return None
    row = conn.execute(
        "SELECT * FROM papers WHERE lower(doi) = lower(?) ORDER BY id ASC LIMIT 1",
        (doi,),
    ).fetchone()
    return dict(row) if row else None


def find_paper_by_identifier(conn, identifier: Optional[str]):
    """Look a paper up by internal id (all digits) or by any DOI spelling."""
    if not identifier:
        return None
    text = identifier.strip()
    if text.isdigit() and len(text) <= 18:
        row = conn.execute("SELECT * FROM papers WHERE id = ?", (int(text),)).fetchone()
        if row:
            return dict(row)
    return find_paper_by_doi(conn, normalize_doi(text))


def find_webpage_by_hash(conn, url_hash: str):
    row = conn.execute("SELECT * FROM webpages WHERE url_hash = ?", (url_hash,)).fetchone()
    return dict(row) if row else None


def find_webpage_by_id(conn, webpage_id: int):
    row = conn.execute("SELECT * FROM webpages WHERE id = ?", (webpage_id,)).fetchone()
    return dict(row) if row else None


def insert_webpage(
    conn, url: str, title: Optional[str] = None, created_by: Optional[str] = None
) -> Dict[str, Any]:
    normalized = normalize_url(url)
    url_hash = hash_url(url)
    now_ts = _now_ts()
    conn.execute(
        """
        INSERT INTO webpages (url, url_hash, title, first_submitted_by, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(url_hash) DO NOTHING
        """,
        (normalized, url_hash, title or normalized, created_by, now_ts, now_ts),
    )
    return find_webpage_by_hash(conn, url_hash)


def upsert_rating(
    conn, partition: Partition, entity_id: int, user_id: str, data: Dict[str, Any]
) -> Dict[str, Any]:
    """Insert or replace the rating of ``user_id`` on one target in a single statement."""
    table = partition.ratings_table
    column = partition.target_column
    values = [data.get(field) for field in RATING_FIELDS]
    now_ts = _now_ts()
    assignments = ", ".join(f"{field} = excluded.{field}" for field in RATING_FIELDS)
    conn.execute(
        f"""
        INSERT INTO {table} (
            id, {column}, user_id, {', '.join(RATING_FIELDS)}, created_at, updated_at
        )
        VALUES (?, ?, ?, {', '.join(['?'] * len(RATING_FIELDS))}, ?, ?)
        ON CONFLICT({column}, user_id) DO UPDATE SET
            {assignments},
            updated_at = excluded.updated_at
        """,
        [_new_id(), entity_id, user_id, *values, now_ts, now_ts],
    )
    return get_rating_for_user(conn, partition, entity_id, user_id)


def get_rating_for_user(conn, partition: Partition, entity_id: int, user_id: str):
    row = conn.execute(
        f"SELECT * FROM {partition.ratings_table} WHERE {partition.target_column} = ? AND user_id = ?",
        (entity_id, user_id),
    ).fetchone()
    return dict(row) if row else None


def list_ratings_by_target(conn, partition: Partition, entity_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        f"""
        SELECT * FROM {partition.ratings_table}
        WHERE {partition.target_column} = ?
        ORDER BY created_at ASC, rowid ASC
        """,
        (entity_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def insert_comment(
    conn,
    partition: Partition,
    entity_id: int,
    user_id: str,
    content: str,
    parent_id: Optional[str] = None,
    is_anonymous: bool = False,
) -> Dict[str, Any]:
    comment_id = _new_id()
    now_ts = _now_ts()
    conn.execute(
        f"""
        INSERT INTO {partition.comments_table} (
            id, {partition.target_column}, user_id, parent_id, content, is_anonymous,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (comment_id, entity_id, user_id, parent_id, content, int(is_anonymous), now_ts, now_ts),
    )
    row = conn.execute(
        f"SELECT * FROM {partition.comments_table} WHERE id = ?", (comment_id,)
    ).fetchone()
    return dict(row)


def find_comment(conn, comment_id: str) -> Optional[Tuple[Partition, Dict[str, Any]]]:
    """Locate a live comment in whichever partition holds it."""
    for partition in PARTITIONS.values():
        row = conn.execute(
            f"SELECT * FROM {partition.comments_table} WHERE id = ? AND deleted_at IS NULL",
            (comment_id,),
        ).fetchone()
        if row:
            return partition, dict(row)
    return None


def update_comment(conn, partition: Partition, comment_id: str, content: str) -> Dict[str, Any]:
    conn.execute(
        f"UPDATE {partition.comments_table} SET content = ?, updated_at = ? WHERE id = ?",
        (content, _now_ts(), comment_id),
    )
    row = conn.execute(
        f"SELECT * FROM {partition.comments_table} WHERE id = ?", (comment_id,)
    ).fetchone()
    return dict(row)


def delete_comment(conn, partition: Partition, comment_id: str) -> int:
    """Soft-delete a comment and every reply below it. Returns the number of rows marked."""
    table = partition.comments_table
    cur = conn.execute(
        f"""
        WITH RECURSIVE thread(id) AS (
            SELECT id FROM {table} WHERE id = ?
            UNION
            SELECT c.id FROM {table} c JOIN thread t ON c.parent_id = t.id
        )
        UPDATE {table}
        SET deleted_at = ?, updated_at = ?
        WHERE id IN (SELECT id FROM thread) AND deleted_at IS NULL
        """,
        (comment_id, _now_ts(), _now_ts()),
    )
    return cur.rowcount


def list_comments_by_target(
    conn,
    partition: Partition,
    entity_id: int,
    limit: int,
    offset: int,
    descending: bool = False,
) -> Tuple[List[Dict[str, Any]], int]:
    direction = "DESC" if descending else "ASC"
    where = f"{partition.target_column} = ? AND deleted_at IS NULL"
    total = conn.execute(
        f"SELECT COUNT(*) AS c FROM {partition.comments_table} WHERE {where}",
        (entity_id,),
    ).fetchone()["c"]
    rows = conn.execute(
        f"""
        SELECT * FROM {partition.comments_table}
        WHERE {where}
        ORDER BY created_at {direction}, rowid {direction}
        LIMIT ? OFFSET ?
        """,
        (entity_id, limit, offset),
    ).fetchall()
    return [dict(r) for r in rows], total
