"""Resolve a (targetType, targetId) pair into the storage partition it lives in.

Papers are addressed by internal id or by DOI in any common spelling
(``doi:``, doi.org URLs, publisher URLs). Webpages are addressed by url hash,
by URL, or by internal id. Both resolve to a :class:`ResolvedTarget` whose
``partition`` tells the handlers which tables to use, so a single set of
handlers serves both kinds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidTarget, TargetNotFound
from .identifiers import hash_url, is_url, is_url_hash
from .repository import (
    PAPER_PARTITION,
    WEBPAGE_PARTITION,
    Partition,
    find_paper_by_identifier,
    find_webpage_by_hash,
    find_webpage_by_id,
    insert_webpage,
)

logger = logging.getLogger(__name__)


class TargetType(str, Enum):
    PAPER = "paper"
    WEBPAGE = "webpage"


@dataclass(frozen=True)
class ResolvedTarget:
    target_type: TargetType
    target_id: str
    entity_id: Optional[int]
    partition: Partition

    @property
    def exists(self) -> bool:
        return self.entity_id is not None


def parse_target_type(value: Optional[str]) -> TargetType:
    try:
        return TargetType((value or "").strip().lower())
    except ValueError:
        raise InvalidTarget('targetType must be "paper" or "webpage"') from None


def resolve(
    conn,
    target_type: Optional[str],
    target_id: Optional[str],
    *,
    create: bool = False,
    url: Optional[str] = None,
    title: Optional[str] = None,
    created_by: Optional[str] = None,
) -> ResolvedTarget:
    kind = parse_target_type(target_type)
    identifier = (target_id or "").strip()
    if not identifier:
        raise InvalidTarget("targetId is required")
    if kind is TargetType.PAPER:
        return _resolve_paper(conn, identifier)
    return _resolve_webpage(
        conn, identifier, create=create, url=url, title=title, created_by=created_by
    )


def _resolve_paper(conn, identifier: str) -> ResolvedTarget:
    paper = find_paper_by_identifier(conn, identifier)
    if not paper:
        raise TargetNotFound(f"No paper matches {identifier!r}")
    return ResolvedTarget(
        target_type=TargetType.PAPER,
        target_id=paper.get("doi") or str(paper["id"]),
        entity_id=paper["id"],
        partition=PAPER_PARTITION,
    )


def _resolve_webpage(
    conn,
    identifier: str,
    *,
    create: bool,
    url: Optional[str],
    title: Optional[str],
    created_by: Optional[str],
) -> ResolvedTarget:
    if is_url(identifier):
        source_url = identifier
        url_hash = hash_url(identifier)
    elif is_url_hash(identifier):
        source_url = url
        url_hash = identifier
        if url and hash_url(url) != url_hash:
            raise InvalidTarget("url does not match the targetId url hash")
    elif identifier.isdigit() and len(identifier) <= 18:
        webpage = find_webpage_by_id(conn, int(identifier))
        if not webpage:
            raise TargetNotFound(f"No webpage with id {identifier}")
        return _webpage_target(webpage)
    else:
        raise InvalidTarget("webpage targetId must be a URL, a url hash or an internal id")

    webpage = find_webpage_by_hash(conn, url_hash)
    if webpage:
        return _webpage_target(webpage)
    if not create:
        return ResolvedTarget(
            target_type=TargetType.WEBPAGE,
            target_id=url_hash,
            entity_id=None,
            partition=WEBPAGE_PARTITION,
        )
    if not source_url:
        raise TargetNotFound("Webpage not found. Provide url to auto-create.")
    webpage = insert_webpage(conn, source_url, title=title, created_by=created_by)
    logger.info("Registered webpage %s (hash %s)", webpage["id"], webpage["url_hash"])
    return _webpage_target(webpage)


def _webpage_target(webpage: dict) -> ResolvedTarget:
    return ResolvedTarget(
        target_type=TargetType.WEBPAGE,
        target_id=webpage["url_hash"],
        entity_id=webpage["id"],
        partition=WEBPAGE_PARTITION,
    )
