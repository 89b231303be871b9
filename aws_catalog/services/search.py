"""
Free-text service search with relevance ranking.

Pipeline:
1. validate_query: trim the raw query, reject missing/blank input
2. match_services: candidate services whose name, description or memos
   contain the query (case-insensitive), with up to 3 matching memos each
3. calculate_relevance_score / search_highlights: score and tag every candidate
4. sort_candidates: order by the requested sort mode
5. On zero matches, build_suggestions supplies popular services and
   synonym-based alternative search terms

Scoring rules (case-insensitive):
- Exact name match: +100
- Name contains query: +50, +25 more if the name starts with it
- Description contains query: +20
- +10 per matching memo
- Updated less than 7 days ago: +15, less than 30 days ago: +5
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from aws_catalog.database.crud import (
    get_matching_memos,
    get_memo_counts,
    get_relation_counts,
    search_services,
)
from aws_catalog.database.models import Memo, Service
from aws_catalog.errors import ValidationError
from aws_catalog.services.suggestions import DEFAULT_SYNONYMS, build_suggestions
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)

MEMO_MATCH_LIMIT = 3
DEFAULT_SORT = "relevance"
SORT_MODES = ("relevance", "name", "alphabetical", "updated", "created")

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class SearchCandidate:
    """A matched service with the data needed to score it."""
    service: Service
    memos: List[Memo] = field(default_factory=list)
    memo_count: int = 0
    relation_count: int = 0


def validate_query(raw_query: Optional[str]) -> str:
    """
    Trim and validate the raw ``q`` parameter.

    Raises:
        ValidationError: MISSING_QUERY if absent, EMPTY_QUERY if blank
    """
    if raw_query is None:
        raise ValidationError(
            message="検索クエリが必要です。",
            details={"parameter": "q"},
            code="MISSING_QUERY",
        )
    query = raw_query.strip()
    if not query:
        raise ValidationError(
            message="検索クエリが空です。",
            details={"query": raw_query},
            code="EMPTY_QUERY",
        )
    return query


def match_services(
    session: Session,
    query: str,
    category_id: Optional[str] = None,
) -> List[SearchCandidate]:
    """
    Find candidate services for a trimmed query.

    Returns:
        Candidates ordered by name, then most recently updated
    """
    services = search_services(session, query, category_id=category_id)
    if not services:
        return []

    service_ids = [service.id for service in services]
    memos = get_matching_memos(session, service_ids, query, limit_per_service=MEMO_MATCH_LIMIT)
    memo_counts = get_memo_counts(session, service_ids)
    relation_counts = get_relation_counts(session, service_ids)

    return [
        SearchCandidate(
            service=service,
            memos=memos[service.id],
            memo_count=memo_counts[service.id],
            relation_count=relation_counts[service.id],
        )
        for service in services
    ]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_since(moment: datetime, now: Optional[datetime] = None) -> int:
    """Whole days elapsed between moment and now (floored)."""
    now = _as_utc(now or datetime.now(timezone.utc))
    elapsed = (now - _as_utc(moment)).total_seconds()
    return math.floor(elapsed / SECONDS_PER_DAY)


def calculate_relevance_score(
    candidate: SearchCandidate,
    query: str,
    now: Optional[datetime] = None,
) -> int:
    """
    Score a candidate against the query.

    Examples:
        Exact name "Amazon S3" for query "amazon s3" scores at least 100;
        "Amazon S3 Glacier" for the same query scores 75 from the name.
    """
    term = query.lower()
    name = candidate.service.name.lower()
    description = (candidate.service.description or "").lower()
    score = 0

    if name == term:
        score += 100
    elif term in name:
        score += 50
        if name.startswith(term):
            score += 25

    if term in description:
        score += 20

    score += len(candidate.memos) * 10

    age_days = days_since(candidate.service.updated_at, now)
    if age_days < 7:
        score += 15
    elif age_days < 30:
        score += 5

    return score


def search_highlights(candidate: SearchCandidate, query: str) -> List[str]:
    """Which parts of the candidate matched: subset of name, description, memos."""
    term = query.lower()
    highlights = []
    if term in candidate.service.name.lower():
        highlights.append("name")
    if candidate.service.description and term in candidate.service.description.lower():
        highlights.append("description")
    if candidate.memos:
        highlights.append("memos")
    return highlights


def sort_candidates(
    candidates: Sequence[SearchCandidate],
    sort: str,
    query: str,
    now: Optional[datetime] = None,
) -> List[SearchCandidate]:
    """
    Order candidates for the requested sort mode.

    "relevance" ranks by score. Unknown modes keep the matcher's order (name,
    then most recently updated). Sorting is stable, so candidates with equal
    keys keep that order too.
    """
    if sort in ("name", "alphabetical"):
        return sorted(candidates, key=lambda c: c.service.name)
    if sort == "updated":
        return sorted(candidates, key=lambda c: _as_utc(c.service.updated_at), reverse=True)
    if sort == "created":
        return sorted(candidates, key=lambda c: _as_utc(c.service.created_at), reverse=True)

    if sort == "relevance":
        scores = {id(c): calculate_relevance_score(c, query, now) for c in candidates}
        return sorted(candidates, key=lambda c: -scores[id(c)])
    return list(candidates)


def memo_to_dict(memo: Memo) -> dict:
    return {
        "id": memo.id,
        "type": memo.type,
        "content": memo.content,
        "title": memo.title,
        "createdAt": memo.created_at,
    }


def candidate_to_dict(
    candidate: SearchCandidate,
    query: str,
    now: Optional[datetime] = None,
) -> dict:
    """API representation of a search hit, with highlights and score."""
    service = candidate.service
    category = service.category
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "categoryId": service.category_id,
        "category": {"id": category.id, "name": category.name, "color": category.color},
        "memos": [memo_to_dict(memo) for memo in candidate.memos],
        "memoCount": candidate.memo_count,
        "relationCount": candidate.relation_count,
        "createdAt": service.created_at,
        "updatedAt": service.updated_at,
        "searchHighlights": search_highlights(candidate, query),
        "relevanceScore": calculate_relevance_score(candidate, query, now),
    }


def search_catalog(
    session: Session,
    raw_query: Optional[str],
    category_id: Optional[str] = None,
    sort: Optional[str] = None,
    synonyms: Mapping[str, Sequence[str]] = DEFAULT_SYNONYMS,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Run a full search and build the response payload.

    Args:
        session: Database session
        raw_query: Untrimmed ``q`` parameter
        category_id: Optional category restriction
        sort: Sort mode, echoed back unchanged (None means "relevance")
        synonyms: Synonym table for alternative search terms
        now: Reference time for recency scoring

    Returns:
        Dict with data, count, query, sort, and categoryFilter/suggestions
        when applicable

    Raises:
        ValidationError: MISSING_QUERY or EMPTY_QUERY
    """
    query = validate_query(raw_query)
    if sort is None:
        sort = DEFAULT_SORT
    now = now or datetime.now(timezone.utc)

    candidates = match_services(session, query, category_id=category_id)
    ranked = sort_candidates(candidates, sort, query, now)

    result: Dict[str, Any] = {
        "data": [candidate_to_dict(c, query, now) for c in ranked],
        "count": len(ranked),
        "query": query,
        "sort": sort,
    }
    if category_id:
        result["categoryFilter"] = category_id
    if not ranked:
        result["suggestions"] = build_suggestions(session, query, synonyms)

    logger.info(f"Search '{query}' (sort={sort}, category={category_id}): {len(ranked)} results")
    return result
