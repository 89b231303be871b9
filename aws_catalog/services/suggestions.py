"""
Fallback suggestions for searches without results.
"""
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence

from sqlalchemy.orm import Session

from aws_catalog.database.crud import get_memo_counts, get_popular_services, get_relation_counts
from aws_catalog.database.models import Service

NO_RESULTS_MESSAGE = "検索結果が見つかりませんでした。以下の人気サービスをご確認ください。"
POPULAR_SERVICE_LIMIT = 5
ALTERNATIVE_TERM_LIMIT = 5

# Common AWS abbreviations and the terms people search for instead
DEFAULT_SYNONYMS: Mapping[str, Sequence[str]] = MappingProxyType({
    "ec2": ("elastic compute cloud", "compute", "virtual machine", "vm"),
    "s3": ("simple storage service", "storage", "bucket"),
    "rds": ("relational database service", "database", "db"),
    "lambda": ("serverless", "function", "compute"),
    "vpc": ("virtual private cloud", "network", "networking"),
    "iam": ("identity access management", "security", "permissions"),
    "cloudfront": ("cdn", "content delivery network"),
    "route53": ("dns", "domain name system"),
    "elb": ("elastic load balancer", "load balancer", "balancer"),
    "cloudwatch": ("monitoring", "logs", "metrics"),
})


def generate_alternative_search_terms(
    query: str,
    synonyms: Mapping[str, Sequence[str]] = DEFAULT_SYNONYMS,
    limit: int = ALTERNATIVE_TERM_LIMIT,
) -> List[str]:
    """
    Suggest other search terms for a query.

    Forward lookup: an abbreviation key yields its synonyms. Reverse lookup:
    when a synonym contains the query (or the query contains a synonym), the
    abbreviation and its other synonyms are suggested.

    Examples:
        >>> generate_alternative_search_terms("ec2")
        ['elastic compute cloud', 'compute', 'virtual machine', 'vm']
        >>> generate_alternative_search_terms("dns")
        ['route53', 'domain name system']
    """
    term = query.strip().lower()
    alternatives: List[str] = []

    alternatives.extend(synonyms.get(term, ()))

    for abbreviation, terms in synonyms.items():
        if any(t in term or term in t for t in terms):
            alternatives.append(abbreviation)
            alternatives.extend(t for t in terms if t != term)

    return list(dict.fromkeys(alternatives))[:limit]


def popular_service_to_dict(
    service: Service,
    memo_counts: Dict[str, int],
    relation_counts: Dict[str, int],
) -> dict:
    category = service.category
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "category": {"id": category.id, "name": category.name, "color": category.color},
        "memoCount": memo_counts[service.id],
        "relationCount": relation_counts[service.id],
    }


def build_suggestions(
    session: Session,
    query: str,
    synonyms: Mapping[str, Sequence[str]] = DEFAULT_SYNONYMS,
) -> dict:
    """
    Build the suggestions block of an empty search response.

    Returns:
        Dict with message, popularServices (most memos first) and
        alternativeSearchTerms
    """
    services = get_popular_services(session, limit=POPULAR_SERVICE_LIMIT)
    service_ids = [service.id for service in services]
    memo_counts = get_memo_counts(session, service_ids)
    relation_counts = get_relation_counts(session, service_ids)

    return {
        "message": NO_RESULTS_MESSAGE,
        "popularServices": [
            popular_service_to_dict(service, memo_counts, relation_counts)
            for service in services
        ],
        "alternativeSearchTerms": generate_alternative_search_terms(query, synonyms),
    }
