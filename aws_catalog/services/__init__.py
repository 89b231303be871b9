"""
Services Package

Search ranking and comparison/export logic for the AWS Service Catalog.

Exports:
    - DataType, encode_value, decode_value: Typed attribute value codec
    - list_attributes, create_attribute, set_attribute_value: Attribute store
    - build_comparison, ComparisonMatrix: Comparison matrix builder
    - render_csv, render_pdf, render_export: Export renderers
    - search_catalog, calculate_relevance_score: Search and ranking
    - generate_alternative_search_terms, DEFAULT_SYNONYMS: Empty-result suggestions
    - list_categories, reorder_categories, delete_category: Category ordering
"""
from aws_catalog.services.attribute_codec import (
    DataType,
    decode_value,
    encode_value,
)
from aws_catalog.services.attributes import (
    create_attribute,
    list_attributes,
    set_attribute_value,
)
from aws_catalog.services.comparison import (
    MAX_COMPARISON_SERVICES,
    ComparisonMatrix,
    build_comparison,
)
from aws_catalog.services.export import (
    ExportFormat,
    parse_export_format,
    render_csv,
    render_export,
    render_pdf,
)
from aws_catalog.services.suggestions import (
    DEFAULT_SYNONYMS,
    generate_alternative_search_terms,
)
from aws_catalog.services.search import (
    calculate_relevance_score,
    search_catalog,
)
from aws_catalog.services.categories import (
    delete_category,
    list_categories,
    reorder_categories,
)

__all__ = [
    # Codec
    "DataType",
    "decode_value",
    "encode_value",
    # Attributes
    "create_attribute",
    "list_attributes",
    "set_attribute_value",
    # Comparison
    "MAX_COMPARISON_SERVICES",
    "ComparisonMatrix",
    "build_comparison",
    # Export
    "ExportFormat",
    "parse_export_format",
    "render_csv",
    "render_export",
    "render_pdf",
    # Search
    "DEFAULT_SYNONYMS",
    "generate_alternative_search_terms",
    "calculate_relevance_score",
    "search_catalog",
    # Categories
    "delete_category",
    "list_categories",
    "reorder_categories",
]
