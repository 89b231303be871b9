"""
Request bodies for the JSON API.

Fields are typed loosely. Shape and value checks happen in the service layer,
which reports them with domain error codes (INVALID_SERVICE_IDS,
INVALID_DATA_TYPE, ...).
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AttributeCreate(RequestBody):
    """POST /comparison/attributes"""
    name: Any = None
    description: Optional[str] = None
    data_type: Any = Field(default=None, alias="dataType")


class AttributeValueSet(RequestBody):
    """POST /comparison/services/{serviceId}/attributes/{attributeId}"""
    value: Any = None

    @property
    def has_value(self) -> bool:
        # An explicit null is a value; a missing key is not
        return "value" in self.model_fields_set


class CompareRequest(RequestBody):
    """POST /comparison/compare"""
    service_ids: Any = Field(default=None, alias="serviceIds")
    attribute_ids: Any = Field(default=None, alias="attributeIds")


class ExportRequest(CompareRequest):
    """POST /comparison/export"""
    format: Any = None


class CategoryReorder(RequestBody):
    """PUT /categories/reorder"""
    category_orders: Any = Field(default=None, alias="categoryOrders")
