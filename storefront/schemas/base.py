"""
Shared schema building blocks: camelCase wire format and the response envelope
"""
from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    """Envelope every endpoint answers with"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class PaginationParams(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    
    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit
    
    def describe(self, total: int) -> Pagination:
        pages = (total + self.limit - 1) // self.limit
        return Pagination(page=self.page, limit=self.limit, total=total, pages=pages)
