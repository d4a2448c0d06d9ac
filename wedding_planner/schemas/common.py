from __future__ import annotations

from pydantic import BaseModel


class PaginationMeta(BaseModel):
    limit: int
    offset: int
    total: int


class BaseReadModel(BaseModel):
    model_config = {"from_attributes": True}
