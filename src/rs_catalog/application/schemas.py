# src/rs_catalog/application/schemas.py
from pydantic import BaseModel, Field, field_validator

from src.rs_catalog.domain.models import Product
from src.rs_common.cents import cents_to_display
from src.rs_common.enums import FilterOp, SortDirection
from src.rs_query.compiler import QuerySpec
from src.rs_store.domain.models import FieldFilter

PRODUCT_SORTABLE_FIELDS = ("position", "name", "price", "category", "createdAt")
PRODUCT_SEARCH_FIELDS = ("name", "description")


class ProductQueryParams(BaseModel):
    category: str | None = None
    available: bool | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: str | None = None
    sort_order: SortDirection | None = None
    search: str | None = Field(None, max_length=100)

    def to_query_spec(self) -> QuerySpec:
        filters: list[FieldFilter] = []
        if self.category:
            filters.append(FieldFilter("category", FilterOp.EQ, self.category))
        if self.available is not None:
            filters.append(FieldFilter("available", FilterOp.EQ, self.available))
        return QuerySpec(
            filters=filters,
            sort_field=self.sort_by,
            sort_direction=self.sort_order,
            page=self.page,
            limit=self.limit,
            search=self.search,
        )


class PositionUpdate(BaseModel):
    id: str = Field(min_length=1)
    position: int = Field(ge=0)


class UpdatePositionsRequest(BaseModel):
    updates: list[PositionUpdate] = Field(min_length=1, max_length=500)

    @field_validator("updates")
    @classmethod
    def unique_ids(cls, v: list[PositionUpdate]) -> list[PositionUpdate]:
        ids = [u.id for u in v]
        if len(set(ids)) != len(ids):
            raise ValueError("each product may appear only once")
        return v


class ProductChoiceOut(BaseModel):
    id: str
    name: str
    price: int


class ProductOptionOut(BaseModel):
    id: str
    name: str
    required: bool
    max_selections: int | None
    choices: list[ProductChoiceOut]


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    price: int
    price_display: str
    available: bool
    position: int
    options: list[ProductOptionOut]
    is_highlighted: bool
    is_day_special: bool
    image_url: str | None

    @classmethod
    def from_domain(cls, p: Product, currency_symbol: str = "R$") -> "ProductResponse":
        return cls(
            id=p.id,
            name=p.name,
            description=p.description,
            category=p.category,
            price=p.price,
            price_display=cents_to_display(p.price, currency_symbol),
            available=p.available,
            position=p.position,
            options=[
                ProductOptionOut(
                    id=o.id,
                    name=o.name,
                    required=o.required,
                    max_selections=o.max_selections,
                    choices=[ProductChoiceOut(id=c.id, name=c.name, price=c.price) for c in o.choices],
                )
                for o in p.options
            ],
            is_highlighted=p.is_highlighted,
            is_day_special=p.is_day_special,
            image_url=p.image_url,
        )


class ProductPageResponse(BaseModel):
    items: list[ProductResponse]
    total: int
    total_pages: int
    current_page: int
    limit: int
    has_next: bool
    has_prev: bool


class FlagToggleResponse(BaseModel):
    product_id: str
    flag: str
    value: bool


class PositionsUpdatedResponse(BaseModel):
    updated: int
