"""Catalog domain model."""
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ProductChoice:
    id: str
    name: str
    price: int  # surcharge in cents


@dataclass(frozen=True)
class ProductOption:
    id: str
    name: str
    choices: tuple[ProductChoice, ...]
    required: bool = False
    max_selections: int | None = None


@dataclass
class Product:
    id: str
    name: str
    description: str
    category: str
    price: int
    available: bool = True
    position: int = 0
    options: list[ProductOption] = field(default_factory=list)
    is_highlighted: bool = False
    is_day_special: bool = False
    image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
