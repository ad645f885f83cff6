# src/rs_catalog/infrastructure/persistence.py
"""Product documents <-> Product domain objects."""
from src.rs_catalog.domain.models import Product, ProductChoice, ProductOption
from src.rs_common.datetime_utils import parse_iso
from src.rs_store.domain.models import Document

COLLECTION = "products"

HIGHLIGHT_FLAG = "isHighlighted"
DAY_SPECIAL_FLAG = "isDaySpecial"


def _doc_to_option(doc: Document) -> ProductOption:
    return ProductOption(
        id=doc["id"],
        name=doc["name"],
        choices=tuple(
            ProductChoice(id=c["id"], name=c["name"], price=int(c.get("price", 0)))
            for c in doc.get("choices", [])
        ),
        required=bool(doc.get("required", False)),
        max_selections=doc.get("maxSelections"),
    )


def document_to_product(doc: Document) -> Product:
    return Product(
        id=doc["id"],
        name=doc["name"],
        description=doc.get("description", ""),
        category=doc.get("category", ""),
        price=int(doc.get("price", 0)),
        available=bool(doc.get("available", True)),
        position=int(doc.get("position", 0)),
        options=[_doc_to_option(o) for o in doc.get("options", [])],
        is_highlighted=bool(doc.get(HIGHLIGHT_FLAG, False)),
        is_day_special=bool(doc.get(DAY_SPECIAL_FLAG, False)),
        image_url=doc.get("imageUrl"),
        created_at=parse_iso(doc.get("createdAt")),
        updated_at=parse_iso(doc.get("updatedAt")),
    )
