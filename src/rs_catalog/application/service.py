"""CatalogApplicationService - product listing, feature flags, menu ordering."""
import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings, settings
from src.rs_catalog.application.schemas import (
    PRODUCT_SEARCH_FIELDS,
    PRODUCT_SORTABLE_FIELDS,
    FlagToggleResponse,
    PositionsUpdatedResponse,
    ProductPageResponse,
    ProductQueryParams,
    ProductResponse,
)
from src.rs_catalog.infrastructure.persistence import (
    COLLECTION,
    DAY_SPECIAL_FLAG,
    HIGHLIGHT_FLAG,
    document_to_product,
)
from src.rs_common.errors import DocumentNotFoundError, ProductNotFoundError
from src.rs_query.compiler import CATALOG_DEFAULT_SORT, compile_query
from src.rs_query.pagination import PaginationExecutor
from src.rs_store.domain.repository import DocumentRepositoryProtocol
from src.rs_store.infrastructure.persistence import DocumentRepository

logger = logging.getLogger(__name__)


class CatalogApplicationService:
    def __init__(self, store: DocumentRepositoryProtocol, config: Settings = settings) -> None:
        self._store = store
        self._config = config
        self._pager = PaginationExecutor(
            store, config.OFFSET_WINDOW_MAX, config.SEARCH_SCAN_MAX
        )

    @classmethod
    def for_tenant(cls, db: AsyncSession, tenant_id: str) -> "CatalogApplicationService":
        return cls(DocumentRepository(db, tenant_id, COLLECTION))

    async def find_products(self, params: ProductQueryParams) -> ProductPageResponse:
        query = compile_query(
            params.to_query_spec(),
            CATALOG_DEFAULT_SORT,
            search_fields=PRODUCT_SEARCH_FIELDS,
            sortable_fields=PRODUCT_SORTABLE_FIELDS,
        )
        page = await self._pager.execute_offset(query)
        symbol = self._config.CURRENCY_SYMBOL
        return ProductPageResponse(
            items=[ProductResponse.from_domain(document_to_product(d), symbol) for d in page.items],
            total=page.total,
            total_pages=page.total_pages,
            current_page=page.current_page,
            limit=page.limit,
            has_next=page.has_next,
            has_prev=page.has_prev,
        )

    async def _toggle(self, product_id: str, flag: str) -> FlagToggleResponse:
        try:
            value = await self._store.toggle_flag(product_id, flag)
        except DocumentNotFoundError:
            raise ProductNotFoundError(product_id) from None
        logger.info("Product %s %s -> %s", product_id, flag, value)
        return FlagToggleResponse(product_id=product_id, flag=flag, value=value)

    async def toggle_highlight(self, product_id: str) -> FlagToggleResponse:
        return await self._toggle(product_id, HIGHLIGHT_FLAG)

    async def toggle_day_special(self, product_id: str) -> FlagToggleResponse:
        return await self._toggle(product_id, DAY_SPECIAL_FLAG)

    async def update_positions(
        self, updates: Sequence[tuple[str, int]]
    ) -> PositionsUpdatedResponse:
        """Reorder the menu in one batch; an unknown id aborts the whole batch."""
        try:
            await self._store.batch_update(
                [(product_id, {"position": position}) for product_id, position in updates]
            )
        except DocumentNotFoundError as exc:
            raise ProductNotFoundError(exc.doc_id) from None
        logger.info("Reordered %d products", len(updates))
        return PositionsUpdatedResponse(updated=len(updates))
