"""
Product service for production lookups.

Products are maintained by the catalog; this service only resolves
them by id or by the article code printed on shift reports.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.product import ProductSummary
from exceptions import (
    AppError,
    ProductNotFoundError,
    ArticleNotFoundError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)


def normalize_article(article: str) -> str:
    """Articles compare case-insensitively, ignoring surrounding whitespace."""
    return (article or "").strip().upper()


class ProductService:
    """
    Product read operations.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"

    def _to_summary(self, row: dict) -> ProductSummary:
        category = row.get("categories")
        return ProductSummary(
            id=row["id"],
            name=row["name"],
            article=row.get("article"),
            category_name=category.get("name") if isinstance(category, dict) else None,
        )

    # ===================
    # READ OPERATIONS
    # ===================

    def get_by_id(self, product_id: str) -> ProductSummary:
        """
        Get a product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist
        """
        logger.debug("getting_product", product_id=product_id)

        try:
            result = (
                self.db.table(self.table)
                .select("id, name, article, categories(name)")
                .eq("id", product_id)
                .execute()
            )

            if not result.data:
                raise ProductNotFoundError(product_id)

            return self._to_summary(result.data[0])

        except AppError:
            raise
        except Exception as e:
            logger.error("get_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

    def find_by_article(self, article: str) -> Optional[ProductSummary]:
        """
        Resolve an article code to a product.

        Returns:
            ProductSummary or None when no product carries the article
        """
        normalized = normalize_article(article)
        if not normalized:
            return None

        try:
            result = (
                self.db.table(self.table)
                .select("id, name, article, categories(name)")
                .ilike("article", normalized)
                .execute()
            )
        except Exception as e:
            logger.error("find_product_by_article_failed", article=normalized, error=str(e))
            raise DatabaseError("select", str(e))

        # ilike treats % and _ as wildcards, confirm the exact match
        for row in result.data or []:
            if normalize_article(row.get("article")) == normalized:
                return self._to_summary(row)
        return None

    def get_by_article(self, article: str) -> ProductSummary:
        """
        Resolve an article code to a product.

        Raises:
            ArticleNotFoundError: If no product carries the article
        """
        product = self.find_by_article(article)
        if product is None:
            logger.warning("article_not_found", article=article)
            raise ArticleNotFoundError(normalize_article(article))
        return product


# Singleton instance
_product_service: Optional[ProductService] = None


def get_product_service() -> ProductService:
    """Get or create ProductService instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
