"""
Supabase access for the production task engine.

Tables touched: production_tasks, production_task_extras, products,
orders, stock and stock_movements.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)

# Tables the engine cannot run without
REQUIRED_TABLES = ("production_tasks", "products", "stock", "stock_movements")


class DatabaseConnectionError(Exception):
    """Supabase could not be reached at startup."""


@lru_cache()
def get_supabase_client() -> Client:
    """
    Cached Supabase client; get_supabase_client.cache_clear() reconnects.

    Raises:
        DatabaseConnectionError: Client creation or the first query failed
    """
    try:
        logger.info("connecting_to_supabase", url=settings.supabase_url[:30] + "...")

        client = create_client(settings.supabase_url, settings.supabase_key)
        client.table("production_tasks").select("id").limit(1).execute()

        logger.info("supabase_connected")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseConnectionError(f"Failed to connect to Supabase: {e}") from e


def check_connection() -> dict:
    """
    Health probe for /health and startup.

    Counts the production queue and confirms every required table
    answers a select.
    """
    try:
        client = get_supabase_client()

        tasks = client.table("production_tasks").select("id", count="exact").execute()
        pending = (
            client.table("production_tasks")
            .select("id", count="exact")
            .eq("status", "pending")
            .execute()
        )
        for table in REQUIRED_TABLES[1:]:
            client.table(table).select("id").limit(1).execute()

        return {
            "status": "healthy",
            "tasks_count": tasks.count,
            "pending_count": pending.count,
            "tables": list(REQUIRED_TABLES),
        }

    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e)
        }
