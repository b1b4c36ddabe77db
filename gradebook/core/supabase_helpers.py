"""Helper functions for executing Supabase queries"""

from typing import Any, Dict, List

import httpx
from postgrest.exceptions import APIError

from gradebook.core.exceptions import StoreUnavailableError
from gradebook.core.logging_config import get_logger

logger = get_logger(__name__)


def run_query(query, operation: str) -> List[Dict[str, Any]]:
    """Execute a PostgREST query builder and return its rows.

    Transport failures and PostgREST errors are reported as
    StoreUnavailableError; no retry is attempted here.

    Args:
        query: A Supabase/PostgREST request builder (anything with ``execute()``)
        operation: Short description used in logs and error messages

    Returns:
        The response rows (an empty list when the query matched nothing)
    """
    try:
        response = query.execute()
    except (httpx.HTTPError, APIError) as e:
        logger.error(f"Store query failed during '{operation}': {e}")
        raise StoreUnavailableError(
            f"Data store unavailable while trying to {operation}",
            error_code="STORE_UNAVAILABLE",
            details={"operation": operation, "reason": str(e)}
        ) from e
    return response.data or []
