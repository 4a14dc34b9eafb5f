"""
Translation of Django database exceptions into the catalog taxonomy.
"""

import functools
import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError, InterfaceError, OperationalError

from catalog.exceptions import (
    CatalogError,
    DatabaseNetworkError,
    GeneralDatabaseError,
    MissingDocumentError,
)

logger = logging.getLogger(__name__)


def translate_database_errors(func):
    """
    Re-raise database failures from ``func`` as catalog errors.

    - Missing expected row -> MissingDocumentError
    - Connection level failure -> DatabaseNetworkError
    - Any other database failure -> GeneralDatabaseError

    Catalog errors (including cancellation) pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CatalogError:
            raise
        except ObjectDoesNotExist as e:
            logger.warning(f"{func.__name__}: expected record missing: {e}")
            raise MissingDocumentError(f"in {func.__name__}: {e}") from e
        except (OperationalError, InterfaceError) as e:
            logger.warning(f"{func.__name__}: database unreachable: {e}")
            raise DatabaseNetworkError(f"in {func.__name__}: {e}") from e
        except DatabaseError as e:
            logger.error(f"{func.__name__}: database error: {e}")
            raise GeneralDatabaseError(f"in {func.__name__}: {e}") from e

    return wrapper
