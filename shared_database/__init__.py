from shared_database.brands import BRAND_CONFIGS, BrandConfig, BrandId, get_brand_config, validate_brand_id
from shared_database.client import BrandAwareClient, create_brand_client
from shared_database.conversations.service import ConversationOperations
from shared_database.core.database import Database, get_database, reset_database, set_database
from shared_database.core.errors import (
    ConfigurationError,
    ConstraintViolationError,
    DatabaseOperationError,
    InvalidTransitionError,
    RecordNotFoundError,
    SharedDatabaseError,
    UnknownBrandError,
)
from shared_database.customers.service import CustomerOperations
from shared_database.factory import DatabaseClient, create_database_client
from shared_database.platform.security.context import BrandContext

__all__ = [
    "BRAND_CONFIGS",
    "BrandAwareClient",
    "BrandConfig",
    "BrandContext",
    "BrandId",
    "ConfigurationError",
    "ConstraintViolationError",
    "ConversationOperations",
    "CustomerOperations",
    "Database",
    "DatabaseClient",
    "DatabaseOperationError",
    "InvalidTransitionError",
    "RecordNotFoundError",
    "SharedDatabaseError",
    "UnknownBrandError",
    "create_brand_client",
    "create_database_client",
    "get_brand_config",
    "get_database",
    "reset_database",
    "set_database",
    "validate_brand_id",
]
