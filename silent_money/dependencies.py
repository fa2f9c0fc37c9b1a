"""
FastAPI dependency injection for database, authentication, and services.

Provides injectable dependencies for:
- Database connections (asyncpg pool)
- The process-wide change feed and object store
- User authentication (JWT token validation)
- Repository instances
- Service instances

Route guards based on permissions live in silent_money.middleware.rbac.
"""

import json
import asyncpg
import structlog
from typing import Optional
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from silent_money.config import get_settings, Settings
from silent_money.exceptions import AuthenticationError, SilentMoneyError
from silent_money.models.auth import CurrentUser
from silent_money.repositories.admin_log_repo import AdminLogRepository
from silent_money.repositories.audit_request_repo import AuditRequestRepository
from silent_money.repositories.category_repo import CategoryRepository
from silent_money.repositories.franchise_repo import FranchiseRepository
from silent_money.repositories.idea_repo import IdeaRepository
from silent_money.repositories.library_repo import LibraryRepository
from silent_money.repositories.notification_repo import NotificationRepository
from silent_money.repositories.profile_repo import ProfileRepository
from silent_money.repositories.review_repo import ReviewRepository
from silent_money.repositories.storage_queue_repo import StorageQueueRepository
from silent_money.services.activity import ActivityRecorder
from silent_money.services.admin_service import AdminService
from silent_money.services.audit_request_service import AuditRequestService
from silent_money.services.auth_service import AuthService
from silent_money.services.catalog_service import FranchiseService, IdeaService
from silent_money.services.category_service import CategoryService
from silent_money.services.contact_service import ContactService
from silent_money.services.insights_service import InsightsService
from silent_money.services.library_service import LibraryService
from silent_money.services.notification_service import NotificationService
from silent_money.services.profile_service import ProfileService
from silent_money.services.realtime import ChangeFeed
from silent_money.services.review_service import ReviewService
from silent_money.services.storage_service import StorageService
from shared.metrics import PlatformMetrics, get_platform_metrics
from shared.storage import ObjectStore

logger = structlog.get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================

_pool: Optional[asyncpg.Pool] = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog"
    )


async def init_db_pool() -> asyncpg.Pool:
    """
    Initialize database connection pool.

    Should be called during application startup.

    Returns:
        asyncpg connection pool
    """
    global _pool

    if _pool is not None:
        return _pool

    settings = get_settings()

    try:
        _pool = await asyncpg.create_pool(
            settings.database_url_sync,
            min_size=max(1, settings.database_pool_size // 2),
            max_size=settings.database_pool_size + settings.database_max_overflow,
            command_timeout=settings.database_pool_timeout,
            init=_init_connection
        )

        logger.info(
            "database_pool_initialized",
            pool_size=settings.database_pool_size,
            database=settings.database_url.split("@")[-1]
        )

        return _pool

    except Exception as e:
        logger.error("database_pool_init_failed", error=str(e))
        raise


async def close_db_pool():
    """
    Close database connection pool.

    Should be called during application shutdown.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        logger.info("database_pool_closed")
        _pool = None


def get_db_pool() -> asyncpg.Pool:
    """
    Get database connection pool.

    Raises:
        RuntimeError: If pool is not initialized
    """
    if _pool is None:
        logger.error("database_pool_not_initialized")
        raise RuntimeError(
            "Database pool not initialized. Call init_db_pool() during startup."
        )
    return _pool


# ============================================================================
# PROCESS-WIDE COMPONENTS
# ============================================================================

_change_feed: Optional[ChangeFeed] = None
_object_store: Optional[ObjectStore] = None


def get_change_feed() -> ChangeFeed:
    """The feed shared by every request and SSE stream in this process."""
    global _change_feed

    if _change_feed is None:
        _change_feed = ChangeFeed(queue_size=get_settings().realtime_queue_size)
    return _change_feed


def get_object_store() -> ObjectStore:
    global _object_store

    if _object_store is None:
        settings = get_settings()
        _object_store = ObjectStore(
            endpoint_url=settings.storage_endpoint_url,
            access_key=settings.storage_access_key,
            secret_key=settings.storage_secret_key,
            region=settings.storage_region,
            public_base_url=settings.storage_public_url,
        )
    return _object_store


def get_settings_dependency() -> Settings:
    return get_settings()


def get_metrics() -> PlatformMetrics:
    return get_platform_metrics()


# ============================================================================
# REPOSITORY DEPENDENCIES
# ============================================================================


def get_profile_repository() -> ProfileRepository:
    return ProfileRepository(get_db_pool())


def get_category_repository() -> CategoryRepository:
    return CategoryRepository(get_db_pool())


def get_idea_repository() -> IdeaRepository:
    return IdeaRepository(get_db_pool())


def get_franchise_repository() -> FranchiseRepository:
    return FranchiseRepository(get_db_pool())


def get_review_repository() -> ReviewRepository:
    return ReviewRepository(get_db_pool())


def get_library_repository() -> LibraryRepository:
    return LibraryRepository(get_db_pool())


def get_audit_request_repository() -> AuditRequestRepository:
    return AuditRequestRepository(get_db_pool())


def get_notification_repository() -> NotificationRepository:
    return NotificationRepository(get_db_pool())


def get_admin_log_repository() -> AdminLogRepository:
    return AdminLogRepository(get_db_pool())


def get_storage_queue_repository() -> StorageQueueRepository:
    return StorageQueueRepository(get_db_pool())


# ============================================================================
# SERVICE DEPENDENCIES
# ============================================================================


def get_contact_service() -> ContactService:
    return ContactService(get_settings(), get_metrics())


def get_auth_service() -> AuthService:
    """
    Get authentication service instance.

    Returns:
        AuthService with a profile repository and the contact relay
    """
    return AuthService(get_profile_repository(), get_settings(), get_contact_service())


def get_activity_recorder() -> ActivityRecorder:
    return ActivityRecorder(get_admin_log_repository(), get_metrics())


def get_notification_service() -> NotificationService:
    return NotificationService(
        get_notification_repository(),
        get_change_feed(),
        inbox_size=get_settings().notifications_inbox_size,
        metrics=get_metrics(),
    )


def get_storage_service() -> StorageService:
    return StorageService(
        get_object_store(),
        get_storage_queue_repository(),
        get_settings(),
        get_metrics(),
    )


def get_idea_service() -> IdeaService:
    return IdeaService(
        get_idea_repository(),
        get_library_repository(),
        get_change_feed(),
        storage=get_storage_service(),
        metrics=get_metrics(),
    )


def get_franchise_service() -> FranchiseService:
    return FranchiseService(
        get_franchise_repository(),
        get_library_repository(),
        get_change_feed(),
        storage=get_storage_service(),
        metrics=get_metrics(),
    )


def get_review_service() -> ReviewService:
    return ReviewService(
        get_review_repository(),
        get_idea_repository(),
        get_notification_service(),
        get_metrics(),
    )


def get_library_service() -> LibraryService:
    return LibraryService(
        get_library_repository(),
        get_idea_repository(),
        get_franchise_repository(),
        max_compare=get_settings().comparison_max_assets,
        metrics=get_metrics(),
    )


def get_insights_service() -> InsightsService:
    return InsightsService(
        get_idea_repository(),
        get_franchise_repository(),
        limit=get_settings().search_result_limit,
    )


def get_category_service() -> CategoryService:
    return CategoryService(get_category_repository(), get_activity_recorder())


def get_profile_service() -> ProfileService:
    return ProfileService(
        get_profile_repository(),
        get_idea_repository(),
        get_franchise_repository(),
    )


def get_audit_request_service() -> AuditRequestService:
    return AuditRequestService(
        get_audit_request_repository(),
        get_notification_service(),
        get_activity_recorder(),
        get_change_feed(),
    )


def get_admin_service() -> AdminService:
    return AdminService(
        idea_repo=get_idea_repository(),
        franchise_repo=get_franchise_repository(),
        profile_repo=get_profile_repository(),
        audit_repo=get_audit_request_repository(),
        admin_log_repo=get_admin_log_repository(),
        notifications=get_notification_service(),
        activity=get_activity_recorder(),
        storage=get_storage_service(),
        settings=get_settings(),
    )


# ============================================================================
# AUTHENTICATION DEPENDENCIES
# ============================================================================


async def get_token_from_header(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    Extract JWT token from Authorization header.

    Raises:
        HTTPException: If token is missing or invalid format
    """
    if not credentials:
        logger.warning("auth_missing_credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if credentials.scheme.lower() != "bearer":
        logger.warning("auth_invalid_scheme", scheme=credentials.scheme)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication scheme. Expected Bearer token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_token_from_header),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentUser:
    """
    Get current authenticated user from JWT token.

    A suspended account surfaces as 403 through the domain exception
    handler; every other failure is a 401.

    Example:
        @router.get("/me")
        async def me(user: CurrentUser = Depends(get_current_user)):
            return {"email": user.email}
    """
    try:
        current_user = await auth_service.get_current_user(token)
    except AuthenticationError as e:
        logger.warning("auth_invalid_token", reason=e.detail)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.detail,
            headers={"WWW-Authenticate": "Bearer"}
        )

    logger.debug(
        "user_authenticated",
        user_id=str(current_user.id),
        role=current_user.role.value
    )
    return current_user


async def get_current_active_user(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    """
    Get current user, refusing suspended accounts.

    Raises:
        HTTPException: If the account is banned
    """
    if current_user.is_banned:
        logger.warning("user_banned_access", user_id=str(current_user.id))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account suspended"
        )

    return current_user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[CurrentUser]:
    """
    Get current user if authenticated, None otherwise.

    Does not raise for missing or invalid tokens; public pages use it to
    decorate responses for signed-in visitors.
    """
    if not credentials:
        return None

    try:
        current_user = await auth_service.get_current_user(credentials.credentials)
    except SilentMoneyError as e:
        logger.debug("optional_auth_failed", error=str(e))
        return None
    return None if current_user.is_banned else current_user


# ============================================================================
# UTILITY DEPENDENCIES
# ============================================================================


class PaginationParams:
    """Limit/offset query parameters shared by list endpoints."""

    def __init__(
        self,
        limit: int = Query(20, ge=1, le=100, description="Page size"),
        offset: int = Query(0, ge=0, description="Rows to skip"),
    ):
        self.limit = limit
        self.offset = offset


def get_client_ip(request: Request) -> str:
    """
    Get client IP address from request.

    Checks X-Forwarded-For header first (for proxied requests).
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return request.client.host if request.client else "unknown"
