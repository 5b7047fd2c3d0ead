"""
FastAPI dependencies for database sessions, caller identity and services.
"""
from typing import Callable, Optional
import uuid

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .config import settings
from .database import SessionLocal, get_db
from .models.user import User
from .services.aggregator import HistoryAggregator
from .services.detail import DeviceDetailResolver
from .services.recorder import InteractionRecorder
from .services.registry import DeviceRegistry
from .services.scope import DirectoryScopeProvider, ScopeProvider, VisibilityScope


def get_session_factory() -> Callable[[], Session]:
    """Session factory for work that needs sessions of its own (worker threads)."""
    return SessionLocal


async def get_current_caller(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db)
) -> User:
    """
    Get the calling user.
    
    Tokens are verified by the gateway in front of this service, which forwards
    the authenticated user id in the ``X-User-Id`` header.
    
    Raises:
        HTTPException: 401 if the header is missing, malformed or unknown
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not identify caller",
    )
    
    if not x_user_id:
        raise credentials_exception
    
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise credentials_exception
    
    user = db.query(User).filter(User.id == user_id, User.archived.is_(False)).first()
    
    if user is None:
        raise credentials_exception
    
    return user


def get_scope_provider(db: Session = Depends(get_db)) -> ScopeProvider:
    return DirectoryScopeProvider(db)


def get_visibility_scope(
    caller: User = Depends(get_current_caller),
    provider: ScopeProvider = Depends(get_scope_provider),
) -> VisibilityScope:
    """Domains and users the caller may see."""
    return provider.scope_for(caller)


def get_registry(db: Session = Depends(get_db)) -> DeviceRegistry:
    return DeviceRegistry(db, settings.DEVICE_LIMIT)


def get_recorder(
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_registry),
) -> InteractionRecorder:
    return InteractionRecorder(db, registry)


def get_aggregator(db: Session = Depends(get_db)) -> HistoryAggregator:
    return HistoryAggregator(db, default_page_limit=settings.DEFAULT_PAGE_LIMIT)


def get_detail_resolver(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> DeviceDetailResolver:
    return DeviceDetailResolver(session_factory, timeout_seconds=settings.DETAIL_QUERY_TIMEOUT_SECONDS)
