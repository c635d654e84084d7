"""
FastAPI dependencies for services, settings and the cron secret.

Services live on `app.state`, built once in the application lifespan.
Tests swap them through `app.dependency_overrides`.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from quote_tracker.config.settings import Settings
from quote_tracker.services.notifications import NotificationDispatcher
from quote_tracker.services.quotes import PricingEngine, QuoteService
from quote_tracker.utils.logging import audit_logger
from quote_tracker.utils.security import verify_bearer_secret


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_quote_service(request: Request) -> QuoteService:
    return request.app.state.quote_service


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_pricing_engine(request: Request) -> PricingEngine:
    return request.app.state.quote_service.pricing


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]
DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
PricingDep = Annotated[PricingEngine, Depends(get_pricing_engine)]


async def require_cron_secret(
    settings: SettingsDep,
    authorization: str | None = Header(None),
) -> None:
    """
    Check the scheduler's shared secret.
    
    Raises:
        HTTPException: 401 when the bearer secret is missing or wrong
    """
    if not verify_bearer_secret(authorization, settings.cron_secret.get_secret_value()):
        audit_logger.log_access_denied("cron_reminders", "invalid_cron_secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
