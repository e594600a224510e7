"""Authentication dependencies for FastAPI routes.

Protected routes chain these in order: bearer authentication, then (for admin
routes) the live-record admin check. Each one either returns its value or
raises an ``AppError`` that ends the chain.
"""

from fastapi import Depends, Request
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from mkcode.database import get_db
from mkcode.services.admin import RequestContext
from mkcode.services.container import Services
from mkcode.services.guard import AdminPrincipal, Principal, bearer_token


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_principal(request: Request, services: Services = Depends(get_services)) -> Principal:
    """Resolve the caller from the Authorization header. Raises 401 if missing or invalid."""
    token = bearer_token(request.headers.get("Authorization"))
    return services.guard.authenticate(token)


def require_admin(
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> AdminPrincipal:
    """Require a token with the admin role whose account is still an active admin."""
    return services.guard.require_admin(principal, db)


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=get_remote_address(request),
        user_agent=request.headers.get("User-Agent"),
    )
