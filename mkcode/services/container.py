"""Service wiring.

Every service is built once per application from explicit settings and handed
to the routes through ``app.state.services``.
"""

from dataclasses import dataclass

from mkcode.clock import Clock
from mkcode.config import Settings
from mkcode.rate_limit import RateLimiter
from mkcode.services.admin import AdminService
from mkcode.services.audit import AuditLog
from mkcode.services.credentials import CredentialStore
from mkcode.services.guard import AuthorizationGuard
from mkcode.services.mailer import Mailer
from mkcode.services.passwords import PasswordHasher
from mkcode.services.reset_codes import ResetCodeManager
from mkcode.services.tokens import TokenIssuer


@dataclass
class Services:
    clock: Clock
    mailer: Mailer
    tokens: TokenIssuer
    codes: ResetCodeManager
    credentials: CredentialStore
    guard: AuthorizationGuard
    audit: AuditLog
    admin: AdminService
    rate_limiter: RateLimiter


def build_services(settings: Settings, clock: Clock | None = None, mailer: Mailer | None = None) -> Services:
    clock = clock or Clock()
    mailer = mailer or Mailer(settings)
    hasher = PasswordHasher(settings.bcrypt_rounds)
    tokens = TokenIssuer(settings, clock)
    codes = ResetCodeManager(settings, clock, hasher, mailer)
    credentials = CredentialStore(clock, hasher, tokens, codes)
    audit = AuditLog(clock)
    return Services(
        clock=clock,
        mailer=mailer,
        tokens=tokens,
        codes=codes,
        credentials=credentials,
        guard=AuthorizationGuard(tokens),
        audit=audit,
        admin=AdminService(clock, credentials, audit),
        rate_limiter=RateLimiter(settings.RATE_LIMIT_STORAGE_URI, enabled=settings.RATE_LIMIT_ENABLED),
    )
