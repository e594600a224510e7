"""Tests for bearer tokens and principal resolution."""

from datetime import timedelta

import pytest
from jose import jwt

from mkcode.errors import ExpiredToken, Forbidden, InvalidToken, Unauthorized, ValidationError
from mkcode.models.user import Role
from mkcode.services.guard import AdminPrincipal, AuthorizationGuard, UserPrincipal, bearer_token
from mkcode.services.tokens import TokenIssuer


@pytest.fixture(name="issuer")
def issuer_fixture(settings, clock) -> TokenIssuer:
    return TokenIssuer(settings, clock)


class TestTokenIssuer:
    """Tests for signing and verifying tokens."""

    def test_claims_survive_verification(self, issuer: TokenIssuer, clock):
        token = issuer.issue(42, "someone@example.com", "admin")
        claims = issuer.verify(token)
        assert claims.user_id == 42
        assert claims.email == "someone@example.com"
        assert claims.role is Role.ADMIN
        assert claims.expires_at == clock.now() + timedelta(days=7)

    def test_expiry_uses_injected_clock(self, issuer: TokenIssuer, clock):
        token = issuer.issue(1, "a@example.com", "user", ttl=timedelta(hours=1))
        clock.advance(minutes=59)
        issuer.verify(token)
        clock.advance(minutes=1)
        with pytest.raises(ExpiredToken):
            issuer.verify(token)

    def test_tampered_token(self, issuer: TokenIssuer):
        token = issuer.issue(1, "a@example.com", "user")
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(InvalidToken):
            issuer.verify(tampered)

    def test_wrong_secret(self, issuer: TokenIssuer, settings, clock):
        settings.JWT_SECRET_KEY = "another-secret"
        other = TokenIssuer(settings, clock)
        with pytest.raises(InvalidToken):
            issuer.verify(other.issue(1, "a@example.com", "user"))

    def test_missing_claims(self, issuer: TokenIssuer, settings):
        token = jwt.encode({"sub": "1", "exp": 4102444800}, settings.JWT_SECRET_KEY, algorithm="HS256")
        with pytest.raises(InvalidToken):
            issuer.verify(token)

    def test_unknown_role(self, issuer: TokenIssuer, settings):
        token = jwt.encode(
            {"sub": "1", "email": "a@example.com", "role": "root", "exp": 4102444800},
            settings.JWT_SECRET_KEY,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            issuer.verify(token)

    def test_token_errors_are_unauthorized(self):
        assert issubclass(InvalidToken, Unauthorized)
        assert issubclass(ExpiredToken, Unauthorized)
        assert ExpiredToken.status_code == 401


class TestAuthorizationGuard:
    """Tests for turning tokens into principals."""

    def test_user_principal(self, issuer: TokenIssuer):
        guard = AuthorizationGuard(issuer)
        principal = guard.authenticate(issuer.issue(5, "u@example.com", "user"))
        assert principal == UserPrincipal(user_id=5, email="u@example.com")

    def test_admin_principal(self, issuer: TokenIssuer):
        guard = AuthorizationGuard(issuer)
        principal = guard.authenticate(issuer.issue(6, "a@example.com", "admin"))
        assert isinstance(principal, AdminPrincipal)
        assert principal.role is Role.ADMIN

    def test_missing_token(self, issuer: TokenIssuer):
        with pytest.raises(Unauthorized) as exc:
            AuthorizationGuard(issuer).authenticate(None)
        assert exc.value.detail == "No token, authorization denied"

    def test_user_principal_is_not_admin(self, issuer: TokenIssuer, db_session):
        guard = AuthorizationGuard(issuer)
        with pytest.raises(Forbidden):
            guard.require_admin(UserPrincipal(user_id=1, email="u@example.com"), db_session)

    def test_ensure_not_self(self):
        admin = AdminPrincipal(user_id=3, email="a@example.com")
        AuthorizationGuard.ensure_not_self(admin, [1, 2], "no")
        with pytest.raises(ValidationError):
            AuthorizationGuard.ensure_not_self(admin, 3, "no")
        with pytest.raises(ValidationError):
            AuthorizationGuard.ensure_not_self(admin, [1, 3], "no")


class TestBearerHeader:
    """Tests for Authorization header parsing."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc", "abc"),
            ("Basic abc", None),
            ("Bearer ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse(self, header, expected):
        assert bearer_token(header) == expected
