from datetime import timedelta

import pytest

from reachmai.exceptions import ExpiredTokenError, InvalidTokenError
from reachmai.services.auth import AuthService
from reachmai.services.tokens import (
    PASSWORD_RESET_TOKEN_TYPE,
    SESSION_TOKEN_TYPE,
    TokenService,
    issue_password_reset_token,
    issue_session_token,
    password_fingerprint,
)


class TestTokenService:
    def test_verify_returns_issued_claims(self, tokens):
        token = tokens.issue({"accountId": 7, "email": "a@example.com"}, timedelta(hours=1))
        claims = tokens.verify(token)
        assert claims["accountId"] == 7
        assert claims["email"] == "a@example.com"
        assert claims["exp"] > claims["iat"]

    def test_zero_ttl_is_already_expired(self, tokens):
        token = tokens.issue({"accountId": 1}, timedelta(0))
        with pytest.raises(ExpiredTokenError):
            tokens.verify(token)

    def test_past_expiry_is_expired(self, tokens):
        token = tokens.issue({"accountId": 1}, timedelta(minutes=-5))
        with pytest.raises(ExpiredTokenError) as exc_info:
            tokens.verify(token)
        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_expired_is_a_kind_of_invalid(self, tokens):
        token = tokens.issue({"accountId": 1}, timedelta(seconds=-1))
        with pytest.raises(InvalidTokenError):
            tokens.verify(token)

    def test_other_secret_is_rejected(self, tokens):
        token = TokenService("another-secret").issue({"accountId": 1}, timedelta(hours=1))
        with pytest.raises(InvalidTokenError) as exc_info:
            tokens.verify(token)
        assert exc_info.value.code == "INVALID_TOKEN"

    def test_tampered_token_is_rejected(self, tokens):
        token = tokens.issue({"accountId": 1}, timedelta(hours=1))
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(InvalidTokenError):
            tokens.verify(tampered)

    @pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
    def test_malformed_token_is_rejected(self, tokens, token):
        with pytest.raises(InvalidTokenError):
            tokens.verify(token)


class TestIssuedTokens:
    def test_session_token_claims(self, tokens, settings, admin_account):
        claims = tokens.verify(issue_session_token(tokens, admin_account, settings))
        assert claims["accountId"] == admin_account.id
        assert claims["email"] == "director@example.com"
        assert claims["tokenType"] == SESSION_TOKEN_TYPE

    def test_session_token_lifetime_follows_settings(self, tokens, settings, admin_account):
        claims = tokens.verify(issue_session_token(tokens, admin_account, settings))
        assert claims["exp"] - claims["iat"] == settings.session_token_expire_hours * 3600

    def test_reset_token_carries_password_fingerprint(self, db, tokens, settings, admin_account):
        claims = tokens.verify(issue_password_reset_token(tokens, admin_account, settings))
        assert claims["tokenType"] == PASSWORD_RESET_TOKEN_TYPE
        assert claims["pwd"] == password_fingerprint(admin_account.password_hash)

        admin_account.password_hash = AuthService.get_password_hash("a-new-password")
        db.commit()
        assert claims["pwd"] != password_fingerprint(admin_account.password_hash)
