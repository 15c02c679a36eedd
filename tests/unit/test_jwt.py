"""Unit tests for access tokens."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from admincore.kernel.identity import Actor, JWTManager
from admincore.kernel.permissions import EMPTY_CAPABILITIES, resolve


class TestJWTManager:
    def test_create_and_verify(self, jwt_manager: JWTManager):
        token, expires, jti = jwt_manager.create_access_token("mod-1", "moderator")

        payload = jwt_manager.verify_access_token(token)

        assert payload is not None
        assert payload.sub == "mod-1"
        assert payload.role == "moderator"
        assert payload.jti == jti
        assert payload.to_actor() == Actor(id="mod-1", role="moderator")
        assert abs((payload.exp - expires).total_seconds()) < 1

    def test_expired_token_rejected(self, jwt_manager: JWTManager):
        token, _, _ = jwt_manager.create_access_token("mod-1", "moderator", expires_delta=timedelta(minutes=-1))
        assert jwt_manager.verify_access_token(token) is None

    def test_wrong_secret_rejected(self, jwt_manager: JWTManager):
        other = JWTManager(secret_key="another-secret-key-for-testing-only")
        token, _, _ = other.create_access_token("mod-1", "moderator")
        assert jwt_manager.verify_access_token(token) is None

    def test_non_access_token_rejected(self, jwt_manager: JWTManager):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "mod-1", "role": "admin", "exp": now + timedelta(minutes=5), "iat": now,
             "jti": "x", "type": "refresh"},
            jwt_manager.secret_key,
            algorithm=jwt_manager.algorithm,
        )
        assert jwt_manager.verify_access_token(token) is None

    def test_garbage_rejected(self, jwt_manager: JWTManager):
        assert jwt_manager.verify_access_token("not-a-token") is None

    def test_unknown_role_yields_actor_without_capabilities(self, jwt_manager: JWTManager):
        token, _, _ = jwt_manager.create_access_token("x-1", "intern")
        actor = jwt_manager.verify_access_token(token).to_actor()
        assert actor.role == "intern"
        assert resolve(actor.role) == EMPTY_CAPABILITIES

    def test_non_string_role_claim_rejected(self, jwt_manager: JWTManager):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "mod-1", "role": {"name": "admin"}, "exp": now + timedelta(minutes=5), "iat": now,
             "jti": "x", "type": "access"},
            jwt_manager.secret_key,
            algorithm=jwt_manager.algorithm,
        )
        assert jwt_manager.verify_access_token(token) is None
