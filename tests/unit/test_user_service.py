import sqlite3
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from alpha_blog.infrastructure.repositories.identity_repository import IdentityRepository
from alpha_blog.infrastructure.repositories.user_repository import UserRepository
from alpha_blog.services.user_service import CREDENTIALS_PROVIDER, UserService

SECRET = "unit-test-secret-with-enough-length"


@pytest.fixture
def identities(db_path) -> IdentityRepository:
    return IdentityRepository(db_path)


@pytest.fixture
def service(db_path, identities) -> UserService:
    return UserService(UserRepository(db_path), identities, jwt_secret=SECRET)


class TestRegister:
    def test_register_links_credentials_identity(self, service, identities) -> None:
        user = service.register("Reader@Example.com ", "correct-horse")

        assert user.email == "reader@example.com"
        assert user.password_hash != "correct-horse"
        assert identities.resolve(CREDENTIALS_PROVIDER, "reader@example.com") == user.id

    def test_duplicate_email(self, service) -> None:
        service.register("reader@example.com", "correct-horse")

        with pytest.raises(ValueError):
            service.register("READER@example.com", "another-pass")

    def test_identity_conflict_leaves_no_user_behind(self, service, db_path) -> None:
        conn = sqlite3.connect(db_path)
        with conn:
            conn.execute(
                "INSERT INTO identities (provider, subject, user_id, created_at) VALUES (?, ?, ?, ?)",
                (CREDENTIALS_PROVIDER, "reader@example.com", 99, "2025-01-01T00:00:00+00:00"),
            )
        conn.close()

        with pytest.raises(ValueError):
            service.register("reader@example.com", "correct-horse")

        assert UserRepository(db_path).get_by_email("reader@example.com") is None

    def test_password_over_72_bytes_is_refused(self, service, db_path) -> None:
        with pytest.raises(ValueError, match="72 bytes"):
            service.register("reader@example.com", "p" * 80)

        assert UserRepository(db_path).get_by_email("reader@example.com") is None

    def test_multibyte_password_is_measured_in_bytes(self, service) -> None:
        with pytest.raises(ValueError):
            service.register("reader@example.com", "é" * 40)

    def test_password_of_exactly_72_bytes_can_log_in(self, service) -> None:
        password = "p" * 72
        created = service.register("reader@example.com", password)

        assert service.authenticate("reader@example.com", password).id == created.id


class TestAuthenticate:
    def test_valid_credentials(self, service) -> None:
        created = service.register("reader@example.com", "correct-horse")

        user = service.authenticate("READER@example.com", "correct-horse")

        assert user is not None
        assert user.id == created.id

    def test_wrong_password(self, service) -> None:
        service.register("reader@example.com", "correct-horse")

        assert service.authenticate("reader@example.com", "wrong") is None

    def test_unknown_email(self, service) -> None:
        assert service.authenticate("ghost@example.com", "whatever") is None


class TestTokens:
    def test_token_carries_internal_user_id(self, service) -> None:
        user = service.register("reader@example.com", "correct-horse")

        payload = service.verify_token(service.create_token(user))

        assert payload["user_id"] == user.id

    def test_expired_token(self, service) -> None:
        past = datetime.now(tz=timezone.utc) - timedelta(hours=2)
        token = jwt.encode({"user_id": 1, "iat": past, "exp": past + timedelta(hours=1)}, SECRET, algorithm="HS256")

        assert service.verify_token(token) is None

    def test_token_signed_with_other_secret(self, service) -> None:
        token = jwt.encode({"user_id": 1}, "some-other-secret-with-enough-length", algorithm="HS256")

        assert service.verify_token(token) is None

    def test_token_without_user_id(self, service) -> None:
        token = jwt.encode({"email": "reader@example.com"}, SECRET, algorithm="HS256")

        assert service.verify_token(token) is None

    def test_garbage_token(self, service) -> None:
        assert service.verify_token("not.a.jwt") is None
