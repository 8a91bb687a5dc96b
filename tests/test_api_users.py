"""HTTP tests for the access control gate: /users is admin-only, plus the content-operator tier."""

from collections.abc import Generator

from fastapi import APIRouter, Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.api.v1.dependencies import (
    ContentOperator,
    CurrentPrincipal,
    OptionalPrincipal,
    require_tier,
)
from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import create_session_token
from app.main import service_error_handler
from app.models import UserRole
from app.schemas.auth import Principal
from app.schemas.users import UserUpsert
from app.services.access_control import Tier
from app.services.exceptions import ServiceError
from app.services.user_directory import UserDirectory
from tests.support import API, ApiTestCase, DatabaseTestCase


class TestUsersGate(ApiTestCase):
    """Anonymous requests get 401, non-admins 403, admins reach the handler."""

    def test_anonymous_is_unauthorized(self) -> None:
        r = self.client.get(f"{API}/users")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.headers.get("www-authenticate"), "Bearer")

    def test_plain_user_is_forbidden(self) -> None:
        self.register("b@x.com")
        self.assertEqual(self.client.get(f"{API}/users").status_code, 403)
        self.assertEqual(self.client.delete(f"{API}/users/1").status_code, 403)

    def test_content_editor_is_forbidden(self) -> None:
        self.register("e@x.com")
        directory = UserDirectory(self.db, self.settings)
        editor = directory.find_by_email("e@x.com")
        directory.update(editor.id, {"role": UserRole.CONTENT_EDITOR})
        self.assertEqual(self.client.get(f"{API}/users").status_code, 403)

    def test_role_change_applies_to_existing_session(self) -> None:
        self.register("b@x.com")
        directory = UserDirectory(self.db, self.settings)
        user = directory.find_by_email("b@x.com")
        self.assertEqual(self.client.get(f"{API}/users").status_code, 403)
        directory.update(user.id, {"role": UserRole.ADMIN})
        self.assertEqual(self.client.get(f"{API}/users").status_code, 200)


class TestUsersAdmin(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.bootstrap("a@x.com")
        self.admin_id = UserDirectory(self.db, self.settings).find_by_email("a@x.com").id

    def _create(self, email: str, role: str = "user") -> dict:
        r = self.client.post(
            f"{API}/users",
            json={"email": email, "password": "longenough1", "name": "Member", "role": role},
        )
        self.assertEqual(r.status_code, 201)
        return r.json()

    def test_list_and_get(self) -> None:
        member = self._create("b@x.com")
        users = self.client.get(f"{API}/users").json()["users"]
        self.assertEqual({u["email"] for u in users}, {"a@x.com", "b@x.com"})
        for u in users:
            self.assertNotIn("password_hash", u)
            self.assertNotIn("password_salt", u)
        self.assertEqual(self.client.get(f"{API}/users/{member['id']}").json()["email"], "b@x.com")
        self.assertEqual(self.client.get(f"{API}/users/9999").status_code, 404)

    def test_create_with_role_and_conflict(self) -> None:
        editor = self._create("ed@x.com", role="content_editor")
        self.assertEqual(editor["role"], "content_editor")
        r = self.client.post(
            f"{API}/users",
            json={"email": "ed@x.com", "password": "longenough1", "name": "Again"},
        )
        self.assertEqual(r.status_code, 409)

    def test_update_role(self) -> None:
        member = self._create("b@x.com")
        r = self.client.patch(f"{API}/users/{member['id']}", json={"role": "content_editor"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["role"], "content_editor")
        self.assertEqual(r.json()["name"], "Member")

    def test_unknown_role_is_bad_request(self) -> None:
        member = self._create("b@x.com")
        r = self.client.patch(f"{API}/users/{member['id']}", json={"role": "superuser"})
        self.assertEqual(r.status_code, 400)

    def test_cannot_change_own_role(self) -> None:
        r = self.client.patch(f"{API}/users/{self.admin_id}", json={"role": "user"})
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.json()["code"], "SELF_ROLE_CHANGE")
        self.assertEqual(self.client.get(f"{API}/auth/me").json()["user"]["role"], "admin")

    def test_cannot_delete_self(self) -> None:
        r = self.client.delete(f"{API}/users/{self.admin_id}")
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.json()["code"], "SELF_DELETE")
        self.assertEqual(UserDirectory(self.db, self.settings).count(), 1)

    def test_delete_other_user(self) -> None:
        member = self._create("b@x.com")
        r = self.client.delete(f"{API}/users/{member['id']}")
        self.assertEqual(r.status_code, 204)
        emails = [u["email"] for u in self.client.get(f"{API}/users").json()["users"]]
        self.assertEqual(emails, ["a@x.com"])
        self.assertEqual(self.client.delete(f"{API}/users/{member['id']}").status_code, 404)


class TestTierDependencies(DatabaseTestCase):
    """Any route can declare a tier; rejection happens before the handler runs."""

    def setUp(self) -> None:
        super().setUp()
        self.calls: list[str] = []
        router = APIRouter()

        @router.get("/public")
        def public(principal: OptionalPrincipal) -> dict:
            self.calls.append("public")
            return {"user": principal.email if principal else None}

        @router.get("/member")
        def member(principal: CurrentPrincipal) -> dict:
            self.calls.append("member")
            return {"role": principal.role}

        @router.post("/content")
        def content(principal: ContentOperator) -> dict:
            self.calls.append("content")
            return {"role": principal.role}

        @router.get("/open", dependencies=[Depends(require_tier(Tier.ANONYMOUS))])
        def open_route() -> dict:
            self.calls.append("open")
            return {"ok": True}

        @router.delete("/settings")
        def owner_only(principal: Principal = Depends(require_tier(Tier.OWNER))) -> dict:
            self.calls.append("owner")
            return {"role": principal.role}

        def override_get_db() -> Generator[Session, None, None]:
            yield self.db

        self.app = FastAPI()
        self.app.add_exception_handler(ServiceError, service_error_handler)
        self.app.include_router(router)
        self.app.dependency_overrides[get_db] = override_get_db
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(self.app)

        directory = UserDirectory(self.db, self.settings)
        self.tokens = {}
        for role in UserRole:
            open_id = f"ext-{role.value}"
            directory.upsert_by_open_id(open_id, UserUpsert(name=role.value, role=role))
            self.tokens[role] = create_session_token(self.settings, open_id, login_method="external")

    def tearDown(self) -> None:
        self.client.close()
        super().tearDown()

    def _auth(self, role: UserRole) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens[role]}"}

    def test_public_route_allows_anonymous(self) -> None:
        r = self.client.get("/public")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"user": None})

    def test_member_route(self) -> None:
        self.assertEqual(self.client.get("/member").status_code, 401)
        r = self.client.get("/member", headers=self._auth(UserRole.USER))
        self.assertEqual(r.json(), {"role": "user"})

    def test_content_route_matrix(self) -> None:
        self.assertEqual(self.client.post("/content").status_code, 401)
        self.assertEqual(self.client.post("/content", headers=self._auth(UserRole.USER)).status_code, 403)
        for role in (UserRole.CONTENT_EDITOR, UserRole.ADMIN):
            with self.subTest(role=role):
                r = self.client.post("/content", headers=self._auth(role))
                self.assertEqual(r.status_code, 200)
        self.assertEqual(self.calls, ["content", "content"])

    def test_forbidden_message(self) -> None:
        r = self.client.post("/content", headers=self._auth(UserRole.USER))
        self.assertEqual(r.json()["detail"], "Admin or content editor access required")

    def test_tier_declared_by_value(self) -> None:
        self.assertEqual(self.client.get("/open").json(), {"ok": True})
        self.assertEqual(self.client.delete("/settings").status_code, 401)
        for role in (UserRole.USER, UserRole.CONTENT_EDITOR):
            with self.subTest(role=role):
                r = self.client.delete("/settings", headers=self._auth(role))
                self.assertEqual(r.status_code, 403)
                self.assertEqual(r.json()["detail"], "Admin access required")
        r = self.client.delete("/settings", headers=self._auth(UserRole.ADMIN))
        self.assertEqual(r.json(), {"role": "admin"})
        self.assertEqual(self.calls, ["open", "owner"])
