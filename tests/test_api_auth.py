"""API tests for registration, login, token checks, logout and admin permission changes."""

from datetime import UTC, datetime, timedelta

import jwt

from knowledgehub.core.config import settings
from knowledgehub.models import User
from support import PASSWORD, ApiTestCase, auth_headers, make_user


class TestRegisterAndLogin(ApiTestCase):
    def register(self, **overrides):
        body = {
            "name": "New Person",
            "email": "New@Example.com",
            "password": PASSWORD,
            "confirmPassword": PASSWORD,
        }
        body.update(overrides)
        return self.client.post("/api/auth/register", json=body)

    def test_register_creates_viewer_without_note_rights(self) -> None:
        response = self.register()
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        user = payload["data"]["user"]
        self.assertEqual(user["email"], "new@example.com")
        self.assertEqual(user["role"], "viewer")
        self.assertFalse(user["can_create_notes"])
        self.assertTrue(payload["data"]["token"])

    def test_duplicate_email_conflicts(self) -> None:
        self.register()
        response = self.register(email="new@example.com")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["message"], "User with this email already exists")

    def test_password_mismatch_is_400(self) -> None:
        response = self.register(confirmPassword="something-else")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])
        self.assertIn("Passwords must match", response.json()["message"])

    def test_login_returns_token_usable_for_verify(self) -> None:
        make_user(self.db, "reader@example.com")
        response = self.client.post(
            "/api/auth/login", json={"email": "reader@example.com", "password": PASSWORD}
        )
        self.assertEqual(response.status_code, 200)
        token = response.json()["data"]["token"]
        verify = self.client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(verify.status_code, 200)
        self.assertEqual(verify.json()["data"]["user"]["email"], "reader@example.com")

    def test_bad_password_and_inactive_account_are_invalid_credentials(self) -> None:
        make_user(self.db, "reader@example.com")
        make_user(self.db, "gone@example.com", is_active=False)
        for email, password in [("reader@example.com", "wrong-pass"), ("gone@example.com", PASSWORD)]:
            with self.subTest(email=email):
                response = self.client.post(
                    "/api/auth/login", json={"email": email, "password": password}
                )
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.json()["message"], "Invalid credentials")


class TestTokenChecks(ApiTestCase):
    def test_missing_token(self) -> None:
        response = self.client.get("/api/auth/profile")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.json(), {"success": False, "message": "Access token required"}
        )

    def test_garbage_token(self) -> None:
        response = self.client.get(
            "/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token")

    def test_expired_token(self) -> None:
        past = datetime.now(UTC) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "1", "jti": "x", "exp": past, "iat": past - timedelta(hours=1)},
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        response = self.client.get(
            "/api/auth/profile", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Token expired")

    def test_logout_revokes_token(self) -> None:
        _, headers = self.viewer()
        self.assertEqual(self.client.post("/api/auth/logout", headers=headers).status_code, 200)
        response = self.client.get("/api/auth/profile", headers=headers)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token")

    def test_deactivated_user_token_is_invalid(self) -> None:
        user, headers = self.viewer()
        self.db.query(User).filter(User.id == user.id).update({"is_active": False})
        self.db.commit()
        response = self.client.get("/api/auth/verify", headers=headers)
        self.assertEqual(response.status_code, 401)

    def test_profile_update_trims_name(self) -> None:
        _, headers = self.viewer()
        response = self.client.put("/api/auth/profile", json={"name": "  Ada  "}, headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["user"]["name"], "Ada")
        short = self.client.put("/api/auth/profile", json={"name": " A "}, headers=headers)
        self.assertEqual(short.status_code, 400)


class TestAdminEndpoints(ApiTestCase):
    def test_non_admin_gets_admin_required(self) -> None:
        _, headers = self.editor()
        response = self.client.get("/api/admin/users", headers=headers)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "ADMIN_REQUIRED")

    def test_admin_grants_note_creation(self) -> None:
        _, admin_headers = self.admin()
        viewer, viewer_headers = self.viewer()
        note = {"title": "T", "content": "C", "category": "ideas"}
        self.assertEqual(
            self.client.post("/api/notes", json=note, headers=viewer_headers).status_code, 403
        )
        response = self.client.put(
            f"/api/admin/users/{viewer.id}/permissions",
            json={"can_create_notes": True},
            headers=admin_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["data"]["user"]["can_create_notes"])
        self.assertEqual(response.json()["data"]["user"]["role"], "viewer")
        self.assertEqual(
            self.client.post("/api/notes", json=note, headers=viewer_headers).status_code, 201
        )

    def test_admins_always_keep_note_creation(self) -> None:
        _, admin_headers = self.admin()
        viewer, _ = self.viewer()
        promoted = self.client.put(
            f"/api/admin/users/{viewer.id}/permissions",
            json={"role": "admin"},
            headers=admin_headers,
        )
        self.assertTrue(promoted.json()["data"]["user"]["can_create_notes"])
        revoked = self.client.put(
            f"/api/admin/users/{viewer.id}/permissions",
            json={"can_create_notes": False},
            headers=admin_headers,
        )
        self.assertEqual(revoked.status_code, 200)
        self.assertTrue(revoked.json()["data"]["user"]["can_create_notes"])
        demoted = self.client.put(
            f"/api/admin/users/{viewer.id}/permissions",
            json={"role": "editor", "can_create_notes": False},
            headers=admin_headers,
        )
        self.assertFalse(demoted.json()["data"]["user"]["can_create_notes"])

    def test_permission_update_validation(self) -> None:
        _, headers = self.admin()
        empty = self.client.put("/api/admin/users/1/permissions", json={}, headers=headers)
        self.assertEqual(empty.status_code, 400)
        missing = self.client.put(
            "/api/admin/users/9999/permissions", json={"role": "editor"}, headers=headers
        )
        self.assertEqual(missing.status_code, 404)

    def test_lists_active_users(self) -> None:
        _, headers = self.admin()
        make_user(self.db, "gone@example.com", is_active=False)
        response = self.client.get("/api/admin/users", headers=headers)
        emails = [u["email"] for u in response.json()["data"]["users"]]
        self.assertEqual(emails, ["admin@example.com"])

    def test_earlier_token_survives_new_login(self) -> None:
        user = make_user(self.db, "multi@example.com")
        first = auth_headers(self.db, user)
        self.client.post("/api/auth/login", json={"email": "multi@example.com", "password": PASSWORD})
        self.assertEqual(self.client.get("/api/auth/verify", headers=first).status_code, 200)
