import asyncio
import unittest

from fastapi.testclient import TestClient

from api.main import create_app
from session_auth.config import AuthConfig
from session_auth.stores.memory_store import MemoryPrincipalStore

AUTH = "/api/v1/auth"
ADMIN = "/api/v1/admin"
PASSWORD = "s3cret-password"


class FlakyPrincipalStore(MemoryPrincipalStore):
    down = False

    async def get_by_id(self, principal_id: str) -> dict | None:
        if self.down:
            raise RuntimeError("store unavailable")
        return await super().get_by_id(principal_id)


class AuthApiTestCase(unittest.TestCase):
    def setUp(self):
        self.config = AuthConfig(
            JWT_SECRET="api-test-secret",
            COOKIE_SECURE=False,
            FIXED_OTP="424242",
            AUTH_STORE="memory",
            LOGIN_RATE_LIMIT_PER_MINUTE=3,
        )
        self.store = FlakyPrincipalStore()
        self.app = create_app(self.config, self.store)
        self.client = TestClient(self.app)

    def _register(self, email="ada@devices.io", mobile=None, role="standard") -> dict:
        body = {"email": email, "password": PASSWORD, "role": role}
        if mobile:
            body["mobile"] = mobile
        response = self.client.post(f"{AUTH}/register", json=body)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]["user"]

    def _login(self, client=None, email="ada@devices.io", device_info=None):
        client = client or self.client
        body = {"email": email, "password": PASSWORD}
        if device_info:
            body["device_info"] = device_info
        response = client.post(f"{AUTH}/login", json=body)
        self.assertEqual(response.status_code, 200, response.text)
        return response

    @staticmethod
    def _bearer(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    def _assert_cookie_cleared(self, response):
        header = response.headers.get("set-cookie", "")
        self.assertIn("jid=", header)
        self.assertIn("Max-Age=0", header)


class TestRegistrationAndLogin(AuthApiTestCase):
    def test_register_and_duplicate(self):
        user = self._register()
        self.assertEqual(user["email"], "ada@devices.io")
        self.assertEqual(user["role"], "standard")
        self.assertNotIn("hashed_password", user)

        duplicate = self.client.post(f"{AUTH}/register", json={"email": "ada@devices.io", "password": PASSWORD})
        self.assertEqual(duplicate.status_code, 409)
        self.assertFalse(duplicate.json()["success"])

    def test_register_cannot_claim_administrator(self):
        response = self.client.post(
            f"{AUTH}/register",
            json={"email": "eve@devices.io", "password": PASSWORD, "role": "administrator"},
        )
        self.assertEqual(response.status_code, 422)
        errors = response.json()["data"]["validation_errors"]
        self.assertEqual([error["field"] for error in errors], ["role"])

    def test_login_splits_tokens_across_channels(self):
        self._register()

        response = self._login(device_info="Firefox")

        data = response.json()["data"]
        self.assertIn("access_token", data)
        self.assertNotIn("refresh_token", data)
        cookie_header = response.headers["set-cookie"]
        self.assertTrue(cookie_header.startswith("jid="))
        self.assertIn("HttpOnly", cookie_header)
        self.assertIn("Path=/", cookie_header)
        self.assertIn("samesite=lax", cookie_header.lower())
        self.assertNotIn(response.cookies["jid"], response.text)

    def test_failed_logins_are_generic(self):
        self._register()

        wrong = self.client.post(f"{AUTH}/login", json={"email": "ada@devices.io", "password": "nope-nope"})
        unknown = self.client.post(f"{AUTH}/login", json={"email": "bob@devices.io", "password": PASSWORD})

        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.json(), unknown.json())

    def test_login_rate_limit(self):
        self._register()
        for _ in range(3):
            self.client.post(f"{AUTH}/login", json={"email": "ada@devices.io", "password": "nope-nope"})

        blocked = self.client.post(f"{AUTH}/login", json={"email": "ada@devices.io", "password": PASSWORD})
        self.assertEqual(blocked.status_code, 429)

    def test_otp_login(self):
        self._register(mobile="9990001111")

        ok = self.client.post(f"{AUTH}/login/otp", json={"mobile": "9990001111", "otp": "424242"})
        bad = self.client.post(f"{AUTH}/login/otp", json={"mobile": "9990001111", "otp": "000000"})

        self.assertEqual(ok.status_code, 200)
        self.assertIn("jid", ok.cookies)
        self.assertEqual(bad.status_code, 401)


class TestRefreshAndLogout(AuthApiTestCase):
    def test_refresh_rotates_cookie_and_rejects_replay(self):
        self._register()
        login = self._login()
        original = login.cookies["jid"]

        refreshed = self.client.post(f"{AUTH}/refresh")
        self.assertEqual(refreshed.status_code, 200, refreshed.text)
        self.assertIn("access_token", refreshed.json()["data"])
        self.assertNotEqual(refreshed.cookies["jid"], original)

        attacker = TestClient(self.app)
        attacker.cookies.set("jid", original)
        replay = attacker.post(f"{AUTH}/refresh")
        self.assertEqual(replay.status_code, 401)
        self.assertEqual(replay.json()["message"], "Unauthorized")
        self._assert_cookie_cleared(replay)

        self.assertEqual(self.client.post(f"{AUTH}/refresh").status_code, 200)

    def test_refresh_without_cookie(self):
        response = self.client.post(f"{AUTH}/refresh")
        self.assertEqual(response.status_code, 401)
        self._assert_cookie_cleared(response)

    def test_logout_is_idempotent(self):
        self._register()
        self._login()

        first = self.client.post(f"{AUTH}/logout")
        second = self.client.post(f"{AUTH}/logout")

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self._assert_cookie_cleared(first)
        self.assertEqual(self.client.post(f"{AUTH}/refresh").status_code, 401)

    def test_logout_clears_cookie_when_store_fails(self):
        self._register()
        self._login()
        self.store.down = True

        response = self.client.post(f"{AUTH}/logout")

        self.assertEqual(response.status_code, 200)
        self._assert_cookie_cleared(response)


class TestSessionsEndpoints(AuthApiTestCase):
    def test_me_requires_bearer(self):
        self._register()
        access = self._login().json()["data"]["access_token"]

        self.assertEqual(self.client.get(f"{AUTH}/me").status_code, 401)
        self.assertEqual(self.client.get(f"{AUTH}/me", headers=self._bearer("garbage")).status_code, 401)
        me = self.client.get(f"{AUTH}/me", headers=self._bearer(access))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["data"]["user"]["email"], "ada@devices.io")

    def test_list_and_revoke_sessions(self):
        self._register()
        phone = self._login(client=TestClient(self.app), device_info="phone").json()["data"]
        laptop = self._login(device_info="laptop").json()["data"]
        headers = self._bearer(laptop["access_token"])

        listed = self.client.get(f"{AUTH}/sessions", headers=headers).json()["data"]["sessions"]
        self.assertEqual({s["device_info"] for s in listed}, {"phone", "laptop"})
        for session in listed:
            self.assertNotIn("refresh_token_hash", session)

        revoked = self.client.delete(f"{AUTH}/sessions/{phone['session_id']}", headers=headers)
        self.assertEqual(revoked.status_code, 200)
        again = self.client.delete(f"{AUTH}/sessions/{phone['session_id']}", headers=headers)
        self.assertEqual(again.status_code, 404)

        listed = self.client.get(f"{AUTH}/sessions", headers=headers).json()["data"]["sessions"]
        self.assertEqual([s["id"] for s in listed], [laptop["session_id"]])


class TestAdminEndpoints(AuthApiTestCase):
    def _make_admin(self) -> str:
        admin = self._register(email="root@devices.io")
        asyncio.run(self.store.update_fields(admin["id"], {"role": "administrator"}))
        return self._login(client=TestClient(self.app), email="root@devices.io").json()["data"]["access_token"]

    def test_standard_user_is_forbidden(self):
        self._register()
        access = self._login().json()["data"]["access_token"]

        response = self.client.get(f"{ADMIN}/principals/anyone/sessions", headers=self._bearer(access))
        self.assertEqual(response.status_code, 403)

    def test_admin_revokes_and_changes_role(self):
        user = self._register()
        session_id = self._login().json()["data"]["session_id"]
        headers = self._bearer(self._make_admin())

        listed = self.client.get(f"{ADMIN}/principals/{user['id']}/sessions", headers=headers)
        self.assertEqual([s["id"] for s in listed.json()["data"]["sessions"]], [session_id])

        revoked = self.client.delete(f"{ADMIN}/principals/{user['id']}/sessions/{session_id}", headers=headers)
        self.assertEqual(revoked.status_code, 200)
        self.assertEqual(self.client.post(f"{AUTH}/refresh").status_code, 401)

        promoted = self.client.patch(
            f"{ADMIN}/principals/{user['id']}/role", json={"role": "provider"}, headers=headers
        )
        self.assertEqual(promoted.status_code, 200)
        self.assertEqual(promoted.json()["data"]["user"]["role"], "provider")

        invalid = self.client.patch(f"{ADMIN}/principals/{user['id']}/role", json={"role": "root"}, headers=headers)
        self.assertEqual(invalid.status_code, 422)


class TestHealth(AuthApiTestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "OK")


if __name__ == "__main__":
    unittest.main()
