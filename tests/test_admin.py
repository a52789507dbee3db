import unittest
from datetime import datetime, timedelta, timezone

from azik.core.security import create_access_token
from tests.fakes import ApiTestCase


class AdminApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.admin, self.admin_headers = self.register_verified(email="admin@example.com", phone="05320000000")
        self.db.tables["users"][self.admin["id"]]["role"] = "admin"
        self.user, self.user_headers = self.register_verified()

    def test_admin_routes_require_admin_role(self):
        for method, path in (
            ("get", "/api/v1/admin/users"),
            ("delete", f"/api/v1/admin/users/{self.admin['id']}"),
            ("post", "/api/v1/admin/notifications/cleanup"),
        ):
            response = self.client.request(method, path, headers=self.user_headers)
            self.assertEqual(response.status_code, 403, path)
            self.assertEqual(response.json()["error"], "Admin access required")

            response = self.client.request(method, path)
            self.assertEqual(response.status_code, 401, path)

    def test_role_claim_in_token_is_not_trusted(self):
        stored = self.db.tables["users"][self.user["id"]]
        forged = create_access_token({**stored, "role": "admin"}, self.settings)
        response = self.client.get("/api/v1/admin/users", headers={"Authorization": f"Bearer {forged}"})
        self.assertEqual(response.status_code, 403)

    def test_list_users_hides_credentials(self):
        response = self.client.get("/api/v1/admin/users", headers=self.admin_headers)
        self.assertEqual(response.status_code, 200)
        users = response.json()
        self.assertEqual({u["email"] for u in users}, {"admin@example.com", "ayse@example.com"})
        self.assertTrue(all("password" not in u and "pushToken" not in u for u in users))

    def test_delete_user_cascades(self):
        _, other_headers = self.register_verified(email="mehmet@example.com", phone="05334445566")
        own_listing = self.create_listing(self.user_headers)
        other_listing = self.create_listing(other_headers)
        self.make_offer(other_headers, own_listing)
        own_offer = self.make_offer(self.user_headers, other_listing)

        response = self.client.delete(f"/api/v1/admin/users/{self.user['id']}", headers=self.admin_headers)
        self.assertEqual(response.status_code, 204)

        self.assertNotIn(self.user["id"], self.db.tables["users"])
        self.assertEqual(list(self.db.tables["food_listings"]), [other_listing])
        self.assertEqual(self.db.tables["exchange_offers"], {})
        self.assertNotIn(own_offer, self.db.tables["exchange_offers"])
        self.assertFalse(any(n["user_id"] == self.user["id"] for n in self.db.tables["notifications"].values()))
        self.assertFalse(any(
            v["user_id"] == self.user["id"] for v in self.db.tables.get("email_verifications", {}).values()
        ))

        # The deleted user's session no longer works
        self.assertEqual(self.client.get("/api/v1/users/me", headers=self.user_headers).status_code, 401)

    def test_delete_unknown_user(self):
        response = self.client.delete(
            "/api/v1/admin/users/6f1c1f4e-2d7a-4d8e-9a8b-0c2f3e4d5a6b", headers=self.admin_headers
        )
        self.assertEqual(response.status_code, 404)

    def test_admin_cannot_delete_self(self):
        response = self.client.delete(f"/api/v1/admin/users/{self.admin['id']}", headers=self.admin_headers)
        self.assertEqual(response.status_code, 400)
        self.assertIn(self.admin["id"], self.db.tables["users"])

    def test_cleanup_endpoint(self):
        old = (datetime.now(timezone.utc) - timedelta(hours=48)).isoformat()
        self.db.tables.setdefault("notifications", {})["old-1"] = {
            "id": "old-1", "user_id": self.user["id"], "created_at": old,
        }

        response = self.client.post("/api/v1/admin/notifications/cleanup", headers=self.admin_headers)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["deletedCount"], 1)
        self.assertIn("cutoff", payload)
        self.assertNotIn("old-1", self.db.tables["notifications"])


class PublicRouteTests(ApiTestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_locations(self):
        provinces = self.client.get("/api/v1/locations/provinces").json()
        self.assertIn("Ankara", provinces)

        districts = self.client.get("/api/v1/locations/provinces/Ankara/districts").json()
        self.assertIn("Çankaya", districts)

        neighborhoods = self.client.get(
            "/api/v1/locations/provinces/Ankara/districts/Çankaya/neighborhoods"
        ).json()
        self.assertIn("Kızılay", neighborhoods)

        self.assertEqual(self.client.get("/api/v1/locations/provinces/Atlantis/districts").json(), [])

    def test_unknown_route_uses_error_envelope(self):
        response = self.client.get("/api/v1/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertIn("error", response.json())


if __name__ == "__main__":
    unittest.main()
