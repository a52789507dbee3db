"""Shared fixtures for the API tests: fake delivery channels and a wired-up client."""

import threading
import unittest
from typing import Any, Dict, List, Optional, Tuple

from fastapi.testclient import TestClient

from azik.core.config import Settings
from azik.core.database import InMemoryDatabase
from azik.main import create_app


class FakeEmailSender:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str, str]] = []
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return not self.fail

    def send(self, to: str, subject: str, html_body: str) -> bool:
        if self.fail:
            return False
        with self._lock:
            self.sent.append((to, subject, html_body))
        return True


class FakePushSender:
    def __init__(self):
        self.sent: List[Tuple[str, str, str, Dict[str, str]]] = []
        self.closed = False
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return True

    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> bool:
        with self._lock:
            self.sent.append((token, title, body, data or {}))
        return True

    def close(self) -> None:
        self.closed = True


def make_settings(**overrides: Any) -> Settings:
    values = {
        "environment": "test",
        "jwt_secret": "test-secret",
        "use_in_memory_database": True,
        "enable_scheduler": False,
        "frontend_url": "http://frontend.example.com",
        **overrides,
    }
    return Settings(**values)


def user_payload(email: str = "ayse@example.com", phone: str = "05321112233", **overrides: Any) -> Dict[str, Any]:
    return {
        "role": "cook",
        "firstName": "Ayşe",
        "lastName": "Yılmaz",
        "email": email,
        "phone": phone,
        "province": "Ankara",
        "district": "Çankaya",
        "neighborhood": "Kızılay",
        "fullAddress": "Atatürk Bulvarı No: 1",
        "password": "supersecret",
        **overrides,
    }


def listing_payload(**overrides: Any) -> Dict[str, Any]:
    return {
        "foodName": "Mercimek çorbası",
        "quantity": 3,
        "details": "Bugün pişti",
        "startTime": "12:00",
        "endTime": "13:00",
        **overrides,
    }


class ApiTestCase(unittest.TestCase):
    """Runs the full app against an in-memory database with fake senders."""

    settings_overrides: Dict[str, Any] = {}

    def setUp(self):
        self.db = InMemoryDatabase()
        self.email_sender = FakeEmailSender()
        self.push_sender = FakePushSender()
        self.settings = make_settings(**self.settings_overrides)
        self.app = create_app(
            settings=self.settings,
            database=self.db,
            email_sender=self.email_sender,
            push_sender=self.push_sender,
        )
        self.client = self.enterContext(TestClient(self.app))

    def verification_token(self, user_id: str) -> str:
        records = [
            record for record in self.db.tables.get("email_verifications", {}).values()
            if record["user_id"] == user_id
        ]
        self.assertEqual(len(records), 1)
        return records[0]["token"]

    def register(self, **overrides: Any) -> Dict[str, Any]:
        response = self.client.post("/api/v1/users/register", json=user_payload(**overrides))
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["user"]

    def register_verified(self, **overrides: Any) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """Register and verify a user; returns the user and auth headers."""
        user = self.register(**overrides)
        response = self.client.post(
            "/api/v1/users/verify-email",
            json={"token": self.verification_token(user["id"])},
        )
        self.assertEqual(response.status_code, 200, response.text)
        return user, {"Authorization": f"Bearer {response.json()['token']}"}

    def create_listing(self, headers: Dict[str, str], **overrides: Any) -> str:
        response = self.client.post("/api/v1/listings", json=listing_payload(**overrides), headers=headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["listingId"]

    def make_offer(self, headers: Dict[str, str], listing_id: str) -> str:
        response = self.client.post("/api/v1/offers", json={"listingId": listing_id}, headers=headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["offerId"]

    def notifications(self, headers: Dict[str, str]) -> List[Dict[str, Any]]:
        response = self.client.get("/api/v1/notifications", headers=headers)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()
