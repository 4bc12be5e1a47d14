import unittest
from datetime import datetime, timedelta, timezone

import mongomock
from fastapi.testclient import TestClient

from contractor_api.app import create_app
from contractor_api.config import Settings
from contractor_api.records import (
    ADMIN_USERS,
    CONTACT_MESSAGES,
    GALLERY_IMAGES,
    SERVICES,
    USERS,
    WORK_ORDERS,
)
from contractor_api.store import MongoRecordStore, SqlRecordStore
from contractor_api.uploads import InMemoryUploadStore

ORDER_FORM = {
    "customerName": "Dana Reyes",
    "customerEmail": "Dana@Example.com",
    "customerPhone": "5551234567",
    "serviceType": "plumbing",
    "description": "Leaking kitchen tap",
    "priority": "high",
}


def _settings(**overrides):
    values = {
        "_env_file": None,
        "bcrypt_rounds": 4,
        "seed_default_services": False,
        "bootstrap_admin": False,
        "jwt_secret": "test-secret",
    }
    values.update(overrides)
    return Settings(**values)


class ApiContract:
    """HTTP behaviour that must not depend on the storage backend."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()
        self.uploads = InMemoryUploadStore()
        self.app = create_app(_settings(), store=self.store, uploads=self.uploads)
        self.client = TestClient(self.app)

    def tearDown(self):
        self.store.close()

    def _admin_headers(self):
        self.client.post(
            "/api/auth/register",
            json={"username": "boss", "email": "boss@example.com", "password": "longenough"},
        )
        response = self.client.post(
            "/api/auth/login", json={"username": "boss", "password": "longenough"}
        )
        return {"Authorization": f"Bearer {response.json()['token']}"}

    def _user_headers(self, email="sam@example.com"):
        response = self.client.post(
            "/api/user-auth/register",
            json={
                "email": email,
                "password": "correct-horse",
                "firstName": "Sam",
                "lastName": "Lee",
            },
        )
        return {"Authorization": f"Bearer {response.json()['token']}"}

    # Services

    def test_service_create_and_list(self):
        headers = self._admin_headers()
        response = self.client.post(
            "/api/services",
            json={"name": "Tiling", "category": "general", "basePrice": "99.5"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 201)
        service = response.json()["service"]
        self.assertEqual(service["basePrice"], 99.5)
        self.assertEqual(service["unit"], "per hour")

        listed = self.client.get("/api/services").json()
        self.assertEqual([s["name"] for s in listed], ["Tiling"])
        self.assertEqual(self.client.get(f"/api/services/{service['id']}").json()["id"], service["id"])
        categories = self.client.get("/api/services/categories").json()
        self.assertEqual(
            categories,
            [{"category": "general", "service_count": 1, "min_price": 99.5, "max_price": 99.5}],
        )

    def test_negative_price_is_rejected(self):
        response = self.client.post(
            "/api/services",
            json={"name": "Test", "category": "general", "basePrice": -5},
            headers=self._admin_headers(),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "basePrice must be a positive number"})
        self.assertEqual(self.store.count(SERVICES), 0)

    def test_price_too_large_for_a_float_is_rejected(self):
        response = self.client.post(
            "/api/services",
            json={"name": "Test", "category": "general", "basePrice": int("9" * 400)},
            headers=self._admin_headers(),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "basePrice must be a positive number"})
        self.assertEqual(self.store.count(SERVICES), 0)

    def test_missing_fields_are_listed(self):
        response = self.client.post(
            "/api/services", json={"basePrice": 10}, headers=self._admin_headers()
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing required fields: name, category")

    def test_malformed_id_and_missing_record(self):
        response = self.client.get("/api/services/not-an-id")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid service ID"})

        created = self.store.create(
            SERVICES, {"name": "Tap", "category": "plumbing", "base_price": 75.0}
        )
        headers = self._admin_headers()
        self.client.delete(f"/api/services/{created.id}", headers=headers)
        response = self.client.get(f"/api/services/{created.id}")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Service not found"})

    # Access control

    def test_mutation_without_token(self):
        response = self.client.post(
            "/api/services", json={"name": "Tap", "category": "plumbing", "basePrice": 75}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Access token required"})

    def test_user_token_on_admin_route(self):
        response = self.client.get("/api/work-orders", headers=self._user_headers())
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {"error": "Admin access required"})

    def test_admin_token_on_user_route(self):
        response = self.client.get("/api/user-auth/me", headers=self._admin_headers())
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {"error": "Access denied. User account required."})

    def test_expired_token(self):
        token = self.app.state.sessions.issue(
            subject="1",
            kind="admin",
            role="admin",
            now=datetime.now(timezone.utc) - timedelta(days=2),
        )
        response = self.client.get(
            "/api/admin/dashboard", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Token expired"})

    def test_second_admin_registration_is_refused(self):
        self._admin_headers()
        response = self.client.post(
            "/api/auth/register",
            json={"username": "intruder", "email": "x@example.com", "password": "longenough"},
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            response.json(), {"error": "Admin registration disabled. Contact existing admin."}
        )
        self.assertEqual(self.store.count(ADMIN_USERS), 1)

    def test_admin_me_and_change_password(self):
        headers = self._admin_headers()
        me = self.client.get("/api/auth/me", headers=headers).json()["user"]
        self.assertEqual(me["username"], "boss")
        self.assertNotIn("passwordHash", me)

        response = self.client.post(
            "/api/auth/change-password",
            json={"currentPassword": "longenough", "newPassword": "evenlonger"},
            headers=headers,
        )
        self.assertEqual(response.json(), {"message": "Password changed successfully"})
        login = self.client.post(
            "/api/auth/login", json={"username": "boss@example.com", "password": "evenlonger"}
        )
        self.assertEqual(login.status_code, 200)

    # Work orders

    def test_guest_work_order_keeps_image_order(self):
        response = self.client.post(
            "/api/work-orders",
            data=ORDER_FORM,
            files=[
                ("images", ("second.png", b"first-bytes", "image/png")),
                ("images", ("first.jpg", b"second-bytes", "image/jpeg")),
            ],
        )
        self.assertEqual(response.status_code, 201)
        order = response.json()["workOrder"]
        self.assertIsNone(order["userId"])
        self.assertEqual(order["status"], "pending")
        self.assertEqual(order["customerEmail"], "dana@example.com")
        self.assertEqual(order["images"], list(self.uploads.stored_files))
        self.assertEqual(
            [self.uploads.stored_files[path] for path in order["images"]],
            [b"first-bytes", b"second-bytes"],
        )
        self.assertTrue(order["images"][0].startswith("/uploads/work-orders/"))
        self.assertTrue(order["images"][0].endswith(".png"))

    def test_work_order_rejects_non_images(self):
        response = self.client.post(
            "/api/work-orders",
            data=ORDER_FORM,
            files=[
                ("images", ("ok.png", b"png", "image/png")),
                ("images", ("notes.txt", b"text", "text/plain")),
            ],
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Only image files are allowed"})
        self.assertEqual(self.uploads.stored_files, {})
        self.assertEqual(self.store.count(WORK_ORDERS), 0)

    def test_work_order_with_blank_file_input(self):
        response = self.client.post(
            "/api/work-orders",
            data=ORDER_FORM,
            files=[("images", ("", b"", "application/octet-stream"))],
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["workOrder"]["images"], [])
        self.assertEqual(self.uploads.stored_files, {})

    def test_work_order_rejects_too_many_images(self):
        files = [("images", (f"{i}.png", b"png", "image/png")) for i in range(6)]
        response = self.client.post("/api/work-orders", data=ORDER_FORM, files=files)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"error": "Too many files. Maximum is 5 files per upload."}
        )
        self.assertEqual(self.uploads.stored_files, {})
        self.assertEqual(self.store.count(WORK_ORDERS), 0)

        files = [("images", (f"{i}.png", b"png", "image/png")) for i in range(5)]
        response = self.client.post("/api/work-orders", data=ORDER_FORM, files=files)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(response.json()["workOrder"]["images"]), 5)

    def test_work_order_rejects_oversized_image(self):
        response = self.client.post(
            "/api/work-orders",
            data=ORDER_FORM,
            files=[
                ("images", ("small.png", b"png", "image/png")),
                ("images", ("big.png", b"x" * (5 * 1024 * 1024 + 1), "image/png")),
            ],
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "File too large. Maximum size is 5MB."})
        self.assertEqual(self.uploads.stored_files, {})
        self.assertEqual(self.store.count(WORK_ORDERS), 0)

    def test_work_order_owner_needs_a_live_user_token(self):
        registered = self.client.post(
            "/api/user-auth/register",
            json={"email": "sam@example.com", "password": "correct-horse", "firstName": "Sam", "lastName": "Lee"},
        ).json()
        expired = self.app.state.sessions.issue(
            subject=registered["user"]["id"],
            kind="user",
            role="user",
            name="sam@example.com",
            now=datetime.now(timezone.utc) - timedelta(days=2),
        )
        for headers in (
            {"Authorization": f"Bearer {expired}"},
            self._admin_headers(),
        ):
            response = self.client.post("/api/work-orders", data=ORDER_FORM, headers=headers)
            self.assertEqual(response.status_code, 201)
            self.assertIsNone(response.json()["workOrder"]["userId"])

        live = {"Authorization": f"Bearer {registered['token']}"}
        response = self.client.post("/api/work-orders", data=ORDER_FORM, headers=live)
        self.assertEqual(response.json()["workOrder"]["userId"], registered["user"]["id"])

    def test_work_order_validation(self):
        bad_email = dict(ORDER_FORM, customerEmail="bad")
        response = self.client.post("/api/work-orders", data=bad_email)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid email format"})

        response = self.client.post("/api/work-orders", data={"description": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["error"].startswith("Missing required fields: customerName"))
        self.assertEqual(self.store.count(WORK_ORDERS), 0)

    def test_my_orders_are_scoped_to_the_token(self):
        sam = self._user_headers()
        kim = self._user_headers("kim@example.com")
        self.client.post("/api/work-orders", data=ORDER_FORM, headers=sam)
        self.client.post("/api/work-orders", data=ORDER_FORM, headers=sam)
        self.client.post("/api/work-orders", data=ORDER_FORM)
        # Unusable tokens fall back to a guest submission.
        self.client.post(
            "/api/work-orders", data=ORDER_FORM, headers={"Authorization": "Bearer junk"}
        )

        mine = self.client.get("/api/work-orders/my-orders", headers=sam).json()
        self.assertEqual(mine["totalCount"], 2)
        self.assertEqual(len(mine["workOrders"]), 2)
        me = self.client.get("/api/user-auth/me", headers=sam).json()["user"]
        self.assertTrue(all(o["userId"] == me["id"] for o in mine["workOrders"]))
        self.assertEqual(
            self.client.get("/api/work-orders/my-orders", headers=kim).json()["workOrders"], []
        )

        everything = self.client.get(
            "/api/work-orders", params={"limit": 3}, headers=self._admin_headers()
        ).json()
        self.assertEqual(everything["totalCount"], 4)
        self.assertEqual(everything["totalPages"], 2)
        self.assertEqual(len(everything["workOrders"]), 3)

    def test_work_order_status_update(self):
        created = self.client.post("/api/work-orders", data=ORDER_FORM).json()["workOrder"]
        headers = self._admin_headers()
        response = self.client.put(
            f"/api/work-orders/{created['id']}", json={"status": "on-hold"}, headers=headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["workOrder"]["status"], "on-hold")
        response = self.client.put(
            f"/api/work-orders/{created['id']}", json={"status": "lost"}, headers=headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid status value"})

    # Work requests

    def test_work_requests(self):
        body = {
            "customerName": "Lee",
            "customerAddress": "1 Main St",
            "projectType": "Deck",
            "urgencyLevel": "1week",
            "servicePreference": "licensed",
        }
        response = self.client.post("/api/work-requests", json=dict(body, urgencyLevel="someday"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid urgency level"})

        self.assertEqual(self.client.post("/api/work-requests", json=body).status_code, 201)
        self.client.post("/api/work-requests", json=dict(body, servicePreference="general"))

        headers = self._admin_headers()
        listed = self.client.get(
            "/api/work-requests", params={"servicePreference": "general"}, headers=headers
        ).json()
        self.assertEqual(listed["totalCount"], 1)
        summary = self.client.get("/api/work-requests/stats/summary", headers=headers).json()
        self.assertEqual(summary["total"], 2)
        self.assertEqual(summary["byStatus"], {"pending": 2})
        self.assertEqual(summary["byServiceType"], {"licensed": 1, "general": 1})

    # Contact

    def test_contact_bad_email(self):
        response = self.client.post(
            "/api/contact", json={"name": "A", "email": "bad", "message": "hi"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid email format"})
        self.assertEqual(self.store.count(CONTACT_MESSAGES), 0)

    def test_contact_flow(self):
        response = self.client.post(
            "/api/contact", json={"name": "A", "email": "a@example.com", "message": "hi"}
        )
        self.assertEqual(response.status_code, 201)
        message_id = response.json()["id"]

        headers = self._admin_headers()
        updated = self.client.put(
            f"/api/contact/{message_id}", json={"status": "responded"}, headers=headers
        )
        self.assertEqual(updated.json()["contactMessage"]["status"], "replied")
        listed = self.client.get("/api/contact", params={"status": "replied"}, headers=headers)
        self.assertEqual([m["id"] for m in listed.json()["messages"]], [message_id])
        legacy = self.client.get("/api/contact", params={"status": "responded"}, headers=headers)
        self.assertEqual([m["id"] for m in legacy.json()["messages"]], [message_id])
        unread = self.client.get("/api/contact", params={"status": "unread"}, headers=headers)
        self.assertEqual(unread.json()["messages"], [])

    # Gallery

    def test_gallery_update_without_fields(self):
        image = self.store.create(GALLERY_IMAGES, {"image_url": "/uploads/gallery/x.png"})
        response = self.client.put(
            f"/api/gallery/{image.id}", json={"colour": "blue"}, headers=self._admin_headers()
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No valid fields to update"})

    def test_gallery_upload(self):
        headers = self._admin_headers()
        response = self.client.post("/api/gallery", data={"title": "Deck"}, headers=headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No image file provided"})

        response = self.client.post(
            "/api/gallery",
            data={"title": "Deck", "isFeatured": "true", "projectDate": "2024-05-01"},
            files={"image": ("deck.webp", b"img", "image/webp")},
            headers=headers,
        )
        self.assertEqual(response.status_code, 201)
        image = response.json()["image"]
        self.assertTrue(image["isFeatured"])
        self.assertEqual(image["projectDate"], "2024-05-01")
        self.assertIn(image["imageUrl"], self.uploads.stored_files)

        featured = self.client.get("/api/gallery", params={"featured_only": "true"}).json()
        self.assertEqual([i["id"] for i in featured["images"]], [image["id"]])

    def test_gallery_upload_rejects_blank_and_oversized_files(self):
        headers = self._admin_headers()
        response = self.client.post(
            "/api/gallery",
            data={"title": "Deck"},
            files={"image": ("", b"", "application/octet-stream")},
            headers=headers,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No image file provided"})

        response = self.client.post(
            "/api/gallery",
            data={"title": "Deck"},
            files={"image": ("deck.png", b"x" * (10 * 1024 * 1024 + 1), "image/png")},
            headers=headers,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "File too large. Maximum size is 10MB."})
        self.assertEqual(self.uploads.stored_files, {})
        self.assertEqual(self.store.count(GALLERY_IMAGES), 0)

    # User accounts

    def test_user_register_login_and_me(self):
        response = self.client.post(
            "/api/user-auth/register",
            json={"email": "Sam@Example.com", "password": "correct-horse", "firstName": "Sam", "lastName": "Lee"},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["user"]["email"], "sam@example.com")

        duplicate = self.client.post(
            "/api/user-auth/register",
            json={"email": "sam@example.com", "password": "correct-horse", "firstName": "S", "lastName": "L"},
        )
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(duplicate.json(), {"error": "Email already registered"})

        login = self.client.post(
            "/api/user-auth/login", json={"email": "sam@example.com", "password": "correct-horse"}
        )
        self.assertEqual(login.status_code, 200)
        token = login.json()["token"]
        me = self.client.get("/api/user-auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.json()["user"]["firstName"], "Sam")

        wrong = self.client.post(
            "/api/user-auth/login", json={"email": "sam@example.com", "password": "nope-nope"}
        )
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json(), {"error": "Invalid credentials"})

    def test_disabled_user_is_refused(self):
        registered = self.client.post(
            "/api/user-auth/register",
            json={"email": "sam@example.com", "password": "correct-horse", "firstName": "Sam", "lastName": "Lee"},
        ).json()
        self.store.update(USERS, registered["user"]["id"], {"is_active": False})

        login = self.client.post(
            "/api/user-auth/login", json={"email": "sam@example.com", "password": "correct-horse"}
        )
        self.assertEqual(login.status_code, 403)
        self.assertEqual(login.json(), {"error": "Account is disabled"})

        me = self.client.get(
            "/api/user-auth/me", headers={"Authorization": f"Bearer {registered['token']}"}
        )
        self.assertEqual(me.status_code, 403)
        self.assertEqual(me.json(), {"error": "Account is disabled"})

    # Dashboard and meta

    def test_dashboard(self):
        self.client.post("/api/work-orders", data=ORDER_FORM)
        stats = self.client.get("/api/admin/dashboard", headers=self._admin_headers()).json()
        self.assertEqual(stats["pendingOrders"], 1)
        self.assertEqual(stats["ordersByStatus"]["pending"], 1)
        self.assertEqual(stats["popularServices"], [{"serviceType": "plumbing", "count": 1}])
        self.assertEqual(len(stats["weeklyActivity"]), 7)
        self.assertEqual(stats["weeklyActivity"][-1]["count"], 1)

    def test_health_docs_and_unknown_route(self):
        health = self.client.get("/api/health").json()
        self.assertEqual(health["status"], "OK")
        self.assertEqual(health["environment"], "development")
        docs = self.client.get("/api/docs").json()
        self.assertIn("GET /work-orders/my-orders", docs["endpoints"]["workOrders"])
        missing = self.client.get("/api/nowhere")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"error": "Not Found"})


class SqlApiTests(ApiContract, unittest.TestCase):
    def make_store(self):
        return SqlRecordStore("sqlite+pysqlite:///:memory:")


class MongoApiTests(ApiContract, unittest.TestCase):
    def make_store(self):
        return MongoRecordStore(mongomock.MongoClient(), database="api_test")


class StartupTests(unittest.TestCase):
    def test_startup_seeds_services_and_bootstraps_admin(self):
        store = SqlRecordStore("sqlite+pysqlite:///:memory:")
        app = create_app(
            _settings(seed_default_services=True, bootstrap_admin=True),
            store=store,
            uploads=InMemoryUploadStore(),
        )
        with TestClient(app) as client:
            self.assertEqual(len(client.get("/api/services").json()), 8)
            login = client.post(
                "/api/auth/login", json={"username": "admin", "password": "ManForHire2024!"}
            )
            self.assertEqual(login.status_code, 200)
            self.assertEqual(login.json()["message"], "Login successful")

    def test_rate_limit(self):
        app = create_app(
            _settings(rate_limit_max_requests=2),
            store=SqlRecordStore("sqlite+pysqlite:///:memory:"),
            uploads=InMemoryUploadStore(),
        )
        client = TestClient(app)
        self.assertEqual(client.get("/api/health").status_code, 200)
        self.assertEqual(client.get("/api/health").status_code, 200)
        limited = client.get("/api/health")
        self.assertEqual(limited.status_code, 429)
        self.assertEqual(
            limited.json(), {"error": "Too many requests from this IP, please try again later."}
        )


if __name__ == "__main__":
    unittest.main()
