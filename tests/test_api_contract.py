import tempfile
import unittest
from dataclasses import replace
from pathlib import Path
from urllib.parse import urlparse

from billed.api.app import create_app
from billed.domain.enums import Role
from billed.infrastructure.persistence.sqla.engine import dispose_engine
from billed.settings import Settings, load_settings

try:
    from fastapi.testclient import TestClient
except ImportError:  # pragma: no cover
    TestClient = None

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 32

BILL_FORM = {
    "type": "Transports",
    "name": "Vol Paris Londres",
    "date": "2021-01-01",
    "amount": "348",
    "vat": "70",
    "pct": "20",
    "commentary": "",
    "status": "pending",
}


class _ApiTestCase(unittest.TestCase):
    def make_settings(self) -> Settings | None:
        return None

    def setUp(self) -> None:
        if TestClient is None:
            self.skipTest("fastapi TestClient unavailable (httpx missing)")
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.app = create_app(self.root, self.make_settings())
        ctx = self.app.state.ctx
        self.ctx = ctx
        for email, role in (("a@x.com", Role.EMPLOYEE), ("b@x.com", Role.EMPLOYEE), ("admin@x.com", Role.ADMIN)):
            ctx.users.add_user(email, role)
        self.client = TestClient(self.app)
        self.client.__enter__()

    def tearDown(self) -> None:
        self.client.__exit__(None, None, None)
        dispose_engine(self.ctx.db_path)
        self._tmp.cleanup()

    def auth(self, email: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.ctx.tokens.issue(email)}"}

    def stored_files(self) -> list[Path]:
        return [p for p in self.ctx.upload_dir.rglob("*") if p.is_file()]


class BillsApiTests(_ApiTestCase):
    def test_health_and_error_envelope(self) -> None:
        health = self.client.get("/api/health", headers={"X-Request-Id": "req-123"})
        self.assertEqual(health.status_code, 200)
        self.assertTrue(health.json()["data"]["ok"])
        self.assertEqual(health.json()["meta"]["request_id"], "req-123")
        self.assertEqual(health.headers["X-Request-Id"], "req-123")

        not_found = self.client.get("/api/nope")
        self.assertEqual(not_found.status_code, 404)
        self.assertEqual(not_found.json()["error"]["code"], "not_found")

    def test_wrong_method_on_known_route_is_405(self) -> None:
        response = self.client.delete("/api/bills", headers=self.auth("a@x.com"))
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.json()["error"]["code"], "method_not_allowed")
        self.assertIn("GET", response.headers["allow"])

    def test_anonymous_and_bad_credentials_are_rejected_alike(self) -> None:
        anonymous = self.client.get("/api/bills")
        forged = self.client.get("/api/bills", headers={"Authorization": "Bearer not-a-jwt"})
        unknown = self.client.get("/api/bills", headers=self.auth("ghost@x.com"))
        for response in (anonymous, forged, unknown):
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json()["error"]["code"], "unauthorized")
            self.assertEqual(response.json()["error"]["message"], "not allowed")

    def test_json_create_list_and_get(self) -> None:
        created = self.client.post(
            "/api/bills",
            json={**BILL_FORM, "email": "b@x.com", "fileUrl": "https://cdn.test/r.jpg", "fileName": "r.jpg"},
            headers=self.auth("a@x.com"),
        )
        self.assertEqual(created.status_code, 201)
        bill = created.json()["data"]
        self.assertEqual(bill["email"], "a@x.com")
        self.assertEqual(bill["amount"], 348)
        self.assertEqual(bill["fileUrl"], "https://cdn.test/r.jpg")

        listed = self.client.get("/api/bills", headers=self.auth("a@x.com")).json()
        self.assertEqual(listed["meta"]["count"], 1)
        self.assertEqual(listed["data"][0]["date"], "1 Jan. 21")
        self.assertEqual(listed["data"][0]["status"], "En attente")

        self.assertEqual(self.client.get("/api/bills", headers=self.auth("b@x.com")).json()["data"], [])
        self.assertEqual(len(self.client.get("/api/bills", headers=self.auth("admin@x.com")).json()["data"]), 1)

        fetched = self.client.get(f"/api/bills/{bill['id']}", headers=self.auth("a@x.com"))
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["data"]["name"], "Vol Paris Londres")

    def test_other_employee_cannot_tell_missing_from_foreign(self) -> None:
        bill = self.client.post("/api/bills", json=BILL_FORM, headers=self.auth("b@x.com")).json()["data"]
        foreign = self.client.get(f"/api/bills/{bill['id']}", headers=self.auth("a@x.com"))
        missing = self.client.get("/api/bills/does-not-exist", headers=self.auth("a@x.com"))
        self.assertEqual(foreign.status_code, 401)
        self.assertEqual(missing.status_code, 401)
        self.assertEqual(foreign.json()["error"], missing.json()["error"])

    def test_two_phase_upload_then_finalize(self) -> None:
        uploaded = self.client.post(
            "/api/bills",
            files={"file": ("receipt.png", PNG, "image/png")},
            headers=self.auth("a@x.com"),
        )
        self.assertEqual(uploaded.status_code, 201)
        draft = uploaded.json()["data"]
        self.assertEqual(draft["fileName"], "receipt.png")
        self.assertTrue(draft["fileUrl"].startswith(self.ctx.settings.public_base_url + "/"))
        self.assertTrue(draft["fileUrl"].endswith("/receipt.png"))

        stored = self.client.get(urlparse(draft["fileUrl"]).path)
        self.assertEqual(stored.status_code, 200)
        self.assertEqual(stored.content, PNG)

        finalized = self.client.put(
            f"/api/bills/{draft['key']}",
            json={**BILL_FORM, "email": "a@x.com", "fileUrl": draft["fileUrl"], "fileName": "receipt.png"},
            headers=self.auth("a@x.com"),
        )
        self.assertEqual(finalized.status_code, 200)

        shown = self.client.get(f"/api/bills/{draft['key']}", headers=self.auth("a@x.com")).json()["data"]
        self.assertEqual(shown["name"], "Vol Paris Londres")
        self.assertEqual(shown["fileUrl"], draft["fileUrl"])
        self.assertEqual(shown["date"], "1 Jan. 21")

    def test_multipart_create_with_fields(self) -> None:
        created = self.client.post(
            "/api/bills",
            data=BILL_FORM,
            files={"file": ("ticket.jpg", PNG, "image/jpeg")},
            headers=self.auth("a@x.com"),
        )
        self.assertEqual(created.status_code, 201)
        key = created.json()["data"]["key"]
        shown = self.client.get(f"/api/bills/{key}", headers=self.auth("a@x.com")).json()["data"]
        self.assertEqual(shown["amount"], 348)
        self.assertEqual(shown["fileName"], "ticket.jpg")

    def test_non_image_upload_is_a_validation_failure(self) -> None:
        rejected = self.client.post(
            "/api/bills",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=self.auth("a@x.com"),
        )
        self.assertEqual(rejected.status_code, 400)
        self.assertEqual(rejected.json()["error"]["code"], "validation_error")
        self.assertEqual(self.client.get("/api/bills", headers=self.auth("a@x.com")).json()["data"], [])
        self.assertEqual(self.stored_files(), [])

    def test_admin_review_and_employee_limits(self) -> None:
        bill = self.client.post("/api/bills", json=BILL_FORM, headers=self.auth("a@x.com")).json()["data"]

        refused = self.client.patch(
            f"/api/bills/{bill['id']}",
            json={"status": "accepted"},
            headers=self.auth("a@x.com"),
        )
        self.assertEqual(refused.status_code, 401)

        reviewed = self.client.patch(
            f"/api/bills/{bill['id']}",
            json={"status": "accepted", "commentAdmin": "ok", "email": "admin@x.com"},
            headers=self.auth("admin@x.com"),
        )
        self.assertEqual(reviewed.status_code, 200)
        data = reviewed.json()["data"]
        self.assertEqual(data["status"], "accepted")
        self.assertEqual(data["commentAdmin"], "ok")
        self.assertEqual(data["email"], "a@x.com")

        shown = self.client.get(f"/api/bills/{bill['id']}", headers=self.auth("a@x.com")).json()["data"]
        self.assertEqual(shown["status"], "Accepté")

    def test_invalid_payload(self) -> None:
        response = self.client.post("/api/bills", json={"amount": "lots"}, headers=self.auth("a@x.com"))
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "validation_error")

        response = self.client.post(
            "/api/bills",
            content=b"{not json",
            headers={**self.auth("a@x.com"), "Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)

    def test_delete(self) -> None:
        bill = self.client.post("/api/bills", json=BILL_FORM, headers=self.auth("a@x.com")).json()["data"]
        self.assertEqual(self.client.delete(f"/api/bills/{bill['id']}", headers=self.auth("b@x.com")).status_code, 401)
        removed = self.client.delete(f"/api/bills/{bill['id']}", headers=self.auth("a@x.com"))
        self.assertEqual(removed.status_code, 200)
        self.assertEqual(removed.json()["data"], {"id": bill["id"], "removed": True})
        self.assertEqual(self.client.get(f"/api/bills/{bill['id']}", headers=self.auth("a@x.com")).status_code, 401)


class UploadLimitTests(_ApiTestCase):
    LIMIT = 16

    def make_settings(self) -> Settings:
        return replace(load_settings(), max_upload_bytes=self.LIMIT)

    def assert_nothing_stored(self) -> None:
        self.assertEqual(self.client.get("/api/bills", headers=self.auth("a@x.com")).json()["data"], [])
        self.assertEqual(self.stored_files(), [])

    def test_declared_length_over_limit_is_refused(self) -> None:
        response = self.client.post(
            "/api/bills",
            files={"file": ("receipt.png", PNG, "image/png")},
            headers=self.auth("a@x.com"),
        )
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json()["error"]["code"], "payload_too_large")
        self.assert_nothing_stored()

    def test_streamed_file_over_limit_is_refused(self) -> None:
        # chunked body: no Content-Length, so the size is only known once the file is read
        boundary = "billed-boundary"
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="file"; filename="receipt.png"\r\n'
            "Content-Type: image/png\r\n\r\n"
        ).encode() + PNG + f"\r\n--{boundary}--\r\n".encode()
        response = self.client.post(
            "/api/bills",
            content=iter([body]),
            headers={**self.auth("a@x.com"), "Content-Type": f"multipart/form-data; boundary={boundary}"},
        )
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json()["error"]["code"], "payload_too_large")
        self.assert_nothing_stored()


if __name__ == "__main__":
    unittest.main()
