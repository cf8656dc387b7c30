import unittest
from datetime import timedelta
from types import SimpleNamespace

from fastapi.testclient import TestClient
from starlette.requests import Request

from filmvault.api.errors import INVALID_TOKEN_MESSAGE, SERVER_ERROR_MESSAGE
from filmvault.core.context import MissingAuthStateError
from filmvault.deps.auth import get_auth_state
from filmvault.middleware.rate_limit import client_ip
from support import auth_header, create_user, make_app


def _request(peer: str, headers: dict[str, str] | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "client": (peer, 1234)})


class TestRecover(unittest.TestCase):
    def setUp(self) -> None:
        self.app, _ = make_app()

        def boom() -> None:
            raise RuntimeError("kaboom")

        self.app.add_api_route("/boom", boom)
        self.client = TestClient(self.app)

    def test_unhandled_exception_becomes_500(self) -> None:
        with self.assertLogs("filmvault.api.errors", level="ERROR"):
            response = self.client.get("/boom")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": SERVER_ERROR_MESSAGE})
        self.assertEqual(response.headers["connection"], "close")

    def test_missing_auth_state_is_an_internal_error(self) -> None:
        with self.assertRaises(MissingAuthStateError):
            get_auth_state(SimpleNamespace(state=SimpleNamespace()))


class TestCors(unittest.TestCase):
    def setUp(self) -> None:
        app, _ = make_app(CORS_TRUSTED_ORIGINS=["https://ok.example"])
        self.client = TestClient(app)

    def test_trusted_origin_is_echoed(self) -> None:
        response = self.client.get("/v1/healthcheck", headers={"Origin": "https://ok.example"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "https://ok.example")
        vary = response.headers.get_list("vary")
        self.assertIn("Origin", vary)
        self.assertIn("Access-Control-Request-Method", vary)
        self.assertIn("Authorization", vary)

    def test_untrusted_origin_gets_no_allow_header(self) -> None:
        response = self.client.get("/v1/healthcheck", headers={"Origin": "https://evil.example"})

        self.assertEqual(response.status_code, 200)
        self.assertNotIn("access-control-allow-origin", response.headers)
        self.assertIn("Origin", response.headers.get_list("vary"))

    def test_preflight_is_answered_directly(self) -> None:
        response = self.client.options(
            "/v1/movies/1",
            headers={"Origin": "https://ok.example", "Access-Control-Request-Method": "PATCH"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "https://ok.example")
        self.assertEqual(response.headers["access-control-allow-methods"], "OPTIONS, PUT, PATCH, DELETE")
        self.assertEqual(response.headers["access-control-allow-headers"], "Authorization, Content-Type")

    def test_options_from_untrusted_origin_reaches_router(self) -> None:
        response = self.client.options(
            "/v1/healthcheck",
            headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "GET"},
        )
        self.assertEqual(response.status_code, 405)


class TestRateLimit(unittest.TestCase):
    def test_burst_is_admitted_then_429(self) -> None:
        app, _ = make_app(LIMITER_ENABLED=True, LIMITER_RPS=0.001, LIMITER_BURST=3)
        client = TestClient(app)

        statuses = [client.get("/v1/healthcheck").status_code for _ in range(4)]

        self.assertEqual(statuses, [200, 200, 200, 429])
        response = client.get("/v1/healthcheck")
        self.assertEqual(response.json(), {"error": "rate limit exceeded"})

    def test_forwarding_headers_need_a_trusted_peer(self) -> None:
        headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.2", "X-Real-IP": "203.0.113.10"}

        self.assertEqual(client_ip(_request("198.51.100.1", headers), frozenset()), "198.51.100.1")
        self.assertEqual(client_ip(_request("10.0.0.1", headers), frozenset({"10.0.0.1"})), "203.0.113.9")
        self.assertEqual(
            client_ip(_request("10.0.0.1", {"X-Real-IP": "203.0.113.10"}), frozenset({"10.0.0.1"})),
            "203.0.113.10",
        )
        self.assertEqual(client_ip(_request("10.0.0.1"), frozenset({"10.0.0.1"})), "10.0.0.1")


class TestAuthenticate(unittest.TestCase):
    def setUp(self) -> None:
        self.app, self.factory = make_app()
        self.client = TestClient(self.app)

    def assert_invalid_token(self, response) -> None:
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": INVALID_TOKEN_MESSAGE})
        self.assertEqual(response.headers["www-authenticate"], "Bearer")
        self.assertIn("Authorization", response.headers.get_list("vary"))

    def test_no_header_is_anonymous(self) -> None:
        response = self.client.get("/v1/movies")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "you must be authenticated to access this resource"})

    def test_malformed_header(self) -> None:
        self.assert_invalid_token(self.client.get("/v1/healthcheck", headers={"Authorization": "Token abc"}))
        self.assert_invalid_token(self.client.get("/v1/healthcheck", headers={"Authorization": "Bearer"}))
        self.assert_invalid_token(
            self.client.get("/v1/healthcheck", headers={"Authorization": "Bearer a b"}),
        )

    def test_wrong_length_token(self) -> None:
        self.assert_invalid_token(self.client.get("/v1/healthcheck", headers={"Authorization": "Bearer short"}))

    def test_never_issued_and_expired_tokens_look_the_same(self) -> None:
        user = create_user(self.factory)
        expired = auth_header(self.factory, user, ttl=timedelta(hours=-1))

        unknown = self.client.get("/v1/healthcheck", headers={"Authorization": "Bearer " + "Z" * 26})
        stale = self.client.get("/v1/healthcheck", headers=expired)

        self.assert_invalid_token(unknown)
        self.assert_invalid_token(stale)
        self.assertEqual(unknown.json(), stale.json())

    def test_valid_token_authenticates(self) -> None:
        user = create_user(self.factory)
        response = self.client.get("/v1/movies", headers=auth_header(self.factory, user))
        self.assertEqual(response.status_code, 200)


class TestMetricsEndpoint(unittest.TestCase):
    def test_debug_vars_counts_requests(self) -> None:
        app, _ = make_app(VERSION="9.9.9")
        client = TestClient(app)
        client.get("/v1/healthcheck")
        client.get("/v1/nowhere")

        response = client.get("/debug/vars")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["version"], "9.9.9")
        self.assertEqual(payload["total_requests_received"], 3)
        self.assertEqual(payload["total_responses_sent"], 2)
        self.assertEqual(payload["total_responses_sent_by_status"], {"200": 1, "404": 1})
        self.assertGreater(payload["threads"], 0)
        self.assertIn("timestamp", payload)
        self.assertIn("database", payload)
