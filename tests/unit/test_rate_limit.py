from fastapi.testclient import TestClient

from mediauth.constants import Messages
from mediauth.middleware.rate_limit import SlidingWindowRateLimiter, client_identity
from tests.conftest import HandlerCalls, build_app, make_settings


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limiter_allows_up_to_max_then_rejects():
    limiter = SlidingWindowRateLimiter(max_requests=3, window_seconds=900, clock=FakeClock())
    decisions = [limiter.hit("1.2.3.4") for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert decisions[-1].reset_after == 900


def test_limiter_window_slides():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=900, clock=clock)
    assert limiter.hit("a").allowed
    clock.now += 600
    assert limiter.hit("a").allowed
    assert not limiter.hit("a").allowed

    # first hit leaves the window; only one slot frees up
    clock.now += 301
    decision = limiter.hit("a")
    assert decision.allowed
    assert decision.remaining == 0
    assert decision.reset_after == 599
    assert not limiter.hit("a").allowed


def test_limiter_keys_are_independent():
    limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=900, clock=FakeClock())
    assert limiter.hit("a").allowed
    assert not limiter.hit("a").allowed
    assert limiter.hit("b").allowed


def test_limiter_reset():
    limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=900, clock=FakeClock())
    limiter.hit("a")
    limiter.reset("a")
    assert limiter.hit("a").allowed


def test_client_identity_prefers_forwarded_only_when_trusted():
    scope = {"client": ("10.0.0.1", 5555), "headers": [(b"x-forwarded-for", b"203.0.113.9, 10.0.0.1")]}
    assert client_identity(scope) == "10.0.0.1"
    assert client_identity(scope, trust_proxy=True) == "203.0.113.9"
    assert client_identity({"headers": []}) == "unknown"


def test_api_requests_beyond_limit_get_fixed_rejection():
    calls = HandlerCalls()
    client = TestClient(build_app(make_settings(rate_limit_max=3), calls=calls))
    for _ in range(3):
        r = client.get("/api/patients/ok")
        assert r.status_code == 200
        assert r.headers["ratelimit-limit"] == "3"

    r = client.get("/api/patients/ok")
    assert r.status_code == 429
    assert r.json() == {"error": Messages.RATE_LIMITED}
    assert r.headers["ratelimit-remaining"] == "0"
    assert int(r.headers["retry-after"]) > 0
    assert calls.names == ["ok", "ok", "ok"]


def test_distinct_client_identity_is_unaffected():
    client = TestClient(build_app(make_settings(rate_limit_max=1, trust_proxy=True)))
    assert client.get("/api/patients/ok", headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 200
    assert client.get("/api/patients/ok", headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 429
    assert client.get("/api/patients/ok", headers={"X-Forwarded-For": "198.51.100.2"}).status_code == 200


def test_paths_outside_api_prefix_are_not_limited():
    client = TestClient(build_app(make_settings(rate_limit_max=1)))
    for _ in range(3):
        assert client.get("/").status_code == 200
    assert "ratelimit-limit" not in client.get("/").headers


def test_ceiling_depends_on_environment():
    assert make_settings(environment="production").rate_limit_ceiling == 100
    assert make_settings(environment="development").rate_limit_ceiling == 1000
    assert make_settings(rate_limit_max=7).rate_limit_ceiling == 7
