"""Unit tests for the sliding-window rate limiter."""

import pytest

from purchase_links.rate_limit import RateLimiter, client_ip

NOW = 1_000_000.0


@pytest.mark.unit
class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter(max_requests=10, window_seconds=60)
        results = [limiter.check("1.2.3.4", now=NOW + i) for i in range(11)]
        assert all(r.allowed for r in results[:10])
        assert [r.remaining for r in results[:3]] == [9, 8, 7]
        assert results[10].allowed is False
        assert results[10].remaining == 0

    def test_window_slides(self):
        limiter = RateLimiter(max_requests=2, window_seconds=60)
        limiter.check("ip", now=NOW)
        limiter.check("ip", now=NOW + 30)
        assert limiter.check("ip", now=NOW + 59).allowed is False
        # First request has left the window
        assert limiter.check("ip", now=NOW + 60).allowed is True
        assert limiter.check("ip", now=NOW + 61).allowed is False

    def test_refused_requests_are_not_counted(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.check("ip", now=NOW)
        for i in range(5):
            limiter.check("ip", now=NOW + 1 + i)
        assert limiter.check("ip", now=NOW + 60).allowed is True

    def test_clients_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.check("a", now=NOW).allowed
        assert limiter.check("b", now=NOW).allowed
        assert not limiter.check("a", now=NOW).allowed

    def test_evicts_least_recently_used_client(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, max_clients=2)
        limiter.check("a", now=NOW)
        limiter.check("b", now=NOW)
        limiter.check("c", now=NOW)
        assert limiter.status("a", now=NOW).remaining == 1
        assert limiter.status("c", now=NOW).remaining == 0

    def test_status_does_not_record(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        for _ in range(3):
            assert limiter.status("ip", now=NOW).allowed
        assert limiter.check("ip", now=NOW).allowed

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.check("ip", now=NOW)
        limiter.reset("ip")
        assert limiter.check("ip", now=NOW).allowed

    @pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_seconds": 0}, {"max_clients": -1}])
    def test_rejects_bad_settings(self, kwargs):
        with pytest.raises(ValueError):
            RateLimiter(**kwargs)


@pytest.mark.unit
class TestHeaders:
    def test_allowed_headers(self):
        limiter = RateLimiter(max_requests=10, window_seconds=60)
        headers = limiter.check("ip", now=NOW).headers(now=NOW)
        assert headers == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "9",
            "X-RateLimit-Reset": str(int(NOW + 60)),
        }

    def test_refused_headers_include_retry_after(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.check("ip", now=NOW)
        result = limiter.check("ip", now=NOW + 10)
        headers = result.headers(now=NOW + 10)
        assert headers["X-RateLimit-Remaining"] == "0"
        assert headers["Retry-After"] == "50"

    def test_retry_after_is_at_least_one_second(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.check("ip", now=NOW)
        result = limiter.check("ip", now=NOW + 59.9)
        assert result.headers(now=NOW + 59.9)["Retry-After"] == "1"


@pytest.mark.unit
class TestClientIp:
    def test_forwarded_for_first_hop(self):
        assert client_ip({"x-forwarded-for": "10.0.0.1, 172.16.0.1"}) == "10.0.0.1"

    def test_real_ip(self):
        assert client_ip({"x-real-ip": " 10.0.0.2 "}) == "10.0.0.2"

    def test_fallback(self):
        assert client_ip({}) == "127.0.0.1"
        assert client_ip({"x-forwarded-for": ""}, fallback="192.0.2.1") == "192.0.2.1"
