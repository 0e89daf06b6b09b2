from reachmai.services.rate_limiter import RateLimiter


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60)
        assert [limiter.hit("1.2.3.4")[0] for _ in range(4)] == [True, True, True, False]

    def test_refused_attempt_reports_retry_after(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.hit("1.2.3.4")
        allowed, retry_after = limiter.hit("1.2.3.4")
        assert not allowed
        assert 1 <= retry_after <= 61

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.hit("1.2.3.4")[0]
        assert limiter.hit("5.6.7.8")[0]
        assert limiter.remaining("1.2.3.4") == 0

    def test_window_slides(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("reachmai.services.rate_limiter.time.time", lambda: now[0])
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.hit("ip")[0]
        assert not limiter.hit("ip")[0]
        now[0] += 61
        assert limiter.hit("ip")[0]

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.hit("ip")
        limiter.reset()
        assert limiter.remaining("ip") == 1
