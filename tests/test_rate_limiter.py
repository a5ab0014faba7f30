from backend.server.rate_limiter import ClientRateLimiter, TokenBucketRateLimiter


class TestTokenBucketRateLimiter:

    def test_burst_then_reject(self):
        limiter = TokenBucketRateLimiter(tokens_per_second=0.001, max_tokens=2, name="test")

        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

        stats = limiter.get_stats()
        assert stats["accepted_count"] == 2
        assert stats["rejected_count"] == 1

    def test_refill(self, monkeypatch):
        limiter = TokenBucketRateLimiter(tokens_per_second=10, max_tokens=1)
        assert limiter.try_acquire() is True

        monkeypatch.setattr(limiter, "last_update", limiter.last_update - 1)

        assert limiter.try_acquire() is True


class TestClientRateLimiter:

    def test_buckets_are_per_client(self):
        limiter = ClientRateLimiter(requests_per_minute=1)

        assert limiter.check("10.0.0.1") is True
        assert limiter.check("10.0.0.1") is False
        assert limiter.check("10.0.0.2") is True

    def test_anonymous_clients_share_a_bucket(self):
        limiter = ClientRateLimiter(requests_per_minute=1)

        assert limiter.check(None) is True
        assert limiter.check(None) is False

    def test_idle_buckets_are_evicted(self):
        limiter = ClientRateLimiter(requests_per_minute=10, idle_ttl_sec=60)
        limiter.check("10.0.0.1")
        limiter.check("10.0.0.2")
        assert len(limiter) == 2

        limiter._buckets["10.0.0.1"].last_update -= 61
        limiter._last_prune -= 61
        limiter.check("10.0.0.3")

        assert len(limiter) == 2
        assert "10.0.0.1" not in limiter._buckets

    def test_active_buckets_survive_pruning(self):
        limiter = ClientRateLimiter(requests_per_minute=1, idle_ttl_sec=60)
        limiter.check("10.0.0.1")

        limiter._last_prune -= 61
        limiter.check("10.0.0.2")

        assert limiter.check("10.0.0.1") is False
        assert len(limiter) == 2
