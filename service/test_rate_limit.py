from service.rate_limit import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_limit_within_window():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
    assert limiter.check("1.2.3.4")
    assert limiter.check("1.2.3.4")
    assert not limiter.check("1.2.3.4")
    assert limiter.check("5.6.7.8")

    clock.now = 15
    assert limiter.retry_after("1.2.3.4") == 45
    assert limiter.retry_after("unknown") == 0


def test_window_resets():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=1, window_seconds=10, clock=clock)
    assert limiter.check("ip")
    assert not limiter.check("ip")
    clock.now = 10.5
    assert limiter.check("ip")


def test_reset_clears_counts():
    limiter = RateLimiter(max_requests=1)
    limiter.check("ip")
    limiter.reset()
    assert limiter.check("ip")


def test_expired_windows_are_dropped():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=1, window_seconds=10, clock=clock)
    for uid in ("a", "b", "c"):
        limiter.check(uid)
    assert limiter.tracked == 3
    clock.now = 11
    limiter.check("d")
    assert limiter.tracked == 1
    assert limiter.retry_after("a") == 0
