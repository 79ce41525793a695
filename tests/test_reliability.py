"""
Tests for the retry policy.
"""

from devsetup.core.reliability.retry import RetryPolicy


class TestRetryPolicy:
    def test_success_first_try(self):
        sleeps = []
        policy = RetryPolicy(max_attempts=3, delay=2.0, sleep=sleeps.append)
        result, attempts = policy.run(lambda n: "ok", lambda r: r != "ok")
        assert (result, attempts) == ("ok", 1)
        assert sleeps == []

    def test_retries_until_success(self):
        sleeps = []
        outcomes = iter(["fail", "fail", "ok"])
        policy = RetryPolicy(max_attempts=3, delay=2.0, sleep=sleeps.append)
        result, attempts = policy.run(lambda n: next(outcomes), lambda r: r != "ok")
        assert (result, attempts) == ("ok", 3)
        assert sleeps == [2.0, 2.0]

    def test_gives_up_at_cap(self):
        calls = []
        policy = RetryPolicy(max_attempts=3, delay=0, sleep=lambda s: None)

        def op(n):
            calls.append(n)
            return "fail"

        result, attempts = policy.run(op, lambda r: True)
        assert result == "fail"
        assert attempts == 3
        assert calls == [1, 2, 3]

    def test_non_retryable_stops_immediately(self):
        calls = []
        policy = RetryPolicy(max_attempts=5, delay=1.0, sleep=lambda s: None)

        def op(n):
            calls.append(n)
            return "conflict"

        _, attempts = policy.run(op, lambda r: r == "transient")
        assert attempts == 1
        assert calls == [1]

    def test_single_attempt(self):
        policy = RetryPolicy(max_attempts=1, delay=1.0, sleep=lambda s: None)
        _, attempts = policy.run(lambda n: "fail", lambda r: True)
        assert attempts == 1
