#!/usr/bin/env python3
"""
Test suite for the response cache, rate limiter and settings

Usage:
    pip install -e ".[test]"
    python test_stores.py      # or: pytest test_stores.py
"""

import json
import os
import sys
import tempfile
import threading
from dataclasses import dataclass
from unittest import mock

try:
    from rdap_resolver.cache import ResponseCache
    from rdap_resolver.config import Settings, get_config_file, load_settings
    from rdap_resolver.errors import RateLimitExceeded
    from rdap_resolver.limiter import (
        RateLimiter,
        client_id_from_headers,
        rate_limit_headers,
    )
except ImportError as e:
    print(f"Error: {e}")
    print()
    print("Install the package first:")
    print('    pip install -e ".[test]"')
    sys.exit(1)


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@dataclass
class TestResult:
    """Result of a single test."""

    __test__ = False

    name: str
    passed: bool
    message: str = ""


class TestRunner:
    """Runs tests and collects results."""

    __test__ = False

    def __init__(self):
        self.results: list[TestResult] = []
        self.current_section: str = ""

    def section(self, name: str):
        """Start a new test section."""
        self.current_section = name
        print(f"\n{'=' * 60}")
        print(f"  {name}")
        print(f"{'=' * 60}")

    def test(self, name: str, condition: bool, message: str = ""):
        """Record a test result."""
        result = TestResult(
            name=f"{self.current_section}: {name}", passed=condition, message=message
        )
        self.results.append(result)

        if condition:
            print(f"  ✓ {name}")
        else:
            print(f"  ✗ {name}")
            if message:
                print(f"    → {message}")

    def failures(self) -> list[str]:
        return [f"{r.name} {r.message}".strip() for r in self.results if not r.passed]

    def summary(self) -> bool:
        """Print summary and return True if all tests passed."""
        failed = self.failures()
        total = len(self.results)

        print(f"\n{'=' * 60}")
        print(f"  SUMMARY: {total - len(failed)}/{total} passed, {len(failed)} failed")
        print(f"{'=' * 60}")

        for name in failed:
            print(f"  ✗ {name}")

        return not failed


def run_cache_tests(runner: TestRunner):
    # =========================================================================
    # ResponseCache
    # =========================================================================
    runner.section("ResponseCache")

    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    value = {"objectClassName": "domain"}

    cache.set("k", value, 1.0)
    runner.test("immediate get returns value", cache.get("k") == value)
    runner.test("value is not copied", cache.get("k") is value)

    clock.advance(1.0)
    runner.test("still valid exactly at expiry", cache.get("k") is value)

    clock.advance(0.001)
    runner.test("expired after ttl", cache.get("k") is None)
    runner.test("expired entry evicted on read", len(cache) == 0)

    runner.test("missing key returns None", cache.get("missing") is None)

    cache.set("k", "first", 10.0)
    clock.advance(5.0)
    cache.set("k", "second", 10.0)
    clock.advance(7.0)
    runner.test("set overwrites value and resets expiry", cache.get("k") == "second")

    cache.set("other", 1, 60.0)
    cache.delete("other")
    runner.test("delete removes entry", cache.get("other") is None)

    cache.set("a", 1, 60.0)
    cache.set("b", 2, 60.0)
    cache.clear()
    runner.test("clear empties store", len(cache) == 0)

    # Expired entries are not swept without a read
    cache.set("stale", 1, 1.0)
    clock.advance(100.0)
    runner.test("no proactive sweep", len(cache) == 1)

    # Concurrent writers do not corrupt the store
    cache = ResponseCache(clock=clock)

    def writer(prefix: str):
        for i in range(200):
            cache.set(f"{prefix}{i}", i, 60.0)
            cache.get(f"{prefix}{i}")

    threads = [threading.Thread(target=writer, args=(f"t{n}-",)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    runner.test("concurrent writes all land", len(cache) == 8 * 200, f"got {len(cache)}")


def run_limiter_tests(runner: TestRunner):
    # =========================================================================
    # RateLimiter
    # =========================================================================
    runner.section("RateLimiter")

    clock = FakeClock()
    limiter = RateLimiter(clock=clock)

    results = [limiter.check("client", 2, 60.0) for _ in range(3)]
    runner.test(
        "limit=2 allows two then denies",
        [r.allowed for r in results] == [True, True, False],
        f"got {[r.allowed for r in results]}",
    )
    runner.test("remaining after first call is 1", results[0].remaining == 1)
    runner.test("remaining reaches 0 on second call", results[1].remaining == 0)
    runner.test("denied call reports 0 remaining", results[2].remaining == 0)
    runner.test("window reset is now + window", results[0].reset_at == clock.now + 60.0)
    runner.test("reset time fixed within window", results[2].reset_at == results[0].reset_at)
    runner.test("retry_after counts down to reset", results[2].retry_after == 60)

    # Denied calls do not increment
    for _ in range(5):
        limiter.check("client", 2, 60.0)
    clock.advance(59.0)
    info = limiter.check("client", 2, 60.0)
    runner.test("still denied before reset", not info.allowed)
    runner.test("retry_after shrinks", info.retry_after == 1, f"got {info.retry_after}")

    clock.advance(1.0)
    info = limiter.check("client", 2, 60.0)
    runner.test("new window starts exactly at reset", info.allowed and info.remaining == 1)
    runner.test("new window reset moves forward", info.reset_at == clock.now + 60.0)

    # Clients are independent
    other = limiter.check("other", 2, 60.0)
    runner.test("other client has its own window", other.allowed and other.remaining == 1)

    # Limit of 1
    single = RateLimiter(clock=clock)
    first = single.check("c", 1, 10.0)
    second = single.check("c", 1, 10.0)
    runner.test("limit=1 allows once", first.allowed and first.remaining == 0)
    runner.test("limit=1 denies second", not second.allowed)

    # Thread safety: the count never passes the limit
    shared = RateLimiter(clock=clock)
    allowed = []
    lock = threading.Lock()

    def hammer():
        for _ in range(50):
            info = shared.check("busy", 100, 60.0)
            with lock:
                allowed.append(info.allowed)

    threads = [threading.Thread(target=hammer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    runner.test("exactly limit requests allowed under contention", sum(allowed) == 100,
                f"got {sum(allowed)}")

    # =========================================================================
    # RateLimitExceeded
    # =========================================================================
    runner.section("RateLimitExceeded")

    exc = RateLimitExceeded(second)
    runner.test("status is 429", exc.status_code == 429)
    runner.test("carries retry_after", exc.retry_after == second.retry_after)
    runner.test("dict has retryAfter", exc.to_dict()["retryAfter"] == second.retry_after)
    runner.test("headers carry Retry-After", exc.headers["Retry-After"] == str(second.retry_after))
    runner.test("headers carry limit", exc.headers["X-RateLimit-Remaining"] == "0")

    # =========================================================================
    # client_id_from_headers / rate_limit_headers
    # =========================================================================
    runner.section("client identity & headers")

    runner.test("first forwarded hop", client_id_from_headers(
        {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}) == "203.0.113.7")
    runner.test("forwarded header case-insensitive", client_id_from_headers(
        {"x-forwarded-for": " 198.51.100.2 "}) == "198.51.100.2")
    runner.test("falls back to x-real-ip", client_id_from_headers(
        {"X-Real-IP": "198.51.100.9"}) == "198.51.100.9")
    runner.test("forwarded wins over real ip", client_id_from_headers(
        {"X-Real-IP": "198.51.100.9", "X-Forwarded-For": "203.0.113.1"}) == "203.0.113.1")
    runner.test("no headers is unknown", client_id_from_headers({}) == "unknown")
    runner.test("None headers is unknown", client_id_from_headers(None) == "unknown")
    runner.test("empty forwarded is unknown", client_id_from_headers(
        {"X-Forwarded-For": ""}) == "unknown")

    clock = FakeClock(start=1000.0)
    info = RateLimiter(clock=clock).check("c", 30, 60.5)
    headers = rate_limit_headers(info)
    runner.test("limit header", headers["X-RateLimit-Limit"] == "30")
    runner.test("remaining header", headers["X-RateLimit-Remaining"] == "29")
    runner.test("reset header rounds up", headers["X-RateLimit-Reset"] == "1061")


def run_settings_tests(runner: TestRunner):
    # =========================================================================
    # Settings
    # =========================================================================
    runner.section("Settings")

    with tempfile.TemporaryDirectory() as tmp:
        env = {"XDG_CONFIG_HOME": tmp, "APPDATA": tmp}
        with mock.patch.dict(os.environ, env, clear=False):
            for name in list(os.environ):
                if name.startswith("RDAP_RESOLVER_"):
                    os.environ.pop(name)

            settings = load_settings()
            runner.test("defaults without config", settings == Settings())
            runner.test("default rate limit is 30/60s",
                        settings.rate_limit == 30 and settings.rate_window == 60.0)
            runner.test("default response ttl is 6h", settings.response_ttl == 21600.0)
            runner.test("default bootstrap ttl is 24h", settings.bootstrap_ttl == 86400.0)
            runner.test("no explicit http timeout", settings.http_timeout is None)

            config_file = get_config_file()
            config_file.parent.mkdir(parents=True, exist_ok=True)
            config_file.write_text(json.dumps({"rate_limit": 5, "response_ttl": 120}))
            settings = load_settings()
            runner.test("config file read", settings.rate_limit == 5 and settings.response_ttl == 120.0)

            os.environ["RDAP_RESOLVER_RATE_LIMIT"] = "7"
            os.environ["RDAP_RESOLVER_HTTP_TIMEOUT"] = "2.5"
            settings = load_settings()
            runner.test("env overrides config file", settings.rate_limit == 7)
            runner.test("http timeout from env", settings.http_timeout == 2.5)

            os.environ["RDAP_RESOLVER_RATE_LIMIT"] = "lots"
            os.environ["RDAP_RESOLVER_RATE_WINDOW"] = "-1"
            settings = load_settings()
            runner.test("invalid value falls back to default", settings.rate_limit == 30)
            runner.test("non-positive value falls back to default", settings.rate_window == 60.0)

            config_file.write_text("{not json")
            os.environ.pop("RDAP_RESOLVER_RATE_LIMIT")
            os.environ.pop("RDAP_RESOLVER_RATE_WINDOW")
            os.environ.pop("RDAP_RESOLVER_HTTP_TIMEOUT")
            runner.test("broken config file ignored", load_settings() == Settings())


def test_response_cache():
    runner = TestRunner()
    run_cache_tests(runner)
    assert runner.summary(), runner.failures()


def test_rate_limiter():
    runner = TestRunner()
    run_limiter_tests(runner)
    assert runner.summary(), runner.failures()


def test_settings():
    runner = TestRunner()
    run_settings_tests(runner)
    assert runner.summary(), runner.failures()


def main():
    runner = TestRunner()

    print("\n" + "=" * 60)
    print("  CACHE, LIMITER & SETTINGS - TEST SUITE")
    print("=" * 60)

    run_cache_tests(runner)
    run_limiter_tests(runner)
    run_settings_tests(runner)

    sys.exit(0 if runner.summary() else 1)


if __name__ == "__main__":
    main()
