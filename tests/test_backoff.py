from __future__ import annotations

from pycalypshome._backoff import BackoffStrategy


def _upper_bound(low: float, high: float) -> float:
    return high


def test_delay_grows_exponentially_and_is_capped() -> None:
    backoff = BackoffStrategy(
        max_retries=10,
        initial_backoff_s=1.0,
        min_backoff_s=0.0,
        max_backoff_s=5.0,
        rng=_upper_bound,
    )

    ceilings = []
    for _ in range(5):
        ceilings.append(backoff.get_backoff_delay())
        backoff.record_failure()

    assert ceilings == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_full_jitter_draws_between_min_and_ceiling() -> None:
    calls: list[tuple[float, float]] = []

    def rng(low: float, high: float) -> float:
        calls.append((low, high))
        return low

    backoff = BackoffStrategy(initial_backoff_s=2.0, min_backoff_s=0.5, max_backoff_s=60.0, rng=rng)
    backoff.record_failure()

    assert backoff.get_backoff_delay() == 0.5
    assert calls == [(0.5, 4.0)]


def test_min_delay_wins_over_small_ceiling() -> None:
    backoff = BackoffStrategy(initial_backoff_s=0.1, min_backoff_s=1.0, max_backoff_s=60.0, rng=_upper_bound)
    assert backoff.get_backoff_delay() == 1.0


def test_non_escalating_failure_keeps_tier_but_counts_attempt() -> None:
    backoff = BackoffStrategy(max_retries=2, initial_backoff_s=1.0, max_backoff_s=60.0, rng=_upper_bound)

    backoff.record_failure(escalate=False)

    assert backoff.attempts == 1
    assert backoff.get_backoff_delay() == 1.0
    assert backoff.should_retry()

    backoff.record_failure(escalate=False)
    assert not backoff.should_retry()


def test_reset_clears_attempts_and_tier() -> None:
    backoff = BackoffStrategy(max_retries=3, initial_backoff_s=1.0, max_backoff_s=60.0, rng=_upper_bound)
    for _ in range(3):
        backoff.record_failure()
    assert not backoff.should_retry()

    backoff.reset()

    assert backoff.should_retry()
    assert backoff.attempts == 0
    assert backoff.get_backoff_delay() == 1.0


def test_unbounded_strategy_always_retries() -> None:
    backoff = BackoffStrategy(max_retries=None)
    for _ in range(1000):
        backoff.record_failure()
    assert backoff.should_retry()
