from storyweave.core.rng import RNG


def test_same_seed_replays_draws() -> None:
    rng_a = RNG(12345)
    rng_b = RNG(12345)

    assert [rng_a.percent() for _ in range(5)] == [rng_b.percent() for _ in range(5)]


def test_different_seeds_diverge() -> None:
    rng_a = RNG(11111)
    rng_b = RNG(22222)

    assert [rng_a.percent() for _ in range(5)] != [rng_b.percent() for _ in range(5)]


def test_percent_stays_in_half_open_range() -> None:
    rng = RNG(7)
    draws = [rng.percent() for _ in range(2000)]
    assert all(0 <= value < 100 for value in draws)
