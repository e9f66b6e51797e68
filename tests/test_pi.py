import math

import numpy as np
import numpy.testing as npt
import pytest

from Pi import PiEngine, DEFAULT_CHUNK_SIZE, VIS_LIMIT

P = math.pi / 4


def tolerance(n, k=5):
    # k стандартних похибок оцінки 4 * hits / n
    return k * 4 * math.sqrt(P * (1 - P) / n)


def test_is_inside_boundary():
    assert PiEngine.is_inside(1.0, 0.0)
    assert PiEngine.is_inside(0.6, 0.8)
    assert not PiEngine.is_inside(0.8, 0.8)


def test_estimate_converges():
    n = 1_000_000
    est = PiEngine.estimate(n, rng=np.random.default_rng(7))
    npt.assert_allclose(est, math.pi, atol=tolerance(n))


def test_estimate_one_dart_is_zero_or_four():
    for seed in range(20):
        assert PiEngine.estimate(1, rng=np.random.default_rng(seed)) in (0.0, 4.0)


def test_estimate_same_seed_same_result():
    a = PiEngine.estimate(50_000, chunk_size=4096, rng=np.random.default_rng(3))
    b = PiEngine.estimate(50_000, chunk_size=4096, rng=np.random.default_rng(3))
    assert a == b


def test_chunked_and_unchunked_agree_statistically():
    n = 200_000
    whole = PiEngine.estimate(n, chunk_size=n, rng=np.random.default_rng(11))
    chunked = PiEngine.estimate(n, chunk_size=999, rng=np.random.default_rng(12))
    assert abs(whole - chunked) < 2 * tolerance(n)
    assert 0.0 <= chunked <= 4.0


def test_chunk_plan(monkeypatch):
    sizes = []

    def all_hits(n, rng=None):
        sizes.append(n)
        return n

    monkeypatch.setattr(PiEngine, "count_hits", staticmethod(all_hits))
    assert PiEngine.estimate(10, chunk_size=3) == 4.0
    assert sizes == [3, 3, 3, 1]


def test_count_beyond_32_bits(monkeypatch):
    sizes = []

    def three_quarters(n, rng=None):
        sizes.append(n)
        return 3 * n // 4

    monkeypatch.setattr(PiEngine, "count_hits", staticmethod(three_quarters))
    n = 2 ** 34
    assert PiEngine.estimate(n, chunk_size=2 ** 31) == 3.0
    assert sum(sizes) == n
    assert max(sizes) == 2 ** 31


def test_default_chunk_size_used(monkeypatch):
    sizes = []
    monkeypatch.setattr(PiEngine, "count_hits", staticmethod(lambda n, rng=None: sizes.append(n) or 0))
    assert PiEngine.estimate(DEFAULT_CHUNK_SIZE * 2 + 5) == 0.0
    assert sizes == [DEFAULT_CHUNK_SIZE, DEFAULT_CHUNK_SIZE, 5]


@pytest.mark.parametrize("n", [0, -1, -10 ** 12])
def test_non_positive_rejected(n):
    with pytest.raises(ValueError):
        PiEngine.estimate(n)
    with pytest.raises(ValueError):
        PiEngine.estimate_lazy(n)
    with pytest.raises(ValueError):
        PiEngine.estimate_loop(n)


@pytest.mark.parametrize("n", [2.5, "100", True, None])
def test_non_integer_rejected(n):
    with pytest.raises(TypeError):
        PiEngine.estimate(n)


def test_bad_chunk_size():
    with pytest.raises(ValueError):
        PiEngine.estimate(10, chunk_size=0)


def test_numpy_integer_accepted():
    est = PiEngine.estimate(np.int64(1000), rng=np.random.default_rng(0))
    assert isinstance(est, float)


def test_darts_are_lazy_and_in_unit_square():
    gen = PiEngine.darts(1000, np.random.default_rng(5))
    first = next(gen)
    assert isinstance(first, tuple) and len(first) == 2
    rest = list(gen)
    assert len(rest) == 999
    for x, y in [first] + rest:
        assert 0.0 <= x < 1.0 and 0.0 <= y < 1.0


def test_lazy_and_loop_variants():
    n = 20_000
    lazy = PiEngine.estimate_lazy(n, rng=np.random.default_rng(21))
    loop = PiEngine.estimate_loop(n, rng=np.random.default_rng(22))
    npt.assert_allclose(lazy, math.pi, atol=tolerance(n))
    npt.assert_allclose(loop, math.pi, atol=tolerance(n))


def test_chunks():
    assert PiEngine.chunks(10, 3) == [3, 3, 3, 1]
    assert PiEngine.chunks(9, 3) == [3, 3, 3]
    assert PiEngine.chunks(2, 5) == [2]
    with pytest.raises(ValueError):
        PiEngine.chunks(10, 0)


def test_kernel():
    val, n, vis = PiEngine.kernel(5000, rng=np.random.default_rng(1))
    assert n == 5000
    assert val % 4 == 0 and 0 <= val <= 4 * 5000
    x, y, inside = vis
    assert len(x) == len(y) == len(inside) == VIS_LIMIT
    npt.assert_array_equal(inside, x * x + y * y <= 1.0)


def test_kernel_small_batch_keeps_all_points():
    _, _, vis = PiEngine.kernel(10, rng=np.random.default_rng(1))
    assert len(vis[0]) == 10


def test_run_batches_progress():
    steps = list(PiEngine.run_batches(10_000, 1000, max_workers=4, seed=42))
    assert len(steps) == 10
    iters = [s[0] for s in steps]
    assert iters == sorted(iters)
    assert iters[-1] == 10_000
    npt.assert_allclose(steps[-1][1], math.pi, atol=tolerance(10_000))


def test_run_batches_seed_reproducible():
    a = list(PiEngine.run_batches(8000, 700, seed=123))[-1][1]
    b = list(PiEngine.run_batches(8000, 700, seed=123))[-1][1]
    assert a == b


def test_run_batches_stop_flag():
    import threading
    stop = threading.Event()
    stop.set()
    assert list(PiEngine.run_batches(10_000, 100, seed=1, stop=stop)) == []


def test_run_batches_validates():
    with pytest.raises(ValueError):
        list(PiEngine.run_batches(0, 10))


def test_darts_rejects_non_positive():
    with pytest.raises(ValueError):
        PiEngine.darts(-5)
    with pytest.raises(TypeError):
        PiEngine.darts(1.5)


def test_iter_chunks_is_lazy():
    gen = PiEngine.iter_chunks(10 ** 15, 7)
    assert next(gen) == 7
    assert list(PiEngine.iter_chunks(10, 3)) == [3, 3, 3, 1]


def test_run_batches_memory_bounded():
    import tracemalloc
    tracemalloc.start()
    try:
        peak = 0
        steps = 0
        for cur, est, vis in PiEngine.run_batches(4_000_000, 2000, max_workers=4, seed=1):
            steps += 1
            if steps % 100 == 0:
                peak = max(peak, tracemalloc.get_traced_memory()[0])
    finally:
        tracemalloc.stop()
    assert steps == 2000
    assert cur == 4_000_000
    # вікно з 8 пакетів по 2000 точок - кілька сотень КБ, незалежно від n
    assert peak < 10e6


def test_run_batches_keeps_few_batches_in_flight(monkeypatch):
    import threading
    lock = threading.Lock()
    state = {"live": 0, "max": 0}
    real_kernel = PiEngine.kernel

    def counting_kernel(n, *args, rng=None):
        with lock:
            state["live"] += 1
            state["max"] = max(state["max"], state["live"])
        return real_kernel(n, rng=rng)

    monkeypatch.setattr(PiEngine, "kernel", staticmethod(counting_kernel))
    consumed = 0
    for _ in PiEngine.run_batches(1000, 10, max_workers=2, seed=5):
        with lock:
            state["live"] -= 1
        consumed += 1
    assert consumed == 100
    # запущених, але ще не спожитих пакетів не більше 2 * max_workers
    assert state["max"] <= 4
