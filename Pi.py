import concurrent.futures
import itertools
import logging
import os
from numbers import Integral

import numpy as np

logger = logging.getLogger(__name__)

# Розмір пакету за замовчуванням: 1e6 точок ~ 16 МБ на дві координати
DEFAULT_CHUNK_SIZE = 1_000_000
# Не більше стільки точок віддаємо на візуалізацію
VIS_LIMIT = 2000


def _check_count(n, name="n"):
    if isinstance(n, bool) or not isinstance(n, Integral):
        raise TypeError(f"{name} must be an integer, got {type(n).__name__}")
    if n <= 0:
        raise ValueError(f"{name} must be positive")
    return int(n)


def _rng(rng):
    return rng if rng is not None else np.random.default_rng()


class PiEngine:
    @staticmethod
    def is_inside(x, y):
        """Умова кола: x^2 + y^2 <= 1 (межа вважається всередині)."""
        return x * x + y * y <= 1.0

    @staticmethod
    def darts(n, rng=None):
        """
        Ліниве джерело "дротиків": по одній парі (x, y) з [0, 1).
        """
        n = _check_count(n)
        rng = _rng(rng)
        return ((float(x), float(y)) for x, y in (rng.random(2) for _ in range(n)))

    @staticmethod
    def count_hits(n, rng=None):
        """Векторизований підрахунок влучань серед n нових точок."""
        rng = _rng(rng)
        x = rng.random(n)
        y = rng.random(n)
        return int(np.count_nonzero(PiEngine.is_inside(x, y)))

    @staticmethod
    def iter_chunks(n, batch):
        """Ліниво віддає розміри пакетів (не більше batch, останній - залишок)."""
        n = _check_count(n)
        batch = _check_count(batch, "batch")
        full, rem = divmod(n, batch)
        for _ in range(full):
            yield batch
        if rem:
            yield rem

    @staticmethod
    def chunks(n, batch):
        return list(PiEngine.iter_chunks(n, batch))

    @staticmethod
    def estimate(n, chunk_size=None, rng=None):
        """
        Оцінка числа Пі: 4 * (влучання / n).

        Якщо n більше за розмір пакету, точки генеруються пакетами, а лічильник
        накопичується як звичайний int (без переповнення для будь-якого n).
        """
        n = _check_count(n)
        chunk_size = DEFAULT_CHUNK_SIZE if chunk_size is None else _check_count(chunk_size, "chunk_size")
        rng = _rng(rng)

        if n <= chunk_size:
            hits = PiEngine.count_hits(n, rng)
        else:
            full, rem = divmod(n, chunk_size)
            logger.debug("estimate: %d chunks of %d (+%d)", full, chunk_size, rem)
            hits = 0
            for _ in range(full):
                hits += PiEngine.count_hits(chunk_size, rng)
            if rem:
                hits += PiEngine.count_hits(rem, rng)

        return 4.0 * hits / n

    @staticmethod
    def estimate_lazy(n, rng=None):
        """Та сама оцінка, але точки споживаються потоком з генератора."""
        n = _check_count(n)
        hits = sum(1 for x, y in PiEngine.darts(n, rng) if PiEngine.is_inside(x, y))
        return 4.0 * hits / n

    @staticmethod
    def estimate_loop(n, rng=None):
        n = _check_count(n)
        rng = _rng(rng)
        hits = 0
        for _ in range(n):
            x = rng.random()
            y = rng.random()
            if x * x + y * y <= 1.0:
                hits += 1
        return 4.0 * hits / n

    @staticmethod
    def kernel(n, *args, rng=None):
        """
        Ядро обчислень для числа Пі.
        Генерує точки в квадраті і рахує, скільки потрапило в коло.
        """
        rng = _rng(rng)
        x = rng.random(n)
        y = rng.random(n)

        inside = PiEngine.is_inside(x, y)

        # Дані для візуалізації (не більше VIS_LIMIT точок)
        vis_data = None
        if n > 0:
            limit = min(n, VIS_LIMIT)
            idx = rng.choice(n, limit, replace=False)
            vis_data = (x[idx], y[idx], inside[idx])

        count = int(np.count_nonzero(inside))

        # Формула площі: Area = 4 * (inside / total)
        return (4.0 * count, n, vis_data)

    @staticmethod
    def run_batches(n, batch, max_workers=None, seed=None, stop=None):
        """
        Запускає kernel для кожного пакету у пулі потоків.

        Кожен пакет має власний генератор (SeedSequence.spawn), тож спільного
        стану немає. Розміри пакетів і генератори створюються ліниво, а в
        роботі одночасно не більше 2 * max_workers пакетів, тож пам'ять не
        залежить від n. Після кожного завершеного пакету віддає
        (total_iters, est, vis_data).
        """
        sizes = PiEngine.iter_chunks(n, batch)
        if max_workers is None:
            max_workers = min(16, (os.cpu_count() or 4) + 2)
        window = 2 * max_workers
        seeds = np.random.SeedSequence(seed)
        logger.debug("run_batches: n=%s, batch=%s, %d workers", n, batch, max_workers)

        total_sum, total_iters = 0.0, 0
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as ex:
            pending = set()
            while True:
                for sz in itertools.islice(sizes, window - len(pending)):
                    child, = seeds.spawn(1)
                    pending.add(ex.submit(PiEngine.kernel, sz, rng=np.random.default_rng(child)))
                if not pending:
                    break

                done, pending = concurrent.futures.wait(pending, return_when=concurrent.futures.FIRST_COMPLETED)
                for f in done:
                    if stop is not None and stop.is_set():
                        for p in pending:
                            p.cancel()
                        logger.info("run_batches: stopped after %d darts", total_iters)
                        return
                    res_val, res_n, res_extra = f.result()
                    total_sum += res_val
                    total_iters += res_n
                    yield total_iters, total_sum / total_iters, res_extra
