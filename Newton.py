import logging
import math
from typing import Callable, List, NamedTuple, Optional

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_TOL = 1e-10
DEFAULT_MAX_ITER = 50


class NewtonError(ArithmeticError):
    """Похідна обнулилась - крок Ньютона неможливий."""


class NewtonResult(NamedTuple):
    root: float
    iterations: int
    converged: bool
    history: List[float]


class NewtonEngine:
    # Безпечні змінні для eval()
    SAFE_GLOBALS = {
        '__builtins__': None,
        'np': np, 'sin': np.sin, 'cos': np.cos, 'tan': np.tan, 'exp': np.exp,
        'log': np.log, 'sqrt': np.sqrt, 'abs': np.abs, 'pi': math.pi, 'e': math.e,
    }

    @staticmethod
    def parse(expr: str) -> Callable[[float], float]:
        """Перетворює рядок f(x) на функцію (лише math/numpy імена)."""
        if not expr or not expr.strip():
            raise ValueError("empty expression")
        try:
            code = compile(expr, "<f(x)>", "eval")
        except SyntaxError as e:
            raise ValueError(f"invalid expression: {expr!r}") from e

        def f(x):
            return float(eval(code, NewtonEngine.SAFE_GLOBALS, {'x': x}))

        return f

    @staticmethod
    def derivative(f, x, h=None):
        """Центральна різниця (f(x+h) - f(x-h)) / 2h."""
        if h is None:
            h = 1e-6 * max(1.0, abs(x))
        return (f(x + h) - f(x - h)) / (2.0 * h)

    @staticmethod
    def _steps(f, x0, df=None, max_iter=DEFAULT_MAX_ITER):
        """Пари (x_k, f(x_k)); f рахується один раз на крок."""
        if max_iter <= 0:
            raise ValueError("max_iter must be positive")
        x = float(x0)
        fx = f(x)
        yield x, fx
        for _ in range(max_iter):
            d = df(x) if df is not None else NewtonEngine.derivative(f, x)
            if d == 0:
                raise NewtonError(f"zero derivative at x={x!r}")
            x = x - fx / d
            fx = f(x)
            yield x, fx

    @staticmethod
    def iterates(f, x0, df=None, max_iter=DEFAULT_MAX_ITER):
        """Генератор послідовних наближень, починаючи з x0."""
        for x, _ in NewtonEngine._steps(f, x0, df, max_iter):
            yield x

    @staticmethod
    def solve(f, x0, df=None, tol=DEFAULT_TOL, max_iter=DEFAULT_MAX_ITER) -> NewtonResult:
        """
        Метод Ньютона: x <- x - f(x) / f'(x).

        Зупинка, коли |f(x)| <= tol або крок |dx| <= tol * max(1, |x|).
        Якщо за max_iter кроків збіжності немає, повертає converged=False.
        """
        history: List[float] = []
        prev: Optional[float] = None
        for x, fx in NewtonEngine._steps(f, x0, df, max_iter):
            history.append(x)
            logger.debug("newton step %d: x=%r f(x)=%r", len(history) - 1, x, fx)
            if not math.isfinite(x):
                break
            if abs(fx) <= tol:
                return NewtonResult(x, len(history) - 1, True, history)
            if prev is not None and abs(x - prev) <= tol * max(1.0, abs(x)):
                return NewtonResult(x, len(history) - 1, True, history)
            prev = x
        return NewtonResult(history[-1], len(history) - 1, False, history)

    @staticmethod
    def sqrt(a, tol=1e-12):
        if a < 0:
            raise ValueError("sqrt of a negative number")
        if a == 0:
            return 0.0
        # Відносна форма x^2/a - 1 = 0, щоб tol не залежав від масштабу a
        res = NewtonEngine.solve(lambda x: x * x / a - 1.0, max(a, 1.0),
                                 df=lambda x: 2.0 * x / a, tol=tol)
        return res.root
