# src/stocksim/sde/steppers.py
"""
One-step updates for the stock and volatility SDEs.

Every stepper has the signature

    next = f(prev_self, prev_coupled, param, dt, phi)

where `phi` is a normal increment already scaled by sqrt(dt). The stock
steppers receive (S, sigma, mu, ...), the volatility steppers (sigma, xi, p, ...).
All steppers are pure and work element-wise on floats or numpy arrays.

Model coefficients:

    stock:      a(S)     = mu S,            b(S)     = sigma S,  b'(S)     = sigma
    volatility: a(sigma) = -(sigma - xi),   b(sigma) = p sigma,  b'(sigma) = p
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from stocksim.sde.errors import UnsupportedScheme
from stocksim.sde.integrators import euler_maruyama_step, milstein_step, platen_step
from stocksim.sde.schemas import Scheme

Stepper = Callable[..., object]


# ===============================================================
# Euler-Maruyama
# ===============================================================


def euler_stock(stock, vol, mu: float, dt: float, phi):
    return euler_maruyama_step(stock, mu * stock, vol * stock, dt, phi)


def euler_vol(vol, xi, p: float, dt: float, phi):
    return euler_maruyama_step(vol, -(vol - xi), p * vol, dt, phi)


# ===============================================================
# Milstein
# ===============================================================


def milstein_stock(stock, vol, mu: float, dt: float, phi):
    return milstein_step(stock, mu * stock, vol * stock, vol, dt, phi)


def milstein_vol(vol, xi, p: float, dt: float, phi):
    return milstein_step(vol, -(vol - xi), p * vol, p, dt, phi)


# ===============================================================
# Stochastic Runge-Kutta (derivative-free Milstein)
# ===============================================================


def rk_stock(stock, vol, mu: float, dt: float, phi):
    # vol is frozen at its previous value over the step
    return platen_step(stock, mu * stock, vol * stock, lambda s: vol * s, dt, phi)


def rk_vol(vol, xi, p: float, dt: float, phi):
    return platen_step(vol, -(vol - xi), p * vol, lambda v: p * v, dt, phi)


# ===============================================================
# Scheme Registry
# ===============================================================


@dataclass(frozen=True)
class SchemeSteppers:
    """Stock and volatility steppers of one numerical scheme."""

    stock: Stepper
    vol: Stepper


SCHEME_REGISTRY: Dict[str, SchemeSteppers] = {
    Scheme.EULER.value: SchemeSteppers(euler_stock, euler_vol),
    Scheme.MILSTEIN.value: SchemeSteppers(milstein_stock, milstein_vol),
    Scheme.RK.value: SchemeSteppers(rk_stock, rk_vol),
}

_BUILTIN_SCHEMES = frozenset(SCHEME_REGISTRY)


def _normalize(scheme: Scheme | str) -> str:
    if isinstance(scheme, Scheme):
        return scheme.value
    if not isinstance(scheme, str):
        raise UnsupportedScheme(
            f"Scheme must be a string (got {type(scheme).__name__})"
        )
    return scheme.strip().lower()


def available_schemes() -> List[str]:
    return list(SCHEME_REGISTRY.keys())


def register_scheme(name: str, steppers: SchemeSteppers) -> None:
    """Register an additional scheme. Built-in schemes cannot be replaced."""
    key = _normalize(name)
    if key in _BUILTIN_SCHEMES:
        raise ValueError(f"Cannot replace built-in scheme '{key}'")
    SCHEME_REGISTRY[key] = steppers


def unregister_scheme(name: str) -> None:
    key = _normalize(name)
    if key in _BUILTIN_SCHEMES:
        raise ValueError(f"Cannot remove built-in scheme '{key}'")
    SCHEME_REGISTRY.pop(key, None)


def get_steppers(scheme: Scheme | str) -> SchemeSteppers:
    key = _normalize(scheme)
    if key not in SCHEME_REGISTRY:
        raise UnsupportedScheme(
            f"Scheme '{scheme}' not supported. Available: {available_schemes()}"
        )
    return SCHEME_REGISTRY[key]
