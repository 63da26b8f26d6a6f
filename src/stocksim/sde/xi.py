# src/stocksim/sde/xi.py
from __future__ import annotations


def rk4_xi_step(vol, xi, alpha: float, dt: float):
    """
    Advance xi one step of dxi/dt = (sigma - xi) / alpha with sigma frozen
    at its value at the start of the step (fourth-order Runge-Kutta stages).

    Works element-wise on floats or numpy arrays.
    """
    k_1 = (vol - xi) / alpha
    k_2 = (vol + 0.5 * dt * k_1 - xi) / alpha
    k_3 = (vol + 0.5 * dt * k_2 - xi) / alpha
    k_4 = (vol + dt * k_3 - xi) / alpha

    return xi + dt / 6 * (k_1 + 2 * k_2 + 2 * k_3 + k_4)
