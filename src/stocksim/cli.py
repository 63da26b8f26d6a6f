from __future__ import annotations

import argparse
import logging
import sys

from stocksim import __version__
from stocksim.runner.run import run_config, run_from_config
from stocksim.runner.config.models import GridSettings, ModelSettings, SimulationConfig
from stocksim.sde.convergence import estimate_order, weak_error_study
from stocksim.sde.errors import StocksimError
from stocksim.sde.schemas import RngMode, SimulationParameters
from stocksim.sde.steppers import available_schemes


def _print_result(result) -> None:
    summary = result.summary()
    print("\n========== Simulation Complete ==========")
    print(f"Paths: {summary['samples']} x {summary['n_steps']} steps")
    for key in ("stock", "vol", "xi"):
        print(
            f"Terminal {key}: mean {summary['terminal_mean'][key]:.6f}"
            f"  std {summary['terminal_std'][key]:.6f}"
        )
    print("=========================================\n")


# ============================================================
# Command: run
# ============================================================


def cmd_run(args):
    print(f"[stocksim] Running simulation: {args.config}")
    result = run_from_config(args.config, save_dir=args.save_dir)
    _print_result(result)


# ============================================================
# Command: simulate
# ============================================================


def cmd_simulate(args):
    cfg = SimulationConfig(
        name="cli",
        seed=args.seed,
        scheme=args.scheme,
        rng_mode=args.rng_mode,
        model=ModelSettings(
            s0=args.s0,
            sigma0=args.sigma0,
            xi0=args.xi0,
            mu=args.mu,
            p=args.p,
            alpha=args.alpha,
        ),
        grid=GridSettings(dt=args.dt, T=args.T, samples=args.samples),
    )
    result = run_config(cfg, save_dir=args.save_dir)
    _print_result(result)


# ============================================================
# Command: weak-error
# ============================================================


def cmd_weak_error(args):
    params = SimulationParameters(
        dt=args.dt,
        sigma0=args.sigma0,
        s0=args.s0,
        xi0=args.xi0,
        mu=args.mu,
        p=args.p,
        alpha=args.alpha,
        T=args.T,
        samples=args.samples,
        seed=args.seed,
    )
    df = weak_error_study(
        params,
        args.factors,
        scheme=args.scheme,
        reference_scheme=args.reference_scheme,
    )
    print(f"[stocksim] Reference E[S_T]: {df.attrs['reference_mean']:.6f}")
    print(df.to_string(index=False))
    if len(df) >= 2 and (df["weak_error"] > 0).all():
        print(f"Estimated weak order: {estimate_order(df):.3f}")


# ============================================================
# Command: version
# ============================================================


def cmd_version(args):
    print(__version__)


# ============================================================
# Main CLI
# ============================================================


def _add_model_args(p: argparse.ArgumentParser, dt: float, T: float, samples: int):
    p.add_argument("--seed", type=int, default=0)
    p.add_argument("--samples", type=int, default=samples)
    p.add_argument("--dt", type=float, default=dt)
    p.add_argument("--T", type=float, default=T)
    p.add_argument("--s0", type=float, default=100.0)
    p.add_argument("--sigma0", type=float, default=0.2)
    p.add_argument("--xi0", type=float, default=0.2)
    p.add_argument("--mu", type=float, default=0.05)
    p.add_argument("--p", type=float, default=0.1)
    p.add_argument("--alpha", type=float, default=1.0)
    p.add_argument("--scheme", default="euler", help=f"One of {available_schemes()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stocksim")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ------------------------------------------------------------------
    # run
    # ------------------------------------------------------------------
    p_run = sub.add_parser("run", help="Run a simulation from a config file")
    p_run.add_argument("--config", required=True, help="Path to config JSON/YAML")
    p_run.add_argument(
        "--save-dir", required=False, default=None, help="Directory to save results"
    )
    p_run.set_defaults(func=cmd_run)

    # ------------------------------------------------------------------
    # simulate
    # ------------------------------------------------------------------
    p_sim = sub.add_parser("simulate", help="Run a simulation from command-line flags")
    _add_model_args(p_sim, dt=0.01, T=1.0, samples=100)
    p_sim.add_argument(
        "--rng-mode",
        default=RngMode.SEQUENTIAL.value,
        choices=[m.value for m in RngMode],
    )
    p_sim.add_argument("--save-dir", default=None, help="Directory to save results")
    p_sim.set_defaults(func=cmd_simulate)

    # ------------------------------------------------------------------
    # weak-error
    # ------------------------------------------------------------------
    p_weak = sub.add_parser(
        "weak-error", help="Weak error of a scheme against a fine-grid reference"
    )
    # 1001 grid points, i.e. 1000 fine increments
    _add_model_args(p_weak, dt=0.0001, T=0.1001, samples=1000)
    p_weak.add_argument(
        "--factors", type=int, nargs="+", default=[10, 20, 50, 100]
    )
    p_weak.add_argument("--reference-scheme", default="milstein")
    p_weak.set_defaults(func=cmd_weak_error)

    # ------------------------------------------------------------------
    # version
    # ------------------------------------------------------------------
    p_ver = sub.add_parser("version", help="Show version")
    p_ver.set_defaults(func=cmd_version)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except (StocksimError, ValueError, FileNotFoundError) as e:
        print(f"[stocksim] error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
