"""
Command-line interface for Eigen Lab.

Usage:
    eigen-lab info           Show available working precisions
    eigen-lab power          Run power iteration on a generated matrix
    eigen-lab inverse        Run inverse iteration with a fixed shift
    eigen-lab dynamic        Run inverse iteration with dynamic shifting
    eigen-lab compare        Compare the three iterations on one matrix
"""

import json
import logging
from datetime import UTC, datetime
from functools import partial
from pathlib import Path
from typing import Annotated, NoReturn

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from eigen_lab import __version__
from eigen_lab.algorithms import (
    DEFAULT_SEED,
    POWER_DEMO_SPECTRUM,
    SHIFT_DEMO_SPECTRUM,
    EigenTrace,
    ExperimentSetup,
    create_detector,
    create_experiment,
    dominant_eigenvalue,
    error_history,
    expected_inverse_rate,
    expected_power_rate,
    observed_rates,
    run_dynamic_shifting,
    run_inverse_iteration,
    run_power_method,
    target_eigenvalue,
)
from eigen_lab.data import (
    DEFAULT_MAXITER,
    PrecisionFormat,
    get_spec,
    get_tolerance,
    list_available_formats,
)
from eigen_lab.errors import EigenIterationError

app = typer.Typer(
    name="eigen-lab",
    help="Power iteration and shift-and-invert eigenvalue experiments",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


# Shared option types
Eigenvalues = Annotated[
    str,
    typer.Option("--eigenvalues", "-e", help="Comma-separated prescribed spectrum"),
]
Kind = Annotated[
    str,
    typer.Option("--kind", "-k", help="Matrix construction: triangular, similar, symmetric"),
]
Seed = Annotated[int, typer.Option("--seed", help="Random seed for similar/symmetric")]
MaxIter = Annotated[int, typer.Option("--max-iter", "-i", help="Maximum iterations")]
Precision = Annotated[
    str, typer.Option("--precision", "-p", help="Working precision format")
]
Shift = Annotated[float, typer.Option("--shift", "-s", help="Spectral shift σ")]
Output = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Write the trace as JSON to this file"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"eigen-lab version {__version__}")
        raise typer.Exit()


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log every iteration step."),
    ] = False,
) -> None:
    """Eigen Lab - eigenvalue iteration experiments."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


# =============================================================================
# HELPERS
# =============================================================================


def _parse_spectrum(text: str) -> tuple[float, ...]:
    try:
        values = tuple(float(item) for item in text.split(",") if item.strip())
    except ValueError:
        msg = f"Cannot parse eigenvalues from '{text}'"
        raise typer.BadParameter(msg) from None
    if not values:
        raise typer.BadParameter("At least one eigenvalue is required")
    return values


def _setup(eigenvalues: str, kind: str, seed: int) -> ExperimentSetup:
    try:
        return create_experiment(_parse_spectrum(eigenvalues), kind=kind, seed=seed)
    except ValueError as exc:
        _fail(exc)


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/] {exc}")
    raise typer.Exit(code=1)


def _history_table(trace: EigenTrace, reference: float, *, order: int = 1) -> Table:
    """Tabulate β, its error and the observed rate per iteration."""
    table = Table(title=f"{trace.algorithm} ({trace.precision})")

    table.add_column("k", justify="right", style="cyan")
    if trace.shifts:
        table.add_column("σ", justify="right")
    table.add_column("β", justify="right")
    table.add_column("|β - λ|", justify="right")
    rate_label = "e(k+1)/e(k)" if order == 1 else f"e(k+1)/e(k)^{order}"
    table.add_column(rate_label, justify="right")

    errors = error_history(trace.history, reference)
    rates = observed_rates(trace.history, reference, order=order)

    for k, beta in enumerate(trace.history):
        rate = "" if k == 0 or np.isnan(rates[k - 1]) else f"{rates[k - 1]:.4f}"
        row = [str(k + 1)]
        if trace.shifts:
            row.append(f"{trace.shifts[k]:.12f}")
        row.extend([f"{beta:.15f}", f"{errors[k]:.3e}", rate])
        table.add_row(*row)

    return table


def _report(trace: EigenTrace, reference: float, expected_rate: float | None) -> None:
    """Print the outcome of a run and the history diagnostics."""
    console.print(f"  Target eigenvalue λ: {reference:.15g}")
    if expected_rate is not None:
        console.print(f"  Expected linear rate: {expected_rate:.4f}")

    status = "[green]converged[/]" if trace.converged else "[yellow]max iterations[/]"
    console.print(f"  Stop reason: {status} after {trace.iterations} iterations")
    console.print(f"  Final β: {trace.eigenvalue:.15g}")

    for name in ("oscillation", "stagnation"):
        result = create_detector(name).detect(trace.history)
        if result.detected:
            console.print(
                f"  [yellow]Warning:[/] {name} detected in history "
                f"(score {result.score:.3g})"
            )


def _write_trace(
    output: Path | None, trace: EigenTrace, setup: ExperimentSetup, **metadata
) -> None:
    if output is None:
        return

    payload = {
        "metadata": {
            "eigenvalues": list(setup.eigenvalues),
            "kind": setup.kind,
            "fingerprint": setup.fingerprint.to_dict(),
            "timestamp": datetime.now(UTC).isoformat(),
            **metadata,
        },
        **trace.to_dict(),
    }
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, indent=2))
    console.print(f"  Trace written to [bold]{output}[/]")


# =============================================================================
# COMMANDS
# =============================================================================


@app.command()  # type: ignore[misc]
def info() -> None:
    """Display information about available working precisions."""
    table = Table(title="Available Precision Formats")

    table.add_column("Format", style="cyan", no_wrap=True)
    table.add_column("Bits", justify="right")
    table.add_column("Mantissa", justify="right")
    table.add_column("Machine ε", justify="right")
    table.add_column("Shift tol", justify="right")
    table.add_column("Shift-invert", justify="center")

    shift_invert = set(list_available_formats(factorization=True))

    for fmt in PrecisionFormat:
        spec = get_spec(fmt)
        supported = fmt in shift_invert

        table.add_row(
            fmt.value.upper(),
            str(spec.bits),
            str(spec.mantissa_bits),
            f"{spec.machine_epsilon:.2e}",
            f"{get_tolerance(fmt, 'shift_tol'):.0e}",
            "✓" if supported else "✗",
            style="" if supported else "dim",
        )

    console.print(table)


@app.command()  # type: ignore[misc]
def power(
    eigenvalues: Eigenvalues = ",".join(str(v) for v in POWER_DEMO_SPECTRUM),
    kind: Kind = "triangular",
    seed: Seed = DEFAULT_SEED,
    max_iterations: MaxIter = 70,
    tol: Annotated[
        float | None, typer.Option("--tol", help="Stop when |β_k - β_(k-1)| < tol")
    ] = None,
    precision: Precision = "fp64",
    output: Output = None,
) -> None:
    """Run power iteration and show its convergence history."""
    setup = _setup(eigenvalues, kind, seed)
    console.print("[bold]Power Iteration[/]")

    try:
        trace = run_power_method(
            setup.matrix,
            setup.initial_vector,
            maxiter=max_iterations,
            tol=tol,
            precision=precision,
        )
    except (EigenIterationError, ValueError) as exc:
        _fail(exc)

    reference = dominant_eigenvalue(setup.eigenvalues)
    console.print(_history_table(trace, reference))
    _report(trace, reference, expected_power_rate(setup.eigenvalues))
    _write_trace(output, trace, setup)


@app.command()  # type: ignore[misc]
def inverse(
    shift: Shift = 0.4,
    eigenvalues: Eigenvalues = ",".join(str(v) for v in SHIFT_DEMO_SPECTRUM),
    kind: Kind = "triangular",
    seed: Seed = DEFAULT_SEED,
    max_iterations: MaxIter = 20,
    tol: Annotated[
        float | None, typer.Option("--tol", help="Stop when |β_k - β_(k-1)| < tol")
    ] = None,
    precision: Precision = "fp64",
    output: Output = None,
) -> None:
    """Run inverse iteration with a fixed shift."""
    setup = _setup(eigenvalues, kind, seed)
    console.print(f"[bold]Inverse Iteration[/] (σ = {shift})")

    try:
        trace = run_inverse_iteration(
            setup.matrix,
            shift,
            setup.initial_vector,
            maxiter=max_iterations,
            tol=tol,
            precision=precision,
        )
    except (EigenIterationError, ValueError) as exc:
        _fail(exc)

    reference = target_eigenvalue(setup.eigenvalues, shift)
    console.print(_history_table(trace, reference))
    _report(trace, reference, expected_inverse_rate(setup.eigenvalues, shift))
    _write_trace(output, trace, setup, shift=shift)


@app.command()  # type: ignore[misc]
def dynamic(
    shift: Shift = 0.4,
    eigenvalues: Eigenvalues = ",".join(str(v) for v in SHIFT_DEMO_SPECTRUM),
    kind: Kind = "triangular",
    seed: Seed = DEFAULT_SEED,
    max_iterations: MaxIter = 20,
    tol: Annotated[
        float | None,
        typer.Option("--tol", help="Stop when |σ - β| < tol (default per precision)"),
    ] = None,
    precision: Precision = "fp64",
    output: Output = None,
) -> None:
    """Run inverse iteration with dynamic shifting (quadratic convergence)."""
    setup = _setup(eigenvalues, kind, seed)
    console.print(f"[bold]Dynamic Shifting[/] (σ₀ = {shift})")

    try:
        trace = run_dynamic_shifting(
            setup.matrix,
            shift,
            setup.initial_vector,
            maxiter=max_iterations,
            tol=tol,
            precision=precision,
        )
    except (EigenIterationError, ValueError) as exc:
        _fail(exc)

    reference = target_eigenvalue(setup.eigenvalues, trace.eigenvalue)
    console.print(_history_table(trace, reference, order=2))
    _report(trace, reference, None)
    _write_trace(output, trace, setup, shift=shift)


@app.command()  # type: ignore[misc]
def compare(
    shift: Shift = 0.4,
    eigenvalues: Eigenvalues = ",".join(str(v) for v in SHIFT_DEMO_SPECTRUM),
    kind: Kind = "triangular",
    seed: Seed = DEFAULT_SEED,
    max_iterations: MaxIter = DEFAULT_MAXITER,
    tol: Annotated[float, typer.Option("--tol", help="Common stopping tolerance")] = 1e-8,
    precision: Precision = "fp64",
) -> None:
    """Compare the three iterations on the same matrix and shift."""
    setup = _setup(eigenvalues, kind, seed)

    options = {"maxiter": max_iterations, "tol": tol, "precision": precision}
    runs = {
        "power_method": partial(
            run_power_method, setup.matrix, setup.initial_vector, **options
        ),
        "inverse_iteration": partial(
            run_inverse_iteration, setup.matrix, shift, setup.initial_vector, **options
        ),
        "dynamic_shifting": partial(
            run_dynamic_shifting, setup.matrix, shift, setup.initial_vector, **options
        ),
    }

    table = Table(title=f"Iteration Comparison (σ = {shift}, tol = {tol:.0e})")
    table.add_column("Algorithm", style="bold")
    table.add_column("Iterations", justify="right")
    table.add_column("Final β", justify="right")
    table.add_column("Nearest λ", justify="right")
    table.add_column("|β - λ|", justify="right")
    table.add_column("Stop reason")

    for name, run in runs.items():
        try:
            trace = run()
        except (EigenIterationError, ValueError) as exc:
            logger.debug("%s failed: %s", name, exc)
            table.add_row(name, "-", "-", "-", "-", f"[red]{type(exc).__name__}[/]")
            continue

        reference = target_eigenvalue(setup.eigenvalues, trace.eigenvalue)
        table.add_row(
            name,
            str(trace.iterations),
            f"{trace.eigenvalue:.12f}",
            f"{reference:g}",
            f"{abs(trace.eigenvalue - reference):.2e}",
            trace.stop_reason.value,
        )

    console.print(table)


if __name__ == "__main__":
    app()
