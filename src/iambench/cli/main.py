"""
iambench CLI - Main entry point

Commands:
- run: prepare one flavor and measure it until interrupted
- suite: run the fixed-size benchmark scenarios and print their results
"""

import sys

import click

from iambench import __version__
from iambench.acp import Flavor
from iambench.benchmarks import DEFAULT_SIZES, format_results, run_suite
from iambench.config import BenchConfig
from iambench.driver import PrepareParams, prepare_query
from iambench.engine import ENGINES, get_engine
from iambench.errors import IamBenchError
from iambench.loop import MeasurementLoop
from iambench.monitoring.logging import configure_logging, get_logger
from iambench.monitoring.metrics import Metrics
from iambench.policies import get_profile

logger = get_logger(__name__)

FLAVORS = [f.value for f in Flavor]


def fail(error: Exception) -> None:
    """Log a fatal error, echo it to stderr and exit non-zero."""
    logger.error("fatal", error=str(error), error_type=type(error).__name__)
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def run_benchmark_loop(config: BenchConfig) -> int:
    """Prepare the configured flavor and drive the measurement loop."""
    config.validate()

    profile = get_profile(config.flavor)
    engine = get_engine(config.engine)

    prepared = prepare_query(
        engine,
        PrepareParams.for_profile(profile, config.amount),
        instrument=config.instrument,
        partial=config.partial,
        metrics=Metrics(),
    )

    loop = MeasurementLoop(
        prepared,
        profile.probe,
        profile.expected,
        report_interval=config.report_interval,
    )
    return loop.run(max_iterations=config.max_iterations)


# ==================== Main CLI Group ====================

@click.group()
@click.version_option(version=__version__, prog_name="iambench")
@click.option("--log-level", envvar="IAMBENCH_LOG_LEVEL", default="INFO",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Log level")
@click.option("--json-logs", envvar="IAMBENCH_JSON_LOGS", is_flag=True,
              help="Emit JSON log lines")
def cli(log_level, json_logs):
    """iambench - policy evaluation latency benchmark."""
    configure_logging(level=log_level, json_format=json_logs)


# ==================== Run Command ====================

@cli.command("run")
@click.option("--flavor", envvar="IAMBENCH_FLAVOR", default=Flavor.EXACT.value,
              type=click.Choice(FLAVORS), show_default=True,
              help="Policy flavor to use")
@click.option("--amount", envvar="IAMBENCH_AMOUNT", default=30000, type=int,
              show_default=True, help="Number of ACPs to generate")
@click.option("--instrument/--no-instrument", envvar="IAMBENCH_INSTRUMENT", default=False,
              help="Enable engine instrumentation")
@click.option("--partial/--no-partial", envvar="IAMBENCH_PARTIAL", default=False,
              help="Run partial evaluation while preparing the query")
@click.option("--engine", "engine_name", envvar="IAMBENCH_ENGINE", default="regorus",
              type=click.Choice(list(ENGINES)), show_default=True,
              help="Policy engine to evaluate with")
@click.option("--report-interval", envvar="IAMBENCH_REPORT_INTERVAL", default=5.0,
              type=float, show_default=True, help="Seconds between report rows")
@click.option("--max-iterations", envvar="IAMBENCH_MAX_ITERATIONS", default=0, type=int,
              show_default=True, help="Stop after this many evaluations (0 = run forever)")
def run(flavor, amount, instrument, partial, engine_name, report_interval, max_iterations):
    """Measure decision latency for one flavor until interrupted."""
    config = BenchConfig(
        flavor=flavor,
        amount=amount,
        engine=engine_name,
        instrument=instrument,
        partial=partial,
        report_interval=report_interval,
        max_iterations=max_iterations,
    )
    try:
        iterations = run_benchmark_loop(config)
    except IamBenchError as e:
        fail(e)
    except KeyboardInterrupt:
        click.echo("Interrupted.", err=True)
        sys.exit(130)
    else:
        logger.info("Finished", iterations=iterations)


# ==================== Suite Command ====================

@cli.command("suite")
@click.option("--engine", "engine_name", envvar="IAMBENCH_ENGINE", default="regorus",
              type=click.Choice(list(ENGINES)), show_default=True,
              help="Policy engine to evaluate with")
@click.option("--size", "sizes", multiple=True, type=click.IntRange(min=0),
              help="Corpus size to benchmark (repeatable)  [default: 30, 300, 3000]")
@click.option("--iterations", default=100, type=click.IntRange(min=1), show_default=True,
              help="Measured iterations per benchmark")
@click.option("--warmup", default=10, type=click.IntRange(min=0), show_default=True,
              help="Warmup iterations per benchmark")
@click.option("--partial/--no-partial", default=None,
              help="Include partial evaluation scenarios  [default: engine dependent]")
def suite(engine_name, sizes, iterations, warmup, partial):
    """Run the fixed-size benchmark scenarios."""
    try:
        engine = get_engine(engine_name)
        if partial is None:
            partial = engine_name == "reference"
        results = run_suite(
            engine,
            sizes=sizes or DEFAULT_SIZES,
            iterations=iterations,
            warmup_iterations=warmup,
            partial=partial,
        )
    except IamBenchError as e:
        fail(e)
    else:
        click.echo(format_results(results))


def main():
    cli()


if __name__ == "__main__":
    main()
