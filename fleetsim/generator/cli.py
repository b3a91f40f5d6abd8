"""Command-line interface for headless fleet simulation runs."""

import logging
import sys
from pathlib import Path

import click

from fleetsim.fleet.fleet_factory import create_demo_fleet
from fleetsim.generator.headless_run import HeadlessRun
from fleetsim.storage.snapshot_store import JsonSnapshotStore


@click.command()
@click.option("--vehicles", default=10, help="Number of demo vehicles.")
@click.option("--hours", default=24.0, help="Simulated hours to run.")
@click.option("--seed", default=42, help="Master RNG seed.")
@click.option("--output-dir", default="output/", help="Output directory.")
@click.option("--tick", default=60.0, help="Simulated seconds per clock tick.")
@click.option("--snapshot-every", default=3600.0, help="Simulated seconds between snapshots.")
@click.option("--resume", is_flag=True, help="Continue from output-dir/snapshot.json if present.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def main(vehicles, hours, seed, output_dir, tick, snapshot_every, resume, verbose):
    """Accelerated fleet simulation with snapshot and incident log output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    output_path = Path(output_dir)
    store = JsonSnapshotStore(output_path / "snapshot.json")

    logger.info(f"Creating demo fleet ({vehicles} vehicles, seed={seed})...")
    fleet = create_demo_fleet(n_vehicles=vehicles, seed=seed)
    run = HeadlessRun(fleet, store=store, tick_interval=tick, snapshot_interval=snapshot_every)

    snapshot = store.load() if resume else None
    if snapshot is not None and run.resume_from(snapshot):
        logger.info(f"Resumed from {store.path}")
    else:
        run.register_fleet()

    logger.info(f"Running {hours:.1f} simulated hours (tick {tick:.0f}s)...")
    summary = run.run(hours)
    run.write_incidents(output_path)

    logger.info(
        f"Done: {summary.ticks} ticks, {summary.routes_started} routes started, "
        f"{summary.routes_completed} completed, {summary.incidents} incidents, "
        f"{summary.services} services"
    )
    logger.info(summary.validation.summary())
    sys.exit(0 if summary.validation.passed else 1)


if __name__ == "__main__":
    main()
