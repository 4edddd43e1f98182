"""Command-line entry point for k8s-deletion-inspector.

Every option can also be set through the environment variable named in its
help text. Outside a cluster the kubeconfig is used; inside a cluster the
service account is.
"""

from __future__ import annotations

import sys
from typing import Optional

import click
import kubernetes
import structlog
import uvicorn

from k8sdeletioninspector.config import Config
from k8sdeletioninspector.k8s import KubernetesAccessor, create_k8sclient
from k8sdeletioninspector.logconfig import configure_logging
from k8sdeletioninspector.orchestrator import ScanLoop
from k8sdeletioninspector.registry import Retention
from k8sdeletioninspector.server import create_app
from k8sdeletioninspector.state import InspectorState
from k8sdeletioninspector.version import get_build_info

EPILOG = """
Examples:

  k8s-deletion-inspector                       # Scan every 24h, force delete after 72h
  k8s-deletion-inspector --delete-after 24     # Force delete after one day
  k8s-deletion-inspector --once --no-debug     # Single scan, no HTTP server
  DELETE_AFTER=48 k8s-deletion-inspector       # Options also come from the environment
"""


def _print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    info = get_build_info()
    click.echo(f"Version: {info['version']}")
    click.echo(f"Git Commit: {info['gitCommit']}")
    click.echo(f"Build Time: {info['buildTime']}")
    ctx.exit()


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.option(
    "--debug/--no-debug",
    envvar="DEBUG",
    default=True,
    show_default=True,
    help="Enable debug logging [env: DEBUG]",
)
@click.option(
    "--metrics-port",
    envvar="METRICS_PORT",
    type=int,
    default=9000,
    show_default=True,
    help="Port for the metrics and probe server [env: METRICS_PORT]",
)
@click.option(
    "--kubeconfig",
    envvar="KUBECONFIG",
    type=click.Path(dir_okay=False),
    help="Path to the kubeconfig file [env: KUBECONFIG]",
)
@click.option(
    "--delete-after",
    envvar="DELETE_AFTER",
    type=click.IntRange(min=0),
    default=72,
    show_default=True,
    help="Hours an object may stay stuck before it is force deleted "
    "[env: DELETE_AFTER]",
)
@click.option(
    "--scan-interval",
    envvar="SCAN_INTERVAL",
    type=click.IntRange(min=1),
    default=24,
    show_default=True,
    help="Hours to wait between scans [env: SCAN_INTERVAL]",
)
@click.option(
    "--retention",
    envvar="REGISTRY_RETENTION",
    type=click.Choice([r.value for r in Retention], case_sensitive=False),
    default=Retention.CYCLE.value,
    show_default=True,
    help="Keep stuck objects from the latest scan only (cycle) or from every "
    "scan (cumulative) [env: REGISTRY_RETENTION]",
)
@click.option(
    "--once",
    is_flag=True,
    help="Run a single scan and reclamation pass, then exit",
)
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_print_version,
    help="Show version and exit",
)
def main(
    debug: bool,
    metrics_port: int,
    kubeconfig: Optional[str],
    delete_after: int,
    scan_interval: int,
    retention: str,
    once: bool,
) -> None:
    """Find Kubernetes objects stuck in Terminating and force their deletion.

    Each scan lists every namespaced resource in every namespace and records
    objects carrying a deletion timestamp. Objects stuck for longer than
    --delete-after hours get their finalizers cleared and are deleted again.
    """
    config = Config(
        debug=debug,
        metrics_port=metrics_port,
        kubeconfig=kubeconfig or None,
        delete_after_hours=delete_after,
        scan_interval_hours=scan_interval,
        retention=Retention(retention.lower()),
    )
    configure_logging(config.debug)
    logger = structlog.getLogger(__name__)
    logger.info("Starting k8s-deletion-inspector")

    try:
        k8s_client = create_k8sclient(config.kubeconfig)
    except kubernetes.config.ConfigException as err:
        logger.critical(f"Error connecting to cluster: {err}")
        sys.exit(1)

    state = InspectorState(config=config)
    accessor = KubernetesAccessor(k8s_client)

    if once:
        run_once(accessor, state)
        return

    serve(accessor, state)


def run_once(accessor: KubernetesAccessor, state: InspectorState) -> None:
    """Run one cycle in the foreground; exit non-zero if it failed or an
    object couldn't be reclaimed.
    """
    logger = structlog.getLogger(__name__)
    loop = ScanLoop(accessor, state)
    try:
        _, reclaimed = loop.run_once()
    except Exception:
        logger.exception("Scan failed")
        sys.exit(1)
    if not all(r.ok for r in reclaimed):
        sys.exit(1)


def serve(accessor: KubernetesAccessor, state: InspectorState) -> None:
    """Run the scan loop in the background and the HTTP server in the
    foreground until either stops.
    """
    logger = structlog.getLogger(__name__)
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(state),
            host="0.0.0.0",
            port=state.config.metrics_port,
            log_config=None,
            access_log=False,
        )
    )

    def shutdown_server() -> None:
        server.should_exit = True

    loop = ScanLoop(accessor, state, on_fatal=shutdown_server)
    loop.start()
    logger.info(f"Metrics server starting on port {state.config.metrics_port}")
    server.run()

    loop.stop(timeout=5)
    if loop.fatal_error is not None:
        sys.exit(1)


if __name__ == "__main__":
    main()
