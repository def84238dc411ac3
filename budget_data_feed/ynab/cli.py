from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from typing import Optional

from .api import YnabClient
from .errors import BootstrapFailed
from .influx import DryRunWriter, InfluxConfig, connect_influx
from .sync import DEFAULT_INTERVAL_S, SyncLoop


EXIT_ABORTED = 1
EXIT_BOOTSTRAP_FAILED = 2
EXIT_UNEXPECTED = 3


@dataclass
class RunConfig:
    ynab_token: str
    ynab_budget: str
    influx: InfluxConfig
    interval_s: float = DEFAULT_INTERVAL_S
    dry_run: bool = False
    debug: bool = False
    max_cycles: Optional[int] = None


def _report_unpersisted(loop: SyncLoop) -> None:
    if loop.state.pending:
        print(f"[ERROR] {len(loop.state.pending)} readings were not persisted", file=sys.stderr)


def run(cfg: RunConfig) -> int:
    ynab = YnabClient(cfg.ynab_token)

    try:
        budget = ynab.resolve_budget(cfg.ynab_budget)
    except BootstrapFailed as e:
        print(f"[ERROR] Budget ID or API token invalid: {e.detail}", file=sys.stderr)
        return EXIT_BOOTSTRAP_FAILED
    if cfg.debug:
        print(f"[INFO] resolved budget id={budget.id} name='{budget.name}'")

    client = None
    if cfg.dry_run:
        writer = DryRunWriter()
    else:
        try:
            client, writer = connect_influx(cfg.influx)
        except BootstrapFailed as e:
            print(f"[ERROR] InfluxDB bucket unusable: {e.detail}", file=sys.stderr)
            return EXIT_BOOTSTRAP_FAILED

    loop = SyncLoop(budget, ynab.fetch_categories, writer.flush, interval_s=cfg.interval_s, debug=cfg.debug)
    try:
        res = loop.run(max_cycles=cfg.max_cycles)
    except Exception:
        _report_unpersisted(loop)
        raise
    finally:
        if client is not None:
            client.close()

    if not res.ok:
        print(f"[ERROR] {res.reason}: {res.error}", file=sys.stderr)
        _report_unpersisted(loop)
        return EXIT_ABORTED
    return 0


def parse_args(argv: Optional[list[str]] = None) -> RunConfig:
    p = argparse.ArgumentParser(description="YNAB category exporter to InfluxDB (v2)")
    p.add_argument("--ynab-token", type=str, required=True, help="YNAB API token")
    p.add_argument("--ynab-budget", type=str, required=True, help="YNAB budget ID")
    p.add_argument("--influx-url", type=str, required=True, help="InfluxDB URL")
    p.add_argument("--influx-token", type=str, required=True, help="InfluxDB token")
    p.add_argument("--influx-bucket", type=str, required=True, help="InfluxDB bucket")
    p.add_argument("--influx-org", type=str, default=None, help="InfluxDB organization (looked up from the bucket when omitted)")
    p.add_argument("--interval", type=float, default=DEFAULT_INTERVAL_S, help="Seconds to sleep between fetches")
    p.add_argument("--dry-run", action="store_true", help="Do not write to InfluxDB")
    p.add_argument("--debug", action="store_true", help="Verbose logging")
    args = p.parse_args(argv)
    if args.interval < 0:
        p.error("--interval must be >= 0")

    return RunConfig(
        ynab_token=args.ynab_token,
        ynab_budget=args.ynab_budget,
        influx=InfluxConfig(
            url=args.influx_url,
            token=args.influx_token,
            bucket=args.influx_bucket,
            org=args.influx_org,
        ),
        interval_s=args.interval,
        dry_run=args.dry_run,
        debug=args.debug,
    )


def main(argv: Optional[list[str]] = None) -> int:
    cfg = parse_args(argv)
    try:
        return run(cfg)
    except Exception as e:  # surface clear error message
        print(f"[ERROR] {e}", file=sys.stderr)
        if cfg.debug:
            raise
        return EXIT_UNEXPECTED


if __name__ == "__main__":
    raise SystemExit(main())
