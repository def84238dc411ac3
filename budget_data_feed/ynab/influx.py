from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from influxdb_client import InfluxDBClient
from influxdb_client.client.write_api import SYNCHRONOUS
from influxdb_client.rest import ApiException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from .errors import BootstrapFailed, WriteFailed
from .mapping import TAG_COLUMNS, BudgetReading, readings_to_dataframe


@dataclass(frozen=True)
class InfluxConfig:
    url: str
    token: str
    bucket: str
    org: Optional[str] = None


class InfluxWriter:
    """Bulk writer: one synchronous write call per measurement per flush."""

    def __init__(self, write_api: Any, bucket: str, org: Optional[str] = None) -> None:
        self._write_api = write_api
        self.bucket = bucket
        self.org = org

    def flush(self, readings: List[BudgetReading]) -> int:
        if not readings:
            return 0
        df = readings_to_dataframe(readings)
        # Normally a single measurement: the budget name
        measurements = list(dict.fromkeys(r.measurement for r in readings))
        try:
            for name in measurements:
                mask = [r.measurement == name for r in readings]
                self._write_api.write(
                    bucket=self.bucket,
                    org=self.org,
                    record=df[mask],
                    data_frame_measurement_name=name,
                    data_frame_tag_columns=TAG_COLUMNS,
                )
        except (ApiException, Urllib3HTTPError, OSError, ValueError) as e:
            raise WriteFailed(f"InfluxDB write to bucket '{self.bucket}' failed: {e}") from e
        return len(readings)


class DryRunWriter:
    def flush(self, readings: List[BudgetReading]) -> int:
        for r in readings:
            print("[DRY-RUN] Would write:", r)
        return len(readings)


def _resolve_org(client: InfluxDBClient, bucket: str) -> str:
    """Look up the org id owning ``bucket``; writes need an org."""
    try:
        found = client.buckets_api().find_bucket_by_name(bucket)
    except (ApiException, Urllib3HTTPError, OSError, ValueError) as e:
        raise BootstrapFailed(f"could not look up InfluxDB bucket '{bucket}': {e}") from e
    if found is None or not found.org_id:
        raise BootstrapFailed(f"InfluxDB bucket '{bucket}' not found for this token")
    return found.org_id


def connect_influx(cfg: InfluxConfig) -> Tuple[InfluxDBClient, InfluxWriter]:
    """Build the client and a writer on its synchronous write API.

    Without an explicit org, the org is taken from the bucket. Raises
    BootstrapFailed (after closing the client) when that lookup fails.
    The caller owns the returned client and must close it.
    """
    client = InfluxDBClient(url=cfg.url, token=cfg.token, org=cfg.org)
    org = cfg.org
    if org is None:
        try:
            org = _resolve_org(client, cfg.bucket)
        except BootstrapFailed:
            client.close()
            raise
    writer = InfluxWriter(client.write_api(write_options=SYNCHRONOUS), cfg.bucket, org)
    return client, writer
