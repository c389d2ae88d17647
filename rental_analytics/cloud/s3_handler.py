#!/usr/bin/env python3
"""
S3 Integration — Report Publisher
---------------------------------
- Uploads report CSVs (one per reporting query) into S3 with partitioned paths:
  s3://<bucket>/reports/year=YYYY/month=MM/day=DD/<report>/<report>_<UTCVER>.csv
- Implements simple file versioning by appending a UTC timestamp to the filename.
- Adds basic exponential backoff retry logic.

The dashboard tool reads the newest object under each <report>/ prefix.
"""

import time
import logging
from datetime import datetime, timezone, date
from pathlib import Path
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

log = logging.getLogger(__name__)

# -----------------------
# Constants
# -----------------------
BASE_PREFIX = "reports"

MAX_RETRIES = 5
INITIAL_BACKOFF_SECS = 1.0


def _s3_client(region: Optional[str] = None):
    """
    Create an S3 client using the default AWS credential chain
    (~/.aws/credentials, SSO profile, EC2/ECS role, ...).
    """
    return boto3.client("s3", region_name=region)


def _utc_version_tag() -> str:
    """UTC timestamp tag for filename versioning, e.g., 20251024T152530Z"""
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _partition_path(run_date: Optional[date] = None) -> str:
    """Partition path reports/year=YYYY/month=MM/day=DD"""
    d = run_date or date.today()
    return f"{BASE_PREFIX}/year={d.year:04d}/month={d.month:02d}/day={d.day:02d}"


def build_report_key(report: str, version: str, run_date: Optional[date] = None) -> str:
    """Object key for one report file."""
    return f"{_partition_path(run_date)}/{report}/{report}_{version}.csv"


def _upload_with_retries(
    s3,
    file_path: Path,
    bucket: str,
    key: str,
    extra_args: Optional[dict] = None,
    sleep=time.sleep,
):
    """Upload with exponential backoff retries."""
    extra_args = extra_args or {}
    attempt = 0
    backoff = INITIAL_BACKOFF_SECS

    while True:
        try:
            s3.upload_file(
                Filename=str(file_path),
                Bucket=bucket,
                Key=key,
                ExtraArgs=extra_args,
            )
            return
        except (BotoCoreError, ClientError) as e:
            attempt += 1
            if attempt > MAX_RETRIES:
                raise
            log.warning(
                f"Upload failed for s3://{bucket}/{key} (attempt {attempt}/{MAX_RETRIES}): {e}. "
                f"Retrying in {backoff:.1f}s..."
            )
            sleep(backoff)
            backoff *= 2


def upload_reports(
    report_files: Dict[str, Path],
    bucket: str,
    region: Optional[str] = None,
    run_date: Optional[date] = None,
    s3=None,
) -> List[str]:
    """
    Upload report CSVs ({report_name: local_path}) and return the object keys written.
    """
    if not bucket:
        raise ValueError("No S3 bucket configured (set s3_bucket in the config).")

    version = _utc_version_tag()
    s3 = s3 or _s3_client(region)
    keys = []

    for report, path in report_files.items():
        src = Path(path)
        if not src.exists():
            raise FileNotFoundError(f"Missing report file: {src}")

        key = build_report_key(report, version, run_date)
        extra_args = {
            "ContentType": "text/csv",
            "Metadata": {
                "source": "rental-analytics-reports",
                "version_tag": version,
                "report": report,
            },
        }

        log.info(f"Uploading {src} → s3://{bucket}/{key}")
        _upload_with_retries(s3, src, bucket, key, extra_args=extra_args)
        keys.append(key)

    log.info(f"✅ {len(keys)} report CSVs uploaded to S3.")
    return keys
