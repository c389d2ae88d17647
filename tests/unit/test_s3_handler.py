# tests/unit/test_s3_handler.py
# ------------------------------------------------------------
# Purpose: Unit tests for report publishing in
#          rental_analytics/cloud/s3_handler.py with a mocked
#          S3 client (no AWS calls).
# ------------------------------------------------------------

from datetime import date
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from rental_analytics.cloud import s3_handler
from rental_analytics.cloud.s3_handler import (
    _upload_with_retries,
    build_report_key,
    upload_reports,
)


def _client_error():
    return ClientError({"Error": {"Code": "503", "Message": "Slow Down"}}, "PutObject")


def test_build_report_key_is_partitioned_and_versioned():
    key = build_report_key("make_profitability", "20250102T030405Z", date(2025, 1, 2))
    assert key == (
        "reports/year=2025/month=01/day=02/make_profitability/"
        "make_profitability_20250102T030405Z.csv"
    )


def test_upload_reports_uploads_each_file(tmp_path):
    paths = {}
    for name in ("review_popularity", "most_rented_vehicles"):
        paths[name] = tmp_path / f"{name}.csv"
        paths[name].write_text("a,b\n1,2\n", encoding="utf-8")
    s3 = MagicMock()

    keys = upload_reports(paths, bucket="dash-bucket", run_date=date(2025, 6, 1), s3=s3)

    assert len(keys) == 2
    assert keys[0].startswith("reports/year=2025/month=06/day=01/review_popularity/")
    assert s3.upload_file.call_count == 2
    kwargs = s3.upload_file.call_args.kwargs
    assert kwargs["Bucket"] == "dash-bucket"
    assert kwargs["ExtraArgs"]["ContentType"] == "text/csv"
    assert kwargs["ExtraArgs"]["Metadata"]["report"] == "most_rented_vehicles"


def test_upload_reports_requires_bucket_and_files(tmp_path):
    with pytest.raises(ValueError):
        upload_reports({}, bucket=None, s3=MagicMock())
    with pytest.raises(FileNotFoundError):
        upload_reports({"x": tmp_path / "missing.csv"}, bucket="b", s3=MagicMock())


def test_upload_retries_with_exponential_backoff(tmp_path):
    s3 = MagicMock()
    s3.upload_file.side_effect = [_client_error(), _client_error(), None]
    sleeps = []

    _upload_with_retries(s3, tmp_path / "f.csv", "b", "k", sleep=sleeps.append)

    assert s3.upload_file.call_count == 3
    assert sleeps == [1.0, 2.0]


def test_upload_gives_up_after_max_retries(tmp_path, monkeypatch):
    monkeypatch.setattr(s3_handler, "MAX_RETRIES", 2)
    s3 = MagicMock()
    s3.upload_file.side_effect = _client_error()

    with pytest.raises(ClientError):
        _upload_with_retries(s3, tmp_path / "f.csv", "b", "k", sleep=lambda _: None)
    assert s3.upload_file.call_count == 3
