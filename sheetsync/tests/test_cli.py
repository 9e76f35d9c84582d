import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from sheetsync.cli import build_config, build_parser, main, parse_overrides, read_source
from sheetsync.core.config import InferenceMode
from sheetsync.core.errors import ConfigError, DataError, WriteError
from sheetsync.services.datasync.base import SyncResult
from sheetsync.tests.utils import FIXED_NOW


def test_read_json_source(tmp_path: Path) -> None:
    path = tmp_path / "Orders.json"
    path.write_text(json.dumps([["id", "paid"], [1, True]]))

    source = read_source(path)

    assert source.name == "Orders"
    assert source.values == [["id", "paid"], [1, True]]


def test_read_csv_source(tmp_path: Path) -> None:
    path = tmp_path / "Stock.csv"
    path.write_text('sku,note\nA1,"multi\nline"\n')

    assert read_source(path).values == [["sku", "note"], ["A1", "multi\nline"]]


def test_read_invalid_json_source(tmp_path: Path) -> None:
    path = tmp_path / "Bad.json"
    path.write_text(json.dumps({"rows": []}))
    with pytest.raises(DataError):
        read_source(path)


def test_read_malformed_or_missing_source(tmp_path: Path) -> None:
    path = tmp_path / "Broken.json"
    path.write_text('[["id"], [1,')
    with pytest.raises(DataError, match="not valid JSON"):
        read_source(path)

    with pytest.raises(DataError, match="Cannot read"):
        read_source(tmp_path / "Missing.csv")


def test_parse_overrides() -> None:
    assert parse_overrides(["Orders=orders_raw"]) == {"Orders": "orders_raw"}
    with pytest.raises(ConfigError):
        parse_overrides(["Orders"])


def test_build_config_from_arguments() -> None:
    args = build_parser().parse_args(
        [
            "--project",
            "demo-project",
            "--exclude",
            "Drafts",
            "bigquery",
            "a.json",
            "--dataset",
            "sheets",
            "--all-string",
            "--table-override",
            "a=alpha",
        ]
    )

    config = build_config(args)

    assert config.project_id == "demo-project"
    assert config.dataset_id == "sheets"
    assert config.inference_mode == InferenceMode.ALL_STRING
    assert config.table_overrides == {"a": "alpha"}
    assert config.excluded_sources == ["Drafts"]


def test_build_config_rejects_oversized_batch() -> None:
    args = build_parser().parse_args(["firestore", "a.json", "--batch-size", "900"])
    with pytest.raises(ConfigError):
        build_config(args)


def test_main_exit_status_reflects_failures(tmp_path: Path) -> None:
    path = tmp_path / "Orders.json"
    path.write_text(json.dumps([["id"], [1]]))
    failed = {
        "Orders": SyncResult(
            source="Orders",
            success=False,
            records_exported=0,
            error_message="boom",
            sync_timestamp=FIXED_NOW,
        )
    }

    with (
        patch(
            "sheetsync.cli.DataSyncService.sync_to_bigquery", return_value=failed
        ) as sync,
        pytest.raises(SystemExit) as exc_info,
    ):
        main(["--project", "p", "bigquery", str(path), "--dataset", "d"])

    assert exc_info.value.code == 1
    assert sync.call_args.args[0][0].name == "Orders"


def test_firestore_abort_reports_completed_sources(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "Orders.json"
    path.write_text(json.dumps([["id"], [1]]))
    error = WriteError("Stock", 500, "boom")
    error.partial_results = {
        "Orders": SyncResult(
            source="Orders",
            destination="Orders",
            success=True,
            records_exported=3,
            sync_timestamp=FIXED_NOW,
        )
    }
    caplog.set_level(logging.INFO)

    with (
        patch("sheetsync.cli.DataSyncService.sync_to_firestore", side_effect=error),
        pytest.raises(SystemExit) as exc_info,
    ):
        main(["--project", "p", "firestore", str(path)])

    assert exc_info.value.code == 1
    assert "✓ Orders: 3 records -> Orders (updated)" in caplog.messages
    assert any("'Stock' failed" in message for message in caplog.messages)
