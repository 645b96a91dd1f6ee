"""Tests for main.py CLI functionality."""

import json
from unittest.mock import patch

import pytest

from images_importer.core.models import ImportSummary
from images_importer.main import (
    EXIT_EMPTY,
    EXIT_FAILURE,
    EXIT_MALFORMED,
    EXIT_OK,
    build_parser,
    main,
    run_import,
)


def run_cli(argv):
    with patch("sys.argv", ["images-importer", *argv]):
        with pytest.raises(SystemExit) as exc_info:
            main()
    return exc_info.value.code


class TestMainCLI:
    """Tests for the main CLI functionality."""

    def test_main_with_no_args_shows_help(self):
        with patch("argparse.ArgumentParser.print_help") as mock_help:
            assert run_cli([]) == 1
            mock_help.assert_called_once()

    def test_main_version_command(self):
        with patch("builtins.print") as mock_print:
            assert run_cli(["version"]) == 0
            mock_print.assert_any_call("Images Importer CLI")
            mock_print.assert_any_call("Version 0.1.0")

    def test_import_requires_upload_dir_and_store(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["import", "export.json"])

    def test_import_parses_all_options(self, tmp_path):
        args = build_parser().parse_args(
            [
                "import",
                "export.json",
                "--upload-dir",
                str(tmp_path),
                "--store",
                str(tmp_path / "records.jsonl"),
                "--resource-prefix",
                "/media/",
                "--processor",
                "serial",
                "--max-workers",
                "4",
                "--request-timeout",
                "5",
                "--batch-timeout",
                "60",
                "--debug",
            ]
        )
        assert args.processor == "serial"
        assert args.max_workers == 4
        assert args.request_timeout == 5.0
        assert args.batch_timeout == 60.0
        assert args.resource_prefix == "/media/"
        assert args.debug is True


class TestRunImport:
    """Tests for the import command."""

    def _args(self, tmp_path, descriptor_bytes, **overrides):
        descriptor = tmp_path / "export.json"
        if descriptor_bytes is not None:
            descriptor.write_bytes(descriptor_bytes)
        uploads = tmp_path / "uploads"
        uploads.mkdir(exist_ok=True)
        argv = [
            "import",
            str(descriptor),
            "--upload-dir",
            str(overrides.pop("upload_dir", uploads)),
            "--store",
            str(tmp_path / "records.jsonl"),
        ]
        return build_parser().parse_args(argv)

    def test_empty_descriptor_exit_code(self, tmp_path):
        assert run_import(self._args(tmp_path, b"")) == EXIT_EMPTY

    def test_malformed_descriptor_exit_code(self, tmp_path):
        assert run_import(self._args(tmp_path, b"not json")) == EXIT_MALFORMED

    def test_deeply_nested_descriptor_exit_code(self, tmp_path):
        assert run_import(self._args(tmp_path, b"[" * 200000)) == EXIT_MALFORMED

    def test_wrong_shape_exit_code(self, tmp_path):
        raw = json.dumps({"status": "error"}).encode()
        assert run_import(self._args(tmp_path, raw)) == EXIT_MALFORMED

    def test_missing_descriptor_is_a_failure(self, tmp_path):
        assert run_import(self._args(tmp_path, None)) == EXIT_FAILURE

    def test_missing_upload_dir_is_a_failure(self, tmp_path):
        args = self._args(tmp_path, b"{}", upload_dir=tmp_path / "missing")
        assert run_import(args) == EXIT_FAILURE

    def test_successful_import_prints_count(self, tmp_path):
        raw = json.dumps({"status": "success", "data": {"items": []}}).encode()
        with patch("builtins.print") as mock_print:
            assert run_import(self._args(tmp_path, raw)) == EXIT_OK
        mock_print.assert_called_once_with("Records created: 0")

    def test_storage_down_is_a_failure(self, tmp_path):
        summary = ImportSummary(storage_failures=2, storage_unavailable=True)
        with patch(
            "images_importer.main.ImportPipelineFactory.create_pipeline"
        ) as mock_create:
            mock_create.return_value.import_batch.return_value = summary
            with patch("builtins.print"):
                code = run_import(self._args(tmp_path, b"{}"))
        assert code == EXIT_FAILURE
