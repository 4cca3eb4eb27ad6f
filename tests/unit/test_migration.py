"""Tests for the export/import orchestrator."""

import json

import pytest

from process_migrator.migration import (
    EXIT_CANCELLED,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    exit_code_for,
    load_payload,
    run_migration,
)
from process_migrator.models.configuration import ConfigurationFile, ConfigurationOptions, Mode
from process_migrator.models.migration_error import ErrorKind, ProcessImportError
from process_migrator.models.migration_results import MigrationResult
from process_migrator.utils import data_handler
from process_migrator.utils.cancellation import CancellationToken
from tests.utils.fake_repository import FakeRepository
from tests.utils.payload_factory import SOURCE_PROCESS_ID, build_payload

pytestmark = pytest.mark.unit

SOURCE_URL = "https://dev.azure.com/source"
TARGET_URL = "https://dev.azure.com/target"


@pytest.fixture
def configuration(tmp_path) -> ConfigurationFile:
    return ConfigurationFile(
        source_account_url=SOURCE_URL,
        source_account_token="source-pat",
        source_process_name="Agile-Copy",
        target_account_url=TARGET_URL,
        target_account_token="target-pat",
        options=ConfigurationOptions(
            process_filename=tmp_path / "output" / "process.json",
            log_filename=tmp_path / "output" / "run.log",
            retry_base_delay_ms=0,
        ),
    )


@pytest.fixture
def accounts() -> dict[str, FakeRepository]:
    source = FakeRepository()
    source.load_payload(build_payload())
    return {SOURCE_URL: source, TARGET_URL: FakeRepository()}


@pytest.fixture
def factory(accounts):
    def create(url: str, token: str) -> FakeRepository:
        return accounts[url]

    return create


class TestRunMigration:
    def test_export_writes_payload_file(self, configuration, factory) -> None:
        result = run_migration(Mode.EXPORT, configuration, repository_factory=factory)

        assert result.success
        assert exit_code_for(result) == EXIT_SUCCESS
        document = json.loads(configuration.options.process_filename.read_text(encoding="utf-8"))
        assert document["process"]["typeId"] == SOURCE_PROCESS_ID
        assert result.summary is None

    def test_import_replays_payload_file(self, configuration, factory, accounts) -> None:
        data_handler.save(build_payload(), configuration.options.process_filename)

        result = run_migration(Mode.IMPORT, configuration, repository_factory=factory)

        assert result.success
        target = accounts[TARGET_URL]
        assert result.process_type_id == target.process_by_name("Agile-Copy").type_id
        assert result.summary.count("work_item_types", "created") == 2

    def test_migrate_exports_then_imports(self, configuration, factory, accounts) -> None:
        configuration.target_process_name = "Agile-Migrated"

        result = run_migration(Mode.MIGRATE, configuration, repository_factory=factory)

        assert result.success
        assert configuration.options.process_filename.exists()
        migrated = accounts[TARGET_URL].process_by_name("Agile-Migrated")
        assert result.process_type_id == migrated.type_id
        assert "create_process" not in accounts[SOURCE_URL].call_names

    def test_import_without_payload_file(self, configuration, factory) -> None:
        result = run_migration(Mode.IMPORT, configuration, repository_factory=factory)

        assert not result.success
        assert result.error_kind is ErrorKind.IMPORT
        assert "does not exist" in result.message
        assert exit_code_for(result) == EXIT_FAILURE

    def test_validation_failure(self, configuration, factory, accounts) -> None:
        accounts[TARGET_URL].add_process("Agile-Copy")

        result = run_migration(Mode.MIGRATE, configuration, repository_factory=factory)

        assert result.error_kind is ErrorKind.VALIDATION
        assert exit_code_for(result) == EXIT_FAILURE
        assert "create_process" not in accounts[TARGET_URL].call_names

    def test_cancelled_run(self, configuration, factory) -> None:
        token = CancellationToken()
        token.cancel()

        result = run_migration(Mode.EXPORT, configuration, token=token, repository_factory=factory)

        assert result.error_kind is ErrorKind.CANCELLATION
        assert exit_code_for(result) == EXIT_CANCELLED

    def test_keyboard_interrupt_is_a_cancellation(self, configuration) -> None:
        def interrupted(url: str, token: str) -> FakeRepository:
            raise KeyboardInterrupt

        result = run_migration(Mode.EXPORT, configuration, repository_factory=interrupted)

        assert result.error_kind is ErrorKind.CANCELLATION
        assert result.message == "Process import/export cancelled by user input."

    def test_unexpected_error_is_unknown(self, configuration) -> None:
        def broken(url: str, token: str) -> FakeRepository:
            raise RuntimeError("boom")

        result = run_migration(Mode.EXPORT, configuration, repository_factory=broken)

        assert result.error_kind is ErrorKind.UNKNOWN
        assert result.message == "boom"
        assert exit_code_for(result) == EXIT_FAILURE

    def test_elapsed_time_is_recorded(self, configuration, factory) -> None:
        result = run_migration(Mode.EXPORT, configuration, repository_factory=factory)

        assert result.elapsed_seconds >= 0


class TestPayloadFile:
    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ProcessImportError, match="does not exist"):
            load_payload(tmp_path / "nope.json")

    def test_corrupt_file(self, tmp_path) -> None:
        path = tmp_path / "process.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ProcessImportError, match="Cannot read process payload file"):
            load_payload(path)


def test_exit_code_for_success() -> None:
    assert exit_code_for(MigrationResult(mode=Mode.EXPORT, success=True)) == EXIT_SUCCESS
