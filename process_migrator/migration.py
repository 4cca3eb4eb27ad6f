"""Orchestrates export and import runs.

Failures are dispatched on their :class:`ErrorKind`: known kinds are reported
with a single message, unknown ones with a traceback.
"""

import time
from collections.abc import Callable
from pathlib import Path

from process_migrator import config
from process_migrator.clients.ado_client import AzureDevOpsClient
from process_migrator.clients.repository import ArtifactRepository
from process_migrator.display import console, render_counters
from process_migrator.engine import TaskRunner
from process_migrator.exporter import ProcessExporter
from process_migrator.importer import ProcessImporter
from process_migrator.models.configuration import ConfigurationFile, Mode
from process_migrator.models.migration_error import (
    CancellationError,
    ErrorKind,
    MigrationError,
    ProcessExportError,
    ProcessImportError,
    classify_error,
)
from process_migrator.models.migration_results import ARTIFACTS, ImportSummary, MigrationResult
from process_migrator.models.payload import ProcessPayload
from process_migrator.utils import data_handler
from process_migrator.utils.cancellation import CancellationToken
from process_migrator.utils.retry_manager import RetryConfig

logger = config.logger

RepositoryFactory = Callable[[str, str], ArtifactRepository]

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def exit_code_for(result: MigrationResult) -> int:
    """Map a run result to the process exit code."""
    if result.success:
        return EXIT_SUCCESS
    if result.error_kind is ErrorKind.CANCELLATION:
        return EXIT_CANCELLED
    return EXIT_FAILURE


def save_payload(payload: ProcessPayload, path: Path) -> Path:
    """Write the payload document, raising :class:`ProcessExportError` on failure."""
    try:
        return data_handler.save(payload, path)
    except MigrationError as e:
        raise ProcessExportError(f"Cannot write process payload file '{path}'.") from e


def load_payload(path: Path) -> ProcessPayload:
    """Read a payload document written by a previous export."""
    if not path.exists():
        msg = f"Process payload file '{path}' does not exist."
        raise ProcessImportError(msg)
    logger.debug("Start read process payload from '%s'.", path)
    try:
        payload = data_handler.load(ProcessPayload, path)
    except MigrationError as e:
        raise ProcessImportError(f"Cannot read process payload file '{path}'.") from e
    logger.debug("Complete read process payload.")
    return payload


def report_failure(kind: ErrorKind, error: BaseException) -> None:
    """Log a failed run according to its error kind."""
    if kind is ErrorKind.CANCELLATION:
        logger.warning(CancellationError().message)
    elif kind is ErrorKind.UNKNOWN:
        logger.error("Encountered unknown error: %s", error, exc_info=error)
        logger.error("Check log file for details.")
    else:
        logger.error(str(error))


def report_summary(summary: ImportSummary) -> None:
    """Print the per-artifact counters of an import."""
    if summary.counters:
        console.print(render_counters("Import summary", summary.counters, order=ARTIFACTS))
    for warning in summary.warnings:
        logger.warning("Tolerated failure: %s", warning)


def run_migration(
    mode: Mode,
    configuration: ConfigurationFile,
    overwrite_process_on_target: bool = False,
    token: CancellationToken | None = None,
    repository_factory: RepositoryFactory = AzureDevOpsClient,
) -> MigrationResult:
    """Run an export, an import or both.

    Args:
        mode: What to run
        configuration: Validated configuration for ``mode``
        overwrite_process_on_target: Delete a same-named destination process first
        token: Cancellation token checked before every remote step
        repository_factory: Builds a repository from an account url and token

    Returns:
        The run result; failures are reported, not raised

    """
    options = configuration.options
    process_file = Path(options.process_filename)
    start = time.monotonic()

    result = MigrationResult(mode=mode, payload_file=process_file)
    runner = TaskRunner(
        token,
        RetryConfig.from_options(options.enable_retries, options.max_retries, options.retry_base_delay_ms),
    )

    try:
        payload: ProcessPayload | None = None
        if mode.exports:
            source = runner.run(
                lambda: repository_factory(configuration.source_account_url, configuration.source_account_token),
                f"Get rest client on source account '{configuration.source_account_url}'",
            )
            exporter = ProcessExporter(source, runner, max_workers=options.max_workers)
            payload = exporter.export_process(configuration.source_process_name)
            runner.run_no_retry(lambda: save_payload(payload, process_file), "Write process payload to file")
            logger.success("Export process completed successfully to '%s'.", process_file.resolve())

        if mode.imports:
            if payload is None:
                payload = load_payload(process_file)
            target = runner.run(
                lambda: repository_factory(configuration.target_account_url, configuration.target_account_token),
                f"Get rest client on target account '{configuration.target_account_url}'",
            )
            importer = ProcessImporter(
                target,
                runner,
                options=options,
                target_process_name=configuration.target_process_name,
                overwrite_process_on_target=overwrite_process_on_target,
            )
            try:
                result.summary = importer.import_process(payload)
            finally:
                # Counters are useful after a partial import too
                report_summary(importer.summary)
            result.process_type_id = payload.process.type_id

        result.success = True
    except (Exception, KeyboardInterrupt) as e:
        kind = classify_error(e)
        result.error_kind = kind
        result.message = CancellationError().message if kind is ErrorKind.CANCELLATION else str(e)
        report_failure(kind, e)
    finally:
        result.elapsed_seconds = round(time.monotonic() - start, 3)
        logger.info("Total elapsed time: '%.2f' seconds.", result.elapsed_seconds)

    return result
