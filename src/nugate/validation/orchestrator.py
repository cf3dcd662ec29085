"""Post-write orchestration: run validators concurrently, then aggregate."""

import concurrent.futures
import logging
from pathlib import Path
from typing import Protocol

from nugate.validation.aggregator import aggregate, aggregate_issues
from nugate.validation.config import GateConfig
from nugate.validation.models import AggregateReport, ValidationResult
from nugate.validation.tools import ToolRunner
from nugate.validation.validators import (
    default_validators,
    file_error_issue,
    validator_error_issue,
)

logger = logging.getLogger(__name__)


class Validator(Protocol):
    """Anything that can check a file and return a ValidationResult."""

    source: str

    def validate(self, file_path: Path, content: str | None = None) -> ValidationResult: ...


class PostWriteOrchestrator:
    """Runs independent validators in parallel and aggregates their results."""

    def __init__(
        self,
        config: GateConfig | None = None,
        runner: ToolRunner | None = None,
        validators: list[Validator] | None = None,
        strict: bool = False,
    ) -> None:
        """Initialize orchestrator.

        Args:
            config: Gate configuration (defaults if None)
            runner: Tool runner (built from config if None)
            validators: Explicit validator list (defaults if None)
            strict: Include the heuristic scanners in the default list
        """
        self.config = config or GateConfig()
        self.runner = runner or ToolRunner(timeout_seconds=self.config.timeout_seconds)
        self.validators: list[Validator] = (
            validators
            if validators is not None
            else default_validators(self.config, self.runner, strict=strict)
        )

    def run(self, file_path: Path) -> AggregateReport:
        """Validate a written file.

        Never raises; every failure becomes an issue in the report.

        Args:
            file_path: File that was just written

        Returns:
            AggregateReport for the file
        """
        file = str(file_path)

        if not self.config.is_target(file_path):
            return aggregate_issues(
                file,
                [file_error_issue("orchestrator", f"{file} is not a Nushell script")],
            )
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s: %s", file, e)
            return aggregate_issues(
                file,
                [file_error_issue("orchestrator", f"Cannot read {file}: {e}")],
            )

        results = self._run_parallel(file_path, content)
        report = aggregate(results, file=file)
        logger.info("%s: %s", file, report.summary)
        return report

    def _run_one(self, validator: Validator, file_path: Path, content: str) -> ValidationResult:
        try:
            return validator.validate(file_path, content)
        except Exception as e:
            logger.exception("%s validator failed on %s", validator.source, file_path)
            return ValidationResult.from_issues(
                validator.source, str(file_path), [validator_error_issue(validator.source, e)]
            )

    def _run_parallel(self, file_path: Path, content: str) -> list[ValidationResult]:
        """Run validators in parallel.

        Results come back in validator order, not completion order.
        """
        if not self.validators:
            return []

        with concurrent.futures.ThreadPoolExecutor(max_workers=len(self.validators)) as executor:
            futures = [
                executor.submit(self._run_one, validator, file_path, content)
                for validator in self.validators
            ]
            concurrent.futures.wait(futures)

        return [future.result() for future in futures]


def run_post_write(
    file_path: Path,
    config: GateConfig | None = None,
    strict: bool = False,
) -> AggregateReport:
    """Helper function to run the post-write checks on one file."""
    return PostWriteOrchestrator(config=config, strict=strict).run(file_path)
