"""Adventure Publisher — validate, then build, with whole-pipeline retries.

Invariants:
    - Nothing is built from an outline the validator rejects
    - A transient database failure (OperationalError) restarts the WHOLE build,
      content generation included; a build is never resumed mid-way
    - UnresolvedReferenceError and domain errors are never retried
    - Generated outlines are re-requested while invalid, up to outline_max_attempts;
      shape defects the generator reports (OutlineValidationError) count as invalid

Design Decisions:
    - Fresh GraphBuilder per attempt: no state carried between attempts
    - Attempts exhausted on OperationalError surface as DatabaseError (503)
"""

import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from epoch_adventures.core.errors import (
    DatabaseError, ErrorContext, OutlineValidationError,
)
from epoch_adventures.core.graph_validator import validate_outline
from epoch_adventures.core.outline import GraphLimits, Outline
from epoch_adventures.core.repository_protocols import ContentGenerator
from epoch_adventures.services.graph_builder import BuildResult, GraphBuilder

logger = logging.getLogger(__name__)


class AdventurePublisher:
    """Validator + builder pipeline for one request."""

    def __init__(
        self,
        db: AsyncSession,
        generator: ContentGenerator,
        limits: GraphLimits | None = None,
        build_max_attempts: int = 2,
        outline_max_attempts: int = 2,
    ):
        self.db = db
        self.generator = generator
        self.limits = limits or GraphLimits()
        self.build_max_attempts = max(1, build_max_attempts)
        self.outline_max_attempts = max(1, outline_max_attempts)

    async def publish(self, outline: Outline) -> BuildResult:
        """Publish a caller-supplied outline. Raises OutlineValidationError (422)."""
        report = validate_outline(outline, self.limits)
        if not report.valid:
            _log_rejection(report.to_list(), attempt=1)
            raise OutlineValidationError(report.to_list())
        return await self._build_with_retry(outline)

    async def generate_and_publish(self, concept: str) -> BuildResult:
        """Ask the generator for an outline until one validates, then publish it."""
        outline = await self._generate_valid_outline(concept)
        return await self._build_with_retry(outline)

    async def _generate_valid_outline(self, concept: str) -> Outline:
        violations: list[dict] = []
        for attempt in range(1, self.outline_max_attempts + 1):
            try:
                outline = await self.generator.generate_outline(concept)
            except OutlineValidationError as e:
                violations = e.violations
            else:
                report = validate_outline(outline, self.limits)
                if report.valid:
                    return outline
                violations = report.to_list()
            _log_rejection(violations, attempt)
        raise OutlineValidationError(violations)

    async def _build_with_retry(self, outline: Outline) -> BuildResult:
        attempt = 1
        while True:
            builder = GraphBuilder(self.db, self.generator, self.limits)
            try:
                return await builder.build(outline)
            except OperationalError as e:
                if attempt >= self.build_max_attempts:
                    logger.error(
                        f"Build failed after {attempt} attempts: {e}",
                        extra={"attempt": attempt, "error_code": "DATABASE_ERROR"},
                    )
                    raise DatabaseError(
                        "Transient failure while building adventure", "build",
                        ErrorContext(debug_info={"attempts": attempt}),
                    ) from e
                logger.warning(
                    f"Transient build failure, restarting pipeline: {e}",
                    extra={"attempt": attempt},
                )
                attempt += 1


def _log_rejection(violations: list[dict], attempt: int) -> None:
    logger.warning(
        "Outline rejected: "
        + ", ".join(sorted({v["code"] for v in violations})),
        extra={"attempt": attempt, "error_code": "OUTLINE_INVALID"},
    )
