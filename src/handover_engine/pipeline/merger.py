"""
Run-of-show merger.

The single mutation primitive for a production's run-of-show document.
Every writer (handover, crew sync, flight checks, manual edits) goes
through here.

Semantics:
- Each top-level section present in the update replaces the stored
  section wholesale; absent sections are never touched.
- Each section carries its own version. A write is accepted only if the
  stored version still equals the version the caller read, so concurrent
  writers of *different* sections never conflict while concurrent writers
  of the *same* section cannot silently overwrite each other.
"""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..errors import NotFoundError, StaleSectionError, ValidationError
from ..models.deal import Production
from ..models.run_of_show import (
    RunOfShowDocument,
    RunOfShowUpdate,
    RunOfShowView,
    normalize_crew_items,
    normalize_gear_items,
    normalize_logistics,
)
from ..repository import ProductionRepository
from ..results import fail_soft

logger = structlog.get_logger(__name__)


def document_of(production: Production) -> RunOfShowDocument:
    """Parse the stored document section by section; unreadable sections are logged and skipped."""
    doc = RunOfShowDocument.from_raw(production.run_of_show_data)
    if doc.malformed_sections:
        logger.warning(
            'ros_merger.malformed_sections',
            event_id=production.id,
            sections=doc.malformed_sections,
        )
    return doc


def require_readable(production: Production, doc: RunOfShowDocument, section: str) -> None:
    """Refuse to rewrite a section whose stored value could not be read."""
    if section in doc.malformed_sections:
        raise ValidationError(
            f"Stored run-of-show section '{section}' is malformed",
            context={'event_id': production.id, 'section': section},
        )


def build_view(production: Production) -> RunOfShowView:
    """Normalized, display-ready view of a production's run of show."""
    doc = document_of(production)
    return RunOfShowView(
        event_id=production.id,
        document=doc,
        crew=normalize_crew_items(doc),
        gear=normalize_gear_items(doc),
        logistics=normalize_logistics(doc),
        versions=dict(production.run_of_show_versions),
        malformed_sections=doc.malformed_sections,
    )


def parse_update(update: RunOfShowUpdate | dict[str, Any]) -> RunOfShowUpdate:
    if isinstance(update, RunOfShowUpdate):
        return update
    try:
        return RunOfShowUpdate.model_validate(update)
    except PydanticValidationError as e:
        raise ValidationError(
            'Invalid run-of-show update',
            context={'errors': e.errors(include_url=False, include_context=False)},
        ) from e


class RunOfShowMerger:
    """
    Section-replace writes over the run-of-show document.
    """

    def __init__(self, repository: ProductionRepository):
        self.repository = repository

    async def load(self, workspace_id: str, event_id: str) -> Production:
        """Load a production in the workspace or raise NotFoundError."""
        production = await self.repository.get_production(workspace_id, event_id)
        if production is None:
            raise NotFoundError(
                'Production not found',
                context={'event_id': event_id, 'workspace_id': workspace_id},
            )
        return production

    async def write_sections(
        self,
        workspace_id: str,
        production: Production,
        sections: dict[str, Any],
        expected_versions: dict[str, int] | None = None,
    ) -> dict[str, int]:
        """
        Replace sections of an already-loaded production.

        Args:
            workspace_id: Owning workspace
            production: Production as read by the caller
            sections: section name → JSON-ready replacement
            expected_versions: Versions the caller based its edit on; any
                               section not listed uses the version in
                               `production`

        Returns:
            section name → new version

        Raises:
            StaleSectionError: a section changed since it was read (nothing written)
        """
        if not sections:
            return {}

        expected = {
            name: production.run_of_show_versions.get(name, 0) for name in sections
        }
        if expected_versions:
            expected.update({k: v for k, v in expected_versions.items() if k in sections})

        try:
            versions = await self.repository.write_run_of_show_sections(
                workspace_id, production.id, sections, expected
            )
        except StaleSectionError:
            logger.warning(
                'ros_merger.stale_section',
                event_id=production.id,
                sections=sorted(sections),
            )
            raise

        logger.info(
            'ros_merger.sections_replaced',
            event_id=production.id,
            sections=sorted(sections),
            versions=versions,
        )
        return versions

    async def apply(
        self,
        workspace_id: str,
        event_id: str,
        update: RunOfShowUpdate | dict[str, Any],
        expected_versions: dict[str, int] | None = None,
    ) -> dict[str, int]:
        """Load the production and replace the sections present in `update` (raising variant)."""
        parsed = parse_update(update)
        production = await self.load(workspace_id, event_id)
        return await self.write_sections(
            workspace_id, production, parsed.sections(), expected_versions
        )

    async def view(self, workspace_id: str, event_id: str) -> RunOfShowView:
        return build_view(await self.load(workspace_id, event_id))

    @fail_soft('merge_run_of_show')
    async def merge_run_of_show(
        self,
        workspace_id: str,
        event_id: str,
        update: RunOfShowUpdate | dict[str, Any],
        expected_versions: dict[str, int] | None = None,
    ) -> dict[str, int]:
        return await self.apply(workspace_id, event_id, update, expected_versions)

    @fail_soft('get_run_of_show')
    async def get_run_of_show(self, workspace_id: str, event_id: str) -> RunOfShowView:
        return await self.view(workspace_id, event_id)
