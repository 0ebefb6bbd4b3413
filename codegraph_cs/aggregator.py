"""Project and workspace aggregation.

Projects are analyzed concurrently, one task per project, each filling its
own :class:`GraphFragment`. Documents inside a project are walked one after
another. The fragments are merged in a single pass once every task is done.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .display import AnalysisOptions
from .models import AnalysisResult, GraphFragment, UnitOutcome
from .walker import CodeStructureWalker
from .workspace import Document, Project, Solution, SourceCodeKind

logger = logging.getLogger(__name__)


def is_eligible(document: Document) -> bool:
    """Regular, hand-written documents the engine can fully analyze."""
    return (
        document.source_kind is SourceCodeKind.REGULAR
        and not document.is_generated
        and document.supports_syntax_tree
        and document.supports_semantic_model
    )


class ProjectAggregator:
    def __init__(self, project: Project, options: Optional[AnalysisOptions] = None) -> None:
        self.project = project
        self.options = options or AnalysisOptions()

    async def run(self) -> GraphFragment:
        fragment = GraphFragment()
        logger.info("Analyzing project: %s", self.project.name)

        try:
            compilation = await self.project.get_compilation()
        except Exception as exc:
            logger.debug("Compilation of %s raised %s", self.project.name, exc, exc_info=True)
            compilation = None
        if compilation is None:
            logger.warning("Could not get compilation for project %s. Skipping.", self.project.name)
            return fragment

        for document in self.project.documents:
            if not is_eligible(document):
                logger.debug("Ignoring document %s", document.name)
                continue
            outcome = await self.process_unit(document)
            if outcome.succeeded:
                fragment.merge(outcome.fragment)
            elif outcome.skipped:
                logger.warning(
                    "Skipping document %s in project %s: %s",
                    outcome.unit_name, self.project.name, outcome.error,
                )
            else:
                logger.warning(
                    "Error processing document %s in project %s: %s",
                    outcome.unit_name, self.project.name, outcome.error,
                )

        logger.debug(
            "Project %s: %d nodes, %d edges",
            self.project.name, len(fragment.nodes), len(fragment.edges),
        )
        return fragment

    async def process_unit(self, document: Document) -> UnitOutcome:
        """Walk one document, folding any error into the outcome."""
        try:
            tree = await document.get_syntax_tree()
            model = await document.get_semantic_model()
            if tree is None or model is None:
                return UnitOutcome.skip(document.name, "syntax tree or semantic model unavailable")
            walker = CodeStructureWalker(model, str(document.file_path), self.options)
            return UnitOutcome.success(document.name, walker.walk(tree.root))
        except Exception as exc:
            logger.debug("Walker failure in %s", document.name, exc_info=True)
            return UnitOutcome.failure(document.name, str(exc) or type(exc).__name__)


class WorkspaceAggregator:
    def __init__(self, solution: Solution, options: Optional[AnalysisOptions] = None) -> None:
        self.solution = solution
        self.options = options or AnalysisOptions()

    async def run(self) -> AnalysisResult:
        tasks = [ProjectAggregator(project, self.options).run() for project in self.solution.projects]
        # gather keeps submission order, so the merge below is deterministic.
        fragments: List[GraphFragment] = await asyncio.gather(*tasks)
        merged = GraphFragment.merged(fragments)
        logger.debug("Merged %d nodes, %d edges", len(merged.nodes), len(merged.edges))
        return AnalysisResult.from_fragment(merged)

    def run_sync(self) -> AnalysisResult:
        return asyncio.run(self.run())
