"""Guard around the per-way callback: exclusion, classification and failure isolation."""

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from exceptions import OsmConversionError
from infrastructure import InfrastructureClassifier

logger = logging.getLogger(__name__)


class WayHandler(Protocol):
    """Anything that builds something from an accepted way."""

    def accepts(self, way, tags: dict) -> bool:
        """Return False when the way turns out not to be for this handler."""
        ...


@dataclass
class GuardStats:
    excluded: int = 0
    skipped: int = 0
    accepted: int = 0
    failed: int = 0

    def as_dict(self):
        return {
            'excluded': self.excluded,
            'skipped': self.skipped,
            'accepted': self.accepted,
            'failed': self.failed,
        }


class WayProcessingGuard:
    """Filters ways and hands the eligible ones to a handler.

    Excluded and non-infrastructure ways are skipped silently, as are ways
    the handler declines by returning False. A conversion error raised by the handler is logged, recorded in ``failures`` as
    ``(way_id, message)`` and passed to ``reporter`` if given; the next way
    is processed as normal.
    """

    def __init__(self, settings, handler: WayHandler, classifier=None,
                 reporter: Callable[[int, str], None] | None = None):
        self.settings = settings
        self.handler = handler
        self.classifier = classifier or InfrastructureClassifier(settings)
        self.reporter = reporter
        self.failures: list[tuple[int, str]] = []
        self.stats = GuardStats()

    def process(self, way):
        if self.settings.is_way_excluded(way.id):
            self.stats.excluded += 1
            return

        tags = way.tags
        if not self.classifier.classify(tags):
            self.stats.skipped += 1
            return

        try:
            accepted = self.handler.accepts(way, tags)
        except OsmConversionError as e:
            self._report(way.id, str(e))
            return
        if accepted:
            self.stats.accepted += 1
        else:
            self.stats.skipped += 1

    def _report(self, way_id, message):
        self.stats.failed += 1
        logger.error(message)
        logger.error(f"Error during parsing of OSM way (id:{way_id})")
        self.failures.append((way_id, message))
        if self.reporter is not None:
            self.reporter(way_id, message)

    def __call__(self, way):
        self.process(way)

    def reset(self):
        self.failures = []
        self.stats = GuardStats()
