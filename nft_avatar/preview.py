"""
Stale-result suppression for interactive previews.

Each selection change starts a new run tagged with the next RunGeneration.
Only the result of the latest generation is ever handed back to the caller;
results of superseded runs are dropped.
"""

import itertools
import logging
import threading
from typing import Optional

from .config import DEFAULT_CONFIG, CompositeConfig
from .pipeline import CompositeResult, Fetcher, RunGeneration, compose_selection
from .traits import AvatarSelection

logger = logging.getLogger(__name__)


class PreviewSession:
    """
    Caller-owned tracker of the latest preview generation.

    Safe to share between threads: issuing a generation and recording it as
    the latest happen under one lock, so the latest never moves backwards.
    """

    def __init__(self, fetch: Fetcher, config: CompositeConfig = DEFAULT_CONFIG):
        self.fetch = fetch
        self.config = config
        self._counter = itertools.count(1)
        self._latest = RunGeneration(0)
        self._lock = threading.Lock()

    @property
    def latest(self) -> RunGeneration:
        return self._latest

    def next_generation(self) -> RunGeneration:
        with self._lock:
            generation = RunGeneration(next(self._counter))
            self._latest = generation
        return generation

    def is_current(self, generation: Optional[RunGeneration]) -> bool:
        return generation == self._latest

    def accept(self, result: CompositeResult) -> Optional[CompositeResult]:
        """Return ``result`` if it belongs to the latest generation, else None."""
        if self.is_current(result.generation):
            return result
        logger.debug("Discarding stale preview from %s (latest is %s)", result.generation, self._latest)
        return None

    def render(self, selection: AvatarSelection) -> Optional[CompositeResult]:
        """Composite ``selection`` as the newest preview; None if superseded meanwhile."""
        generation = self.next_generation()
        result = compose_selection(selection, self.fetch, self.config, generation)
        return self.accept(result)
