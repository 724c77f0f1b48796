"""Search -> select repository -> pick quantization -> download."""

from __future__ import annotations

import enum
import logging
from typing import Any

from .control_client import ControlApiClient
from .dispatcher import ActionDispatcher, ActionOutcome
from .errors import MalformedRepositoryId
from .models import Quantization, RepositoryFiles, RepositorySearchResult, SearchResults
from .pollers import POLL_ERRORS

logger = logging.getLogger(__name__)


class BrowseState(str, enum.Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    RESULTS = "results"
    REPO_LOADING = "repo_loading"
    REPO_READY = "repo_ready"
    REPO_EMPTY = "repo_empty"


_REPO_STATES = {BrowseState.REPO_LOADING, BrowseState.REPO_READY, BrowseState.REPO_EMPTY}


def split_repo_id(repo_id: str) -> tuple[str, str]:
    """Split ``author/model``. Anything but two non-empty segments is malformed."""
    author, sep, model = repo_id.partition("/")
    if not sep or not author or not model or "/" in model:
        raise MalformedRepositoryId(repo_id)
    return author, model


class RepositoryBrowseFlow:
    """State machine for browsing HuggingFace repositories.

    Lookup failures degrade to empty lists instead of raising. Each search
    or selection bumps a generation counter; a response that arrives for an
    older generation is dropped.
    """

    def __init__(self, api: ControlApiClient, dispatcher: ActionDispatcher):
        self._api = api
        self._dispatcher = dispatcher
        self._generation = 0
        self.state = BrowseState.IDLE
        self.query = ""
        self.results: list[RepositorySearchResult] = []
        self.selected: RepositorySearchResult | None = None
        self.quantizations: list[Quantization] = []

    async def submit(self, query: str) -> BrowseState:
        query = (query or "").strip()
        if not query or self.state == BrowseState.SEARCHING:
            return self.state
        self._generation += 1
        generation = self._generation
        self.query = query
        self.selected = None
        self.quantizations = []
        self.state = BrowseState.SEARCHING
        results: list[RepositorySearchResult] = []
        try:
            results = SearchResults.model_validate(await self._api.search(query)).results
        except POLL_ERRORS as e:
            logger.warning("Search for '%s' failed: %s", query, e)
        finally:
            # Cancelled or crashed searches still leave SEARCHING.
            if generation == self._generation and self.state == BrowseState.SEARCHING:
                self.results = results
                self.state = BrowseState.RESULTS
        return self.state

    async def select(self, repo: RepositorySearchResult) -> BrowseState:
        if self.state != BrowseState.RESULTS:
            logger.debug("Ignoring repository selection in state %s", self.state.value)
            return self.state
        self._generation += 1
        generation = self._generation
        self.selected = repo
        self.quantizations = []
        self.state = BrowseState.REPO_LOADING
        try:
            author, model = split_repo_id(repo.id)
        except MalformedRepositoryId as e:
            logger.warning("%s; treating as no quantizations", e)
            self.state = BrowseState.REPO_EMPTY
            return self.state
        quantizations: list[Quantization] = []
        try:
            payload = await self._api.list_repo_files(author, model)
            quantizations = RepositoryFiles.model_validate(payload).quantizations
        except POLL_ERRORS as e:
            logger.warning("Failed to fetch files for %s: %s", repo.id, e)
        finally:
            if generation == self._generation and self.state == BrowseState.REPO_LOADING:
                self.quantizations = quantizations
                self.state = BrowseState.REPO_READY if quantizations else BrowseState.REPO_EMPTY
        return self.state

    def back(self) -> BrowseState:
        if self.state in _REPO_STATES:
            self._generation += 1
            self.selected = None
            self.quantizations = []
            self.state = BrowseState.RESULTS
        return self.state

    async def download(self, quantization: str) -> ActionOutcome:
        if self.state != BrowseState.REPO_READY or self.selected is None:
            return ActionOutcome.REJECTED
        if all(q.quantization != quantization for q in self.quantizations):
            logger.info("Quantization '%s' not offered by %s", quantization, self.selected.id)
            return ActionOutcome.REJECTED
        return await self._dispatcher.trigger_download(self.selected.id, quantization)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "query": self.query,
            "results": [r.model_dump(by_alias=True) for r in self.results],
            "selected": self.selected.model_dump(by_alias=True) if self.selected else None,
            "quantizations": [q.model_dump(by_alias=True) for q in self.quantizations],
        }
