from __future__ import annotations

import logging
from typing import Optional, Protocol

from pydantic import BaseModel, Field, ValidationError, computed_field

from .errors import DesignError, InvalidDesignRequest, NoPriorDesign, StructureFetchFailed
from .oracle.normalize import DEFAULT_ALIASES, normalize
from .oracle.prompts import build_instruction
from .schemas import DesignRequest, DesignResult, FieldAliases

logger = logging.getLogger(__name__)


class Oracle(Protocol):
    async def invoke(self, instruction: str) -> str: ...


class Fetcher(Protocol):
    async def fetch(self, pdb_id: Optional[str]) -> Optional[str]: ...


class DesignState(BaseModel):
    """UI state owned by the controller; mutated only through its transitions."""

    loading: bool = False
    error: Optional[str] = None
    error_kind: Optional[str] = None
    warning: Optional[str] = None
    result: Optional[DesignResult] = None
    # Held for the current render cycle only; served separately from the JSON state.
    structure: Optional[str] = Field(default=None, exclude=True)

    @computed_field
    @property
    def has_structure(self) -> bool:
        return bool(self.structure)

    @computed_field
    @property
    def can_evolve(self) -> bool:
        return self.result is not None

    def _clear_messages(self) -> None:
        self.error = None
        self.error_kind = None
        self.warning = None

    def start_generate(self) -> None:
        # Fresh designs start from an empty slate.
        self._clear_messages()
        self.result = None
        self.structure = None
        self.loading = True

    def start_evolve(self) -> None:
        self._clear_messages()
        self.loading = True

    def complete(self, result: DesignResult) -> None:
        self.result = result
        self.structure = None

    def attach_structure(self, payload: str) -> None:
        self.structure = payload

    def structure_missing(self, error: StructureFetchFailed) -> None:
        self.structure = None
        self.warning = str(error)

    def fail(self, error: DesignError) -> None:
        self.error = str(error)
        self.error_kind = type(error).__name__
        self.loading = False

    def finish(self) -> None:
        self.loading = False


class DesignController:
    """Wires user actions to prompt -> oracle -> normalize -> structure fetch.

    One generate/evolve call may be in flight at a time; further triggers are
    ignored until it finishes. Every DesignError is absorbed into the state.
    """

    def __init__(self, *, oracle: Oracle, fetcher: Fetcher, aliases: FieldAliases = DEFAULT_ALIASES):
        self.oracle = oracle
        self.fetcher = fetcher
        self.aliases = aliases
        self.state = DesignState()

    @property
    def busy(self) -> bool:
        return self.state.loading

    @property
    def current_sequence(self) -> Optional[str]:
        return self.state.result.sequence if self.state.result else None

    async def generate(self, description: str) -> DesignState:
        if self.busy:
            logger.info("generate ignored: a design call is already in flight")
            return self.state

        request = self._request(description=description)
        if request is None:
            return self.state
        self.state.start_generate()
        return await self._run(request)

    async def evolve(self, feedback: str) -> DesignState:
        if self.busy:
            logger.info("evolve ignored: a design call is already in flight")
            return self.state

        prior = self.current_sequence
        if not prior:
            self.state.fail(NoPriorDesign())
            return self.state

        request = self._request(prior_sequence=prior, feedback=feedback)
        if request is None:
            return self.state
        self.state.start_evolve()
        return await self._run(request)

    def _request(self, **fields: str) -> Optional[DesignRequest]:
        try:
            return DesignRequest(**fields)
        except ValidationError:
            self.state.fail(InvalidDesignRequest("Please enter a description or an evolution goal first."))
            return None

    async def _run(self, request: DesignRequest) -> DesignState:
        try:
            raw = await self.oracle.invoke(build_instruction(request))
            result = normalize(raw, self.aliases)
            self.state.complete(result)

            structure = await self.fetcher.fetch(result.pdb_id)
            if structure:
                self.state.attach_structure(structure)
            else:
                self.state.structure_missing(StructureFetchFailed(result.pdb_id))
        except DesignError as e:
            logger.warning("design call failed: %s: %s", type(e).__name__, e)
            self.state.fail(e)
        finally:
            self.state.finish()
        return self.state
