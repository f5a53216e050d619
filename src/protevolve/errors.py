from __future__ import annotations

from typing import Any, Optional


class DesignError(Exception):
    """Base error type for protevolve."""


class OracleUnavailable(DesignError):
    """Raised when the generative model could not be reached after all retries."""

    def __init__(self, message: str, *, attempts: int = 0, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class EmptyOracleResponse(DesignError):
    """Raised when the model answered with no text at all."""


class MalformedOracleJson(DesignError):
    """Raised when the model text does not contain a parseable JSON object."""

    def __init__(self, message: str, *, text: str):
        super().__init__(message)
        self.text = text


class IncompleteOracleResult(DesignError):
    """Raised when sequence or PDB id are missing after alias reconciliation."""

    def __init__(self, reason: str, *, payload: Optional[Any] = None):
        super().__init__(f'Model response was incomplete. Reason provided: "{reason}"')
        self.reason = reason
        self.payload = payload


class StructureFetchFailed(DesignError):
    """Non-fatal: no structure source returned a payload for the template id."""

    def __init__(self, pdb_id: str):
        super().__init__(f"Could not fetch 3D structure for PDB ID: {pdb_id}. Displaying results only.")
        self.pdb_id = pdb_id


class NoPriorDesign(DesignError):
    """Raised when evolution is requested before any sequence was generated."""

    def __init__(self, message: str = "You must generate a protein first before evolving it."):
        super().__init__(message)


class InvalidDesignRequest(DesignError):
    """Raised when the prompt text is blank after stripping."""
