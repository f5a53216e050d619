"""Protein design front end over a generative model.

Public surface area is kept intentionally small:

- `DesignController` for generate/evolve orchestration
- `normalize(...)` for turning model replies into `DesignResult`
- FastAPI app factory in `protevolve.app.api:create_app`
"""

from .controller import DesignController, DesignState
from .errors import (
    DesignError,
    EmptyOracleResponse,
    IncompleteOracleResult,
    InvalidDesignRequest,
    MalformedOracleJson,
    NoPriorDesign,
    OracleUnavailable,
    StructureFetchFailed,
)
from .oracle.normalize import normalize
from .schemas import DesignRequest, DesignResult, FieldAliases

__all__ = [
    "DesignController",
    "DesignState",
    "DesignError",
    "EmptyOracleResponse",
    "IncompleteOracleResult",
    "InvalidDesignRequest",
    "MalformedOracleJson",
    "NoPriorDesign",
    "OracleUnavailable",
    "StructureFetchFailed",
    "normalize",
    "DesignRequest",
    "DesignResult",
    "FieldAliases",
]
