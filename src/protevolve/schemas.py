from __future__ import annotations

from typing import Annotated, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field, StringConstraints, model_validator
from pydantic.config import ConfigDict

ANALYSIS_NOT_PROVIDED = "Analysis not provided."
CONFIDENCE_UNKNOWN = "Unknown"
CONFIDENCE_LABELS = ("High", "Promising", "Experimental")


class _BaseModel(BaseModel):
    """Project-wide BaseModel.

    Pydantic reserves the `model_` namespace for internal attributes. Config
    fields such as `model_name` are part of the contract, so we explicitly
    allow them.
    """

    model_config = ConfigDict(protected_namespaces=())


# ---------------------------
# Oracle field aliases
# ---------------------------


class FieldAliases(_BaseModel):
    """Ordered candidate keys per logical field of a model response.

    The first key present with a non-null value wins. The model does not keep
    one canonical key name across calls, so this table lives in config.json
    (`field_aliases`) and can be extended without code changes.
    """

    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    sequence: Tuple[str, ...] = ("sequence", "generated_sequence", "amino_acid_sequence", "evolved_sequence")
    # Keys tried when the sequence arrives wrapped in an object.
    sequence_subkeys: Tuple[str, ...] = ("amino_acid_sequence", "sequence")
    analysis: Tuple[str, ...] = ("analysis", "analysis_function", "function_analysis", "analysis_goal")
    pdb_id: Tuple[str, ...] = ("pdb_id", "pdbId", "pdb_template_id", "pdb_template")
    binding_affinity: Tuple[str, ...] = (
        "binding_affinity_score",
        "simulated_binding_affinity_score",
        "binding_affinity",
    )
    predicted_stability: Tuple[str, ...] = ("predicted_stability_score", "stability_score", "predicted_stability")
    binding_pocket_residues: Tuple[str, ...] = ("binding_pocket_residues", "pocket_residues", "binding_residues")
    confidence: Tuple[str, ...] = ("design_confidence", "confidence")
    validation_steps: Tuple[str, ...] = ("experimental_validation_steps", "validation_steps")
    error: Tuple[str, ...] = ("error", "message", "reason")


# ---------------------------
# Domain records
# ---------------------------


class DesignRequest(_BaseModel):
    """Either a fresh functional description, or (prior sequence, feedback)."""

    description: Optional[str] = None
    prior_sequence: Optional[str] = None
    feedback: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_mode(self) -> "DesignRequest":
        has_description = bool((self.description or "").strip())
        has_prior = bool((self.prior_sequence or "").strip())
        has_feedback = bool((self.feedback or "").strip())

        if has_description and not (has_prior or has_feedback):
            return self
        if not has_description and has_prior and has_feedback:
            return self
        raise ValueError("provide either description, or prior_sequence together with feedback")

    @property
    def is_evolution(self) -> bool:
        return bool((self.prior_sequence or "").strip())


class DesignResult(_BaseModel):
    sequence: str = Field(min_length=1)
    pdb_id: str = Field(min_length=1)
    analysis: str = ANALYSIS_NOT_PROVIDED
    binding_affinity: Optional[float] = None
    predicted_stability: Optional[float] = None
    binding_pocket_residues: List[int] = Field(default_factory=list)
    confidence: str = CONFIDENCE_UNKNOWN
    validation_steps: List[str] = Field(default_factory=list)


# ---------------------------
# API schemas
# ---------------------------


# Stripped before the length check, so whitespace-only prompts are rejected.
PromptText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class GeneratePayload(_BaseModel):
    description: PromptText = Field(validation_alias=AliasChoices("description", "prompt"))


class EvolvePayload(_BaseModel):
    feedback: PromptText = Field(validation_alias=AliasChoices("feedback", "evolution_prompt"))
