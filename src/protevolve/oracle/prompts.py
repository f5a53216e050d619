"""Instruction documents sent to the generative model.

Both the initial design and the evolution prompt ask for the same JSON keys
(`RESPONSE_KEYS`), so the normalizer only has to fall back on aliases when the
model ignores the instructions.
"""

from __future__ import annotations

import json
import textwrap
from typing import Any, Dict

from ..schemas import CONFIDENCE_LABELS, DesignRequest

RESPONSE_KEYS: Dict[str, str] = {
    "analysis": "string: the key structural features or mutations required",
    "sequence": "string: the amino acid sequence, one-letter codes, 80-150 residues",
    "binding_affinity_score": "number: simulated binding affinity in kcal/mol",
    "predicted_stability_score": "number: predicted stability score",
    "binding_pocket_residues": "array of integers: residue numbers lining the binding pocket",
    "pdb_id": "string: a real 4-character PDB ID used as the structural template",
    "design_confidence": "string: one of " + ", ".join(repr(c) for c in CONFIDENCE_LABELS),
    "experimental_validation_steps": "array of strings: wet-lab steps needed to validate the design",
}


def _response_contract() -> str:
    shape = json.dumps(RESPONSE_KEYS, indent=2)
    return (
        "Return ONLY a single JSON object, with no prose, commentary or code fences "
        "around it. Use exactly these keys:\n" + shape
    )


def _common_steps(n: int) -> str:
    return textwrap.dedent(
        f"""\
        {n}. Simulate binding: provide a "binding_affinity_score" (kcal/mol).
        {n + 1}. Predict stability: provide a "predicted_stability_score".
        {n + 2}. Identify binding pocket: list key residue numbers in "binding_pocket_residues".
        {n + 3}. Find PDB template: identify a real PDB entry with similar function or fold for visualization ("pdb_id").
        {n + 4}. Assess confidence: provide a "design_confidence" ({", ".join(CONFIDENCE_LABELS)}).
        {n + 5}. Outline validation: list the necessary "experimental_validation_steps" as an array of strings.
        """
    )


def build_generate_instruction(description: str) -> str:
    return (
        "You are a world-class computational biologist AI. Your task is to perform a complete "
        "de novo protein design workflow.\n\n"
        f'User\'s desired function: "{description.strip()}"\n\n'
        "Follow these steps precisely:\n"
        '1. Analyze function: describe the key structural features in "analysis".\n'
        "2. Generate sequence: create a plausible, novel amino acid sequence (80-150 residues) "
        'in "sequence".\n' + _common_steps(3) + "\n" + _response_contract()
    )


def build_evolve_instruction(prior_sequence: str, feedback: str) -> str:
    return (
        "You are a world-class computational biologist AI specializing in protein evolution. "
        "Your task is to evolve an existing protein sequence to improve its function based on "
        "user feedback.\n\n"
        f'Previous sequence: "{prior_sequence.strip()}"\n'
        f'User\'s goal for evolution: "{feedback.strip()}"\n\n'
        "Follow these steps precisely:\n"
        '1. Analyze goal: briefly describe the mutations required in "analysis".\n'
        '2. Evolve sequence: generate the new sequence in "sequence".\n'
        + _common_steps(3)
        + "\n"
        + _response_contract()
    )


def build_instruction(request: DesignRequest) -> str:
    if request.is_evolution:
        return build_evolve_instruction(request.prior_sequence or "", request.feedback or "")
    return build_generate_instruction(request.description or "")


def build_request_body(instruction: str) -> Dict[str, Any]:
    """Wrap an instruction in the generateContent request body."""
    return {
        "contents": [{"role": "user", "parts": [{"text": instruction}]}],
        "generationConfig": {"responseMimeType": "application/json"},
    }
