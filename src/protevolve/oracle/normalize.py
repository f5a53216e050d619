"""Turn the model's free-form reply into a `DesignResult`.

The reply is untrusted: JSON may be wrapped in commentary or code fences, and
key names drift between calls. Field lookup is driven by `FieldAliases`
rather than per-field conditionals.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import EmptyOracleResponse, IncompleteOracleResult, MalformedOracleJson
from ..schemas import ANALYSIS_NOT_PROVIDED, CONFIDENCE_UNKNOWN, DesignResult, FieldAliases

logger = logging.getLogger(__name__)

DEFAULT_ALIASES = FieldAliases()

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_RESIDUE_RE = re.compile(r"-?\d+", re.ASCII)

INCOMPLETE_DEFAULT_REASON = "The AI did not provide a valid sequence or PDB ID."


# ---------------------------
# Text -> JSON object
# ---------------------------


def find_json_object(text: str) -> Optional[str]:
    """Return the balanced {...} span with the earliest start, in one pass.

    Braces inside JSON strings are ignored; unmatched braces are skipped.
    """
    start = text.find("{")
    if start == -1:
        return None

    opens: List[int] = []
    best: Optional[Tuple[int, int]] = None
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            opens.append(i)
        elif ch == "}" and opens:
            begin = opens.pop()
            if not opens:
                # every earlier brace is already closed, nothing can start sooner
                return text[begin : i + 1]
            if best is None or begin < best[0]:
                best = (begin, i + 1)
    return text[best[0] : best[1]] if best else None


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_json_object(raw_text: str) -> Dict[str, Any]:
    if not raw_text or not raw_text.strip():
        raise EmptyOracleResponse("The AI model returned an empty response.")

    candidate = find_json_object(raw_text)
    if candidate is None:
        candidate = strip_code_fences(raw_text)

    try:
        obj = json.loads(candidate)
    except ValueError as e:
        logger.error("Failed to parse model response as JSON: %r", candidate[:500])
        raise MalformedOracleJson("AI response was not valid JSON.", text=candidate) from e

    if not isinstance(obj, dict):
        raise MalformedOracleJson("AI response was not a JSON object.", text=candidate)
    return obj


# ---------------------------
# Alias reconciliation
# ---------------------------


def first_present(obj: Mapping[str, Any], keys: Sequence[str]) -> Any:
    """Value of the first key that is present and not null."""
    for k in keys:
        if obj.get(k) is not None:
            return obj[k]
    return None


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _unwrap_sequence(value: Any, subkeys: Sequence[str]) -> Any:
    if isinstance(value, dict):
        return first_present(value, subkeys)
    return value


def _flatten_analysis(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        parts = [str(v).strip() for v in value.values() if v is not None and str(v).strip()]
        return "\n\n".join(parts) or None
    return _as_text(value)


def _as_number(value: Any) -> Optional[float]:
    # bool is an int subclass; "true" is not a score
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_residues(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    out: List[int] = []
    for v in value:
        if isinstance(v, bool):
            continue
        if isinstance(v, int):
            out.append(v)
        elif isinstance(v, float) and v.is_integer():
            out.append(int(v))
        elif isinstance(v, str) and _RESIDUE_RE.fullmatch(v.strip()):
            out.append(int(v.strip()))
    return out


def _as_steps(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def normalize(raw_text: str, aliases: FieldAliases = DEFAULT_ALIASES) -> DesignResult:
    """Parse and reconcile a model reply.

    Raises EmptyOracleResponse, MalformedOracleJson or IncompleteOracleResult.
    """

    obj = parse_json_object(raw_text)

    sequence = _as_text(_unwrap_sequence(first_present(obj, aliases.sequence), aliases.sequence_subkeys))
    pdb_id = _as_text(first_present(obj, aliases.pdb_id))
    analysis = _flatten_analysis(first_present(obj, aliases.analysis))

    if sequence is None or pdb_id is None:
        reason = analysis or _as_text(first_present(obj, aliases.error)) or INCOMPLETE_DEFAULT_REASON
        logger.error("Incomplete model response (keys: %s)", sorted(obj.keys()))
        raise IncompleteOracleResult(reason, payload=obj)

    return DesignResult(
        sequence=sequence,
        pdb_id=pdb_id,
        analysis=analysis or ANALYSIS_NOT_PROVIDED,
        binding_affinity=_as_number(first_present(obj, aliases.binding_affinity)),
        predicted_stability=_as_number(first_present(obj, aliases.predicted_stability)),
        binding_pocket_residues=_as_residues(first_present(obj, aliases.binding_pocket_residues)),
        confidence=_as_text(first_present(obj, aliases.confidence)) or CONFIDENCE_UNKNOWN,
        validation_steps=_as_steps(first_present(obj, aliases.validation_steps)),
    )
