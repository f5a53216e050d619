from __future__ import annotations

import json

import pytest

from protevolve.errors import EmptyOracleResponse, IncompleteOracleResult, MalformedOracleJson
from protevolve.oracle.normalize import find_json_object, normalize
from protevolve.schemas import ANALYSIS_NOT_PROVIDED, CONFIDENCE_UNKNOWN, FieldAliases


@pytest.mark.parametrize(
    "sequence_field",
    [
        {"sequence": "MVLK"},
        {"generated_sequence": "MVLK"},
        {"amino_acid_sequence": "MVLK"},
        {"evolved_sequence": "MVLK"},
        {"sequence": {"amino_acid_sequence": "MVLK"}},
        {"generated_sequence": {"sequence": "MVLK", "length": 4}},
    ],
)
def test_sequence_aliases_resolve_to_same_value(sequence_field):
    raw = json.dumps({**sequence_field, "pdb_id": "1ABC"})
    assert normalize(raw).sequence == "MVLK"


@pytest.mark.parametrize("key", ["analysis", "analysis_function", "function_analysis", "analysis_goal"])
def test_analysis_aliases(key):
    raw = json.dumps({"sequence": "MVLK", "pdb_id": "1ABC", key: "hydrophobic pocket"})
    assert normalize(raw).analysis == "hydrophobic pocket"


def test_json_embedded_in_commentary_and_fences():
    raw = 'here is your answer: ```json {"sequence":"MVLK","pdb_id":"1ABC"} ``` thanks!'
    result = normalize(raw)
    assert result.sequence == "MVLK"
    assert result.pdb_id == "1ABC"


def test_braces_inside_strings_do_not_end_the_object():
    raw = 'Result: {"analysis": "pocket {like} this }", "sequence": "MK", "pdb_id": "2XYZ"} trailing }'
    assert find_json_object(raw) == '{"analysis": "pocket {like} this }", "sequence": "MK", "pdb_id": "2XYZ"}'
    assert normalize(raw).analysis == "pocket {like} this }"


def test_null_alias_falls_through_to_next():
    raw = json.dumps({"sequence": None, "generated_sequence": "MKV", "pdb_id": "1ABC"})
    assert normalize(raw).sequence == "MKV"


def test_analysis_object_is_flattened():
    raw = json.dumps(
        {"sequence": "MK", "pdb_id": "1ABC", "analysis": {"pocket": "Hydrophobic.", "fold": "TIM barrel."}}
    )
    assert normalize(raw).analysis == "Hydrophobic.\n\nTIM barrel."


def test_optional_fields_default_to_sentinels():
    result = normalize(json.dumps({"sequence": "MK", "pdb_id": "1ABC"}))
    assert result.analysis == ANALYSIS_NOT_PROVIDED
    assert result.confidence == CONFIDENCE_UNKNOWN
    assert result.binding_affinity is None
    assert result.predicted_stability is None
    assert result.binding_pocket_residues == []
    assert result.validation_steps == []


def test_numeric_and_list_fields_are_type_checked():
    raw = json.dumps(
        {
            "sequence": "MK",
            "pdb_id": "1ABC",
            "simulated_binding_affinity_score": "-9.5",
            "predicted_stability_score": True,
            "binding_pocket_residues": [12, "45", "Tyr7", 3.0],
            "experimental_validation_steps": "Run a thermal shift assay",
            "design_confidence": "High",
        }
    )
    result = normalize(raw)
    assert result.binding_affinity == -9.5
    assert result.predicted_stability is None
    assert result.binding_pocket_residues == [12, 45, 3]
    assert result.validation_steps == ["Run a thermal shift assay"]
    assert result.confidence == "High"


def test_missing_pdb_id_surfaces_analysis_as_reason():
    raw = json.dumps({"sequence": "MK", "analysis": "No suitable template exists."})
    with pytest.raises(IncompleteOracleResult) as ei:
        normalize(raw)
    assert ei.value.reason == "No suitable template exists."
    assert "No suitable template exists." in str(ei.value)
    assert ei.value.payload == {"sequence": "MK", "analysis": "No suitable template exists."}


def test_missing_sequence_surfaces_error_alias_as_reason():
    raw = json.dumps({"pdb_id": "1ABC", "error": "Request violates policy."})
    with pytest.raises(IncompleteOracleResult) as ei:
        normalize(raw)
    assert ei.value.reason == "Request violates policy."


def test_non_string_sequence_is_incomplete():
    with pytest.raises(IncompleteOracleResult):
        normalize(json.dumps({"sequence": ["M", "K"], "pdb_id": "1ABC"}))


@pytest.mark.parametrize("raw", ["", "   \n"])
def test_empty_text(raw):
    with pytest.raises(EmptyOracleResponse):
        normalize(raw)


def test_malformed_json_keeps_offending_text():
    with pytest.raises(MalformedOracleJson) as ei:
        normalize("```json\nnot json at all\n```")
    assert ei.value.text == "not json at all"


def test_json_that_is_not_an_object_is_malformed():
    with pytest.raises(MalformedOracleJson):
        normalize("```json\n[1, 2, 3]\n```")


def test_alias_table_is_configurable():
    aliases = FieldAliases(sequence=("designed_chain",), pdb_id=("template",))
    result = normalize(json.dumps({"designed_chain": "MKV", "template": "3HTN"}), aliases)
    assert (result.sequence, result.pdb_id) == ("MKV", "3HTN")

    with pytest.raises(IncompleteOracleResult):
        normalize(json.dumps({"sequence": "MKV", "pdb_id": "3HTN"}), aliases)


@pytest.mark.parametrize("bad", ["--5", "²", "1_000", "+-3", "12a"])
def test_implausible_residue_strings_are_dropped(bad):
    raw = json.dumps({"sequence": "MK", "pdb_id": "1ABC", "binding_pocket_residues": [12, bad, " 45 ", "-3"]})
    assert normalize(raw).binding_pocket_residues == [12, 45, -3]


def test_unclosed_braces_before_the_object_are_skipped():
    raw = "{ draft { notes " + '{"sequence": "MK", "pdb_id": "1ABC"}' + " done"
    assert find_json_object(raw) == '{"sequence": "MK", "pdb_id": "1ABC"}'


def test_many_unclosed_braces_scan_once():
    raw = "{" * 200_000 + '{"sequence": "MK", "pdb_id": "1ABC"}'
    assert normalize(raw).pdb_id == "1ABC"


def test_nested_object_is_returned_whole():
    raw = 'x {"sequence": {"amino_acid_sequence": "MK"}, "pdb_id": "1ABC"} y'
    assert normalize(raw).sequence == "MK"
