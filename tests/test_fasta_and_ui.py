from __future__ import annotations

from typing import Any, List

from dash import html

from protevolve.app.ui import S_HIDDEN, confidence_pill, control_styles, render_metrics, render_results
from protevolve.fasta import clean_sequence, design_to_fasta
from protevolve.schemas import DesignResult


def texts(node: Any) -> List[str]:
    if node is None:
        return []
    if isinstance(node, str):
        return [node]
    if isinstance(node, (list, tuple)):
        return [t for child in node for t in texts(child)]
    return texts(getattr(node, "children", None))


def test_fasta_export_cleans_sequence_and_annotates_header():
    result = DesignResult(sequence="mvlk agh\n12e", pdb_id="5ddo", confidence="High", binding_affinity=-9.5)
    header, seq = design_to_fasta(result).strip().split("\n", 1)
    assert header == ">design template=5DDO confidence=High binding_affinity=-9.5kcal/mol"
    assert seq.replace("\n", "") == "MVLKAGHE"


def test_clean_sequence_keeps_stop_symbol():
    assert clean_sequence("MK-V*") == "MKV*"


def test_metrics_show_na_when_missing():
    out = texts(render_metrics({"binding_affinity": None, "predicted_stability": None}))
    assert out.count("N/A") == 2


def test_unknown_confidence_pill_falls_back():
    pill = confidence_pill("Speculative")
    assert isinstance(pill, html.Span)
    assert pill.style["background"] == "#e0e0e0"


def test_results_placeholder_before_first_design():
    assert texts(render_results({"result": None})) == ["Results will appear here after the first design."]


def test_controls_hidden_before_first_design():
    assert control_styles({"result": None, "can_evolve": False}, None) == (S_HIDDEN, S_HIDDEN)


def test_pocket_toggle_needs_structure_and_residues():
    state = {"result": {"binding_pocket_residues": [12, 45]}, "can_evolve": True}

    evolve, highlight = control_styles(state, "ATOM\n")
    assert evolve != S_HIDDEN and highlight != S_HIDDEN

    assert control_styles(state, None)[1] == S_HIDDEN
    no_pocket = {"result": {"binding_pocket_residues": []}, "can_evolve": True}
    assert control_styles(no_pocket, "ATOM\n") == ({"marginTop": "16px"}, S_HIDDEN)
