from typing import Any, Dict, List, Optional, Tuple

import requests
from dash import Dash, Input, Output, State, ctx, dcc, html
from flask import request as flask_request

from ..core import AppConfig
from ..viewer import ViewerAdapter

S_BODY = {"fontFamily": "system-ui, sans-serif", "margin": "16px", "maxWidth": "1280px"}
S_COLS = {"display": "flex", "gap": "24px", "alignItems": "flex-start", "flexWrap": "wrap"}
S_COL = {"flex": "1 1 480px", "minWidth": "360px"}
S_MONO = {
    "fontFamily": "ui-monospace, Menlo, Consolas, monospace",
    "whiteSpace": "pre-wrap",
    "wordBreak": "break-word",
}
S_BOX = {"border": "1px solid #ddd", "borderRadius": "10px", "padding": "10px", "marginTop": "10px"}
S_ERR = {**S_BOX, "color": "#b00020", "background": "#fdecea"}
S_WARN = {**S_BOX, "color": "#8a6d00", "background": "#fff8e1"}
S_TEXTAREA = {"width": "100%", "height": "80px"}
S_HIDDEN = {"display": "none"}

PILL_COLORS = {
    "High": ("#1b5e20", "#c8e6c9"),
    "Promising": ("#795548", "#fff59d"),
    "Experimental": ("#b71c1c", "#ffcdd2"),
    "Unknown": ("#424242", "#e0e0e0"),
}

VIEWER_HEIGHT = 500


def confidence_pill(confidence: str) -> html.Span:
    fg, bg = PILL_COLORS.get(confidence, PILL_COLORS["Unknown"])
    return html.Span(
        confidence,
        style={"color": fg, "background": bg, "borderRadius": "999px", "padding": "2px 10px", "fontWeight": "700"},
    )


def _metric(label: str, value: str, color: str) -> html.Div:
    return html.Div(
        [html.Div(label, style={"fontSize": "12px", "color": "#666"}), html.Div(value, style={"fontSize": "22px", "fontWeight": "700", "color": color})],
        style={**S_BOX, "flex": "1", "textAlign": "center", "marginTop": 0},
    )


def render_metrics(result: Dict[str, Any]) -> html.Div:
    affinity = result.get("binding_affinity")
    stability = result.get("predicted_stability")

    affinity_txt = f"{affinity} kcal/mol" if affinity is not None else "N/A"
    affinity_color = "#2e7d32" if affinity is not None else "#999"

    if stability is None:
        stability_txt, stability_color = "N/A", "#999"
    else:
        stability_txt = f"{float(stability):.2f}"
        stability_color = "#2e7d32" if float(stability) > 0 else "#c62828"

    return html.Div(
        [_metric("Binding Affinity", affinity_txt, affinity_color), _metric("Predicted Stability", stability_txt, stability_color)],
        style={"display": "flex", "gap": "10px"},
    )


def render_results(state: Dict[str, Any]) -> html.Div:
    result = state.get("result")
    if not result:
        return html.Div("Results will appear here after the first design.", style={"color": "#888", "marginTop": "10px"})

    steps: List[str] = result.get("validation_steps") or []
    pocket: List[int] = result.get("binding_pocket_residues") or []

    return html.Div(
        [
            html.H4("AI Analysis"),
            html.Div(result.get("analysis", ""), style={**S_BOX, **S_MONO, "fontStyle": "italic"}),
            html.H4("Performance Metrics"),
            render_metrics(result),
            html.Div(
                [
                    html.Div(
                        [html.Span("Design Validation", style={"fontWeight": "700"}), confidence_pill(result.get("confidence") or "Unknown")],
                        style={"display": "flex", "justifyContent": "space-between"},
                    ),
                    html.P(
                        "This is a computational prediction. Real-world validation requires the following lab work:",
                        style={"color": "#666", "fontSize": "13px"},
                    ),
                    html.Ol([html.Li(s) for s in steps]) if steps else html.Div("No validation steps provided.", style={"color": "#888"}),
                ],
                style=S_BOX,
            ),
            html.H4("Generated Amino Acid Sequence"),
            html.Pre(result.get("sequence", ""), style={**S_BOX, **S_MONO}),
            html.Div(
                [
                    html.Span(f"template: {result.get('pdb_id', '?')}"),
                    html.Span(f"pocket residues: {', '.join(str(p) for p in pocket) or 'none'}"),
                    html.A("Download FASTA", href="/design.fasta", download="design.fasta"),
                ],
                style={"display": "flex", "gap": "16px", "marginTop": "6px", "fontSize": "13px"},
            ),
        ]
    )


def render_banner(state: Dict[str, Any], notice: Optional[str]) -> html.Div:
    children = []
    if notice:
        children.append(html.Div(notice, style=S_ERR))
    if state.get("error"):
        children.append(html.Div(state["error"], style=S_ERR))
    if state.get("warning"):
        children.append(html.Div(state["warning"], style=S_WARN))
    return html.Div(children)


def control_styles(state: Dict[str, Any], structure: Optional[str]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Evolve box once a design exists; pocket toggle only with a structure and pocket residues."""
    result = state.get("result") or {}
    evolve_style = {"marginTop": "16px"} if state.get("can_evolve") else S_HIDDEN
    has_pocket = bool(structure) and bool(result.get("binding_pocket_residues"))
    highlight_style = {"marginTop": "6px"} if has_pocket else S_HIDDEN
    return evolve_style, highlight_style


def _failure_notice(r: requests.Response) -> Optional[str]:
    # Pipeline failures are already recorded in /state; only surface the rest.
    if r.ok or r.status_code in (409, 502):
        return None
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    return f"failed (HTTP {r.status_code}): {detail}"


def create_dash_server(*, ui_defaults: AppConfig.UiDefaults, viewer: Optional[ViewerAdapter] = None):
    app = Dash(__name__)
    app.title = "protevolve"
    viewer = viewer or ViewerAdapter()

    app.layout = html.Div(
        [
            html.H2("Evolutionary Protein Designer"),
            html.Div("Design, analyze, and evolve novel proteins with AI.", style={"color": "#666"}),
            html.Div(
                [
                    html.Div(
                        [
                            html.H4("1. Describe Initial Desired Function"),
                            dcc.Textarea(id="description", value=ui_defaults.description, style=S_TEXTAREA),
                            html.Button("Run Initial Design", id="go"),
                            html.Div(
                                [
                                    html.H4("2. Evolve This Design"),
                                    dcc.Textarea(id="feedback", value=ui_defaults.feedback, style=S_TEXTAREA),
                                    html.Button("Evolve Protein", id="evolve"),
                                ],
                                id="evolve_box",
                                style=S_HIDDEN,
                            ),
                            html.Div(id="runflag", style={"margin": "10px 0"}),
                            html.Div(id="banner"),
                            dcc.Loading(html.Div(id="out"), type="default"),
                        ],
                        style=S_COL,
                    ),
                    html.Div(
                        [
                            html.H4("Predicted 3D Structure"),
                            html.Iframe(id="viewer", style={"width": "100%", "height": f"{VIEWER_HEIGHT + 20}px", "border": "none"}),
                            html.Div(
                                dcc.Checklist(
                                    id="highlight",
                                    options=[{"label": " Highlight Binding Pocket", "value": "on"}],
                                    value=[],
                                ),
                                id="highlight_box",
                                style=S_HIDDEN,
                            ),
                        ],
                        style=S_COL,
                    ),
                ],
                style=S_COLS,
            ),
        ],
        style=S_BODY,
    )

    @app.callback(
        Output("banner", "children"),
        Output("out", "children"),
        Output("viewer", "srcDoc"),
        Output("evolve_box", "style"),
        Output("highlight_box", "style"),
        Input("go", "n_clicks"),
        Input("evolve", "n_clicks"),
        Input("highlight", "value"),
        State("description", "value"),
        State("feedback", "value"),
        running=[
            (Output("go", "disabled"), True, False),
            (Output("evolve", "disabled"), True, False),
            (Output("runflag", "children"), "designing…", ""),
        ],
    )
    def on_action(_go, _evolve, highlight, description, feedback):
        base = flask_request.host_url.rstrip("/")
        notice = None

        try:
            r = None
            if ctx.triggered_id == "go":
                r = requests.post(f"{base}/generate", json={"description": description or ""}, timeout=600)
            elif ctx.triggered_id == "evolve":
                r = requests.post(f"{base}/evolve", json={"feedback": feedback or ""}, timeout=600)
            if r is not None:
                notice = _failure_notice(r)

            state = requests.get(f"{base}/state", timeout=30).json()
            structure = None
            if state.get("has_structure"):
                s = requests.get(f"{base}/structure", timeout=30)
                structure = s.text if s.ok else None
        except requests.RequestException as e:
            return render_banner({}, f"request failed: {e}"), "", viewer.render_html(None), S_HIDDEN, S_HIDDEN

        result = state.get("result") or {}
        srcdoc = viewer.render_html(
            structure,
            result.get("binding_pocket_residues") or [],
            highlight="on" in (highlight or []),
        )
        evolve_style, highlight_style = control_styles(state, structure)
        return render_banner(state, notice), render_results(state), srcdoc, evolve_style, highlight_style

    return app, app.server
