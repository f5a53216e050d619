"""3D structure rendering.

`ViewerAdapter` projects a structure payload plus optional binding-pocket
residues onto a scene engine. The engine (3Dmol.js through py3Dmol) is loaded
on demand; renders requested before it is ready are queued and flushed once.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

logger = logging.getLogger(__name__)

CARTOON_STYLE: Dict[str, Any] = {"cartoon": {"color": "spectrum"}}
POCKET_STICK_STYLE: Dict[str, Any] = {"stick": {"colorscheme": "yellowCarbon", "radius": 0.2}}
POCKET_SPHERE_STYLE: Dict[str, Any] = {"sphere": {"color": "yellow", "radius": 0.5, "alpha": 0.7}}
PLACEHOLDER_SPHERE: Dict[str, Any] = {
    "center": {"x": 0, "y": 0, "z": 0},
    "radius": 10.0,
    "color": "rgba(55, 65, 81, 0.5)",
}


class SceneEngine(Protocol):
    def clear(self) -> None: ...

    def add_model(self, text: str, fmt: str) -> None: ...

    def set_style(self, selection: Dict[str, Any], style: Dict[str, Any]) -> None: ...

    def add_style(self, selection: Dict[str, Any], style: Dict[str, Any]) -> None: ...

    def add_sphere(self, spec: Dict[str, Any]) -> None: ...

    def zoom_to(self) -> None: ...

    def render(self) -> None: ...

    def to_html(self) -> str: ...


class Py3DmolScene:
    """SceneEngine backed by py3Dmol.

    py3Dmol records every call as a JS command, so clearing the scene starts a
    fresh command stream instead of appending `clear()` to the old one.
    """

    def __init__(self, py3dmol_module: Any, *, width: int = 640, height: int = 480, background: str = "#111827"):
        self._py3dmol = py3dmol_module
        self.width = width
        self.height = height
        self.background = background
        self._view = self._new_view()

    def _new_view(self) -> Any:
        view = self._py3dmol.view(width=self.width, height=self.height)
        view.setBackgroundColor(self.background)
        return view

    def clear(self) -> None:
        self._view = self._new_view()

    def add_model(self, text: str, fmt: str) -> None:
        self._view.addModel(text, fmt)

    def set_style(self, selection: Dict[str, Any], style: Dict[str, Any]) -> None:
        self._view.setStyle(selection, style)

    def add_style(self, selection: Dict[str, Any], style: Dict[str, Any]) -> None:
        self._view.addStyle(selection, style)

    def add_sphere(self, spec: Dict[str, Any]) -> None:
        self._view.addSphere(spec)

    def zoom_to(self) -> None:
        self._view.zoomTo()

    def render(self) -> None:
        self._view.render()

    def to_html(self) -> str:
        return self._view._make_html()


def load_py3dmol_scene(width: int = 640, height: int = 480) -> Py3DmolScene:
    import py3Dmol

    return Py3DmolScene(py3Dmol, width=width, height=height)


@dataclass(frozen=True)
class RenderRequest:
    structure: Optional[str]
    residues: Tuple[int, ...] = ()
    highlight: bool = False
    fmt: str = "pdb"


class ViewerAdapter:
    """Readiness-gated renderer over a single, lazily created SceneEngine."""

    def __init__(self, loader: Callable[[], SceneEngine] = load_py3dmol_scene):
        self._loader = loader
        self._engine: Optional[SceneEngine] = None
        self._pending: List[RenderRequest] = []
        self._lock = threading.RLock()

    @property
    def ready(self) -> bool:
        return self._engine is not None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def load(self) -> SceneEngine:
        """Create the engine if needed and flush queued renders exactly once."""
        with self._lock:
            if self._engine is None:
                self._engine = self._loader()
                queued, self._pending = self._pending, []
                if queued:
                    logger.debug("flushing %d queued render(s)", len(queued))
                for req in queued:
                    self._draw(self._engine, req)
            return self._engine

    def render(
        self,
        structure: Optional[str],
        residues: Sequence[int] = (),
        *,
        highlight: bool = False,
        fmt: str = "pdb",
    ) -> bool:
        """Draw now if the engine is ready, else queue. Returns True if drawn."""
        req = RenderRequest(structure=structure or None, residues=tuple(residues), highlight=highlight, fmt=fmt)
        with self._lock:
            if self._engine is None:
                self._pending.append(req)
                return False
            self._draw(self._engine, req)
            return True

    def to_html(self) -> str:
        return self.load().to_html()

    def render_html(self, structure: Optional[str], residues: Sequence[int] = (), *, highlight: bool = False) -> str:
        """Render (loading the engine on first use) and return the scene HTML."""
        with self._lock:
            self.render(structure, residues, highlight=highlight)
            return self.to_html()

    @staticmethod
    def _draw(engine: SceneEngine, req: RenderRequest) -> None:
        # Full rebuild on every render, never an incremental patch.
        engine.clear()
        if req.structure:
            engine.add_model(req.structure, req.fmt)
            engine.set_style({}, CARTOON_STYLE)
            if req.highlight and req.residues:
                selection = {"resi": list(req.residues)}
                engine.add_style(selection, POCKET_STICK_STYLE)
                engine.add_style(selection, POCKET_SPHERE_STYLE)
        else:
            engine.add_sphere(PLACEHOLDER_SPHERE)
        engine.zoom_to()
        engine.render()
