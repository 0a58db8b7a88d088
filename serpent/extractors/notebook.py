"""Notebook cell extractors.

Classic Notebook exposes its cell model as a page global, so the classic
extractor reads structured outputs. JupyterLab and Notebook 7 only give
us the rendered DOM, so the lab extractor reads what is on screen.
"""

import json
import re
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

from .base import ContentBundle
from .surface import PageSurface

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def _joined(value: Any) -> str:
    """ipynb stores multiline strings either whole or as a list of lines."""
    if isinstance(value, list):
        return "".join(str(v) for v in value)
    if value is None:
        return ""
    return str(value)


def table_to_text(table: Tag) -> str:
    """Flatten an HTML table (a rendered DataFrame) to tab-separated rows."""
    rows = []
    for tr in table.select("tr"):
        cells = [cell.get_text().strip() for cell in tr.find_all(["th", "td"])]
        rows.append("\t".join(cells))
    return "\n".join(rows)


# ============================================================
# CLASSIC NOTEBOOK (cell model)
# ============================================================

def bundle_from_cell(cell: dict) -> ContentBundle:
    """Build a bundle from one ``.ipynb`` cell dict."""
    code = _joined(cell.get("source"))
    outputs: list[str] = []
    images: list[str] = []

    for out in cell.get("outputs") or []:
        output_type = out.get("output_type")

        if output_type == "stream":
            outputs.append(_joined(out.get("text")))

        elif output_type in ("execute_result", "display_data"):
            data = out.get("data") or {}
            if data.get("image/png"):
                images.append(_joined(data["image/png"]).replace("\n", ""))
            elif data.get("text/html"):
                outputs.append(_joined(data["text/html"]))
            elif data.get("text/plain"):
                outputs.append(_joined(data["text/plain"]))
            elif data.get("application/json") is not None:
                outputs.append(json.dumps(data["application/json"], indent=2))

        elif output_type == "error":
            traceback = strip_ansi("\n".join(out.get("traceback") or []))
            outputs.append(f"{out.get('ename', '')}: {out.get('evalue', '')}\n{traceback}")

    return ContentBundle(code=code, outputs=outputs, images=images)


class ClassicNotebookExtractor:
    name = "jupyter-classic"

    def extract(self, surface: PageSurface) -> Optional[ContentBundle]:
        if surface.notebook is None:
            return None
        cell = surface.notebook.selected_cell()
        if cell is None:
            return None
        return bundle_from_cell(cell)


# ============================================================
# JUPYTERLAB / NOTEBOOK 7 (rendered DOM)
# ============================================================

def _editor_text(cell: Tag) -> str:
    editor = cell.select_one(".jp-InputArea .jp-Editor .cm-content, .jp-InputArea .CodeMirror")
    if editor is None:
        return ""
    # CodeMirror 6 renders one .cm-line per line, CodeMirror 5 one pre per line
    lines = editor.select(".cm-line") or editor.select(".CodeMirror-line")
    if lines:
        return "\n".join(line.get_text() for line in lines)
    return editor.get_text()


def _active_cell(soup: BeautifulSoup) -> Optional[Tag]:
    notebook = soup.select_one(".jp-Notebook.jp-mod-active") or soup.select_one(".jp-Notebook")
    scope = notebook or soup
    return scope.select_one(".jp-Cell.jp-mod-active") or scope.select_one(".jp-Cell.jp-mod-selected")


class JupyterLabExtractor:
    name = "jupyter-lab"

    def extract(self, surface: PageSurface) -> Optional[ContentBundle]:
        cell = _active_cell(surface.soup())
        if cell is None:
            return None

        outputs: list[str] = []
        images: list[str] = []
        area = cell.select_one(".jp-OutputArea")

        if area is not None:
            for img in area.select("img"):
                src = img.get("src") or ""
                if src.startswith("data:image/") and "," in src:
                    payload = src.split(",", 1)[1]
                    if payload:
                        images.append(payload)

            for el in area.select(".jp-OutputArea-output pre, .jp-RenderedText pre"):
                text = strip_ansi(el.get_text())
                if text.strip() and text not in outputs:
                    outputs.append(text)

            for el in area.select(".jp-RenderedHTMLCommon:not(.jp-RenderedText)"):
                table = el.select_one("table")
                if table is not None:
                    outputs.append(table_to_text(table))
                else:
                    text = el.get_text()
                    if text.strip():
                        outputs.append(text)

        return ContentBundle(code=_editor_text(cell), outputs=outputs, images=images)
