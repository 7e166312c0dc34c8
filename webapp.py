#!/usr/bin/env python3
from __future__ import annotations
from pathlib import Path
from typing import Any
import logging

from flask import Flask, abort, jsonify, render_template_string, request, send_from_directory

from config_loader import load_config_or_default
from editor_actions import (
    SAMPLE_BODY,
    TOOLBAR_GROUPS,
    add_package,
    find_toolbar_item,
    generate_initial_preamble,
    generate_table_latex,
    handle_enter,
    insert_environment,
    toolbar_action,
)
from editor_session import TextDocument, resolve_at_offset
from math_renderer import LatexSvgTypesetter
from preview_nodes import resolve_click
from suggestion_formatter import apply_candidate, to_menu_payload
from tex_completion import should_trigger_on_cursor, should_trigger_on_input
from tex_to_html import render_error_banner, render_preview

logger = logging.getLogger(__name__)

BASE_DIR = Path.cwd()
CONFIG_PATH = BASE_DIR / "config.yml"
MATH_CACHE = BASE_DIR / ".math-cache"

app = Flask(__name__, static_folder="static", static_url_path="/static")
cfg = load_config_or_default(CONFIG_PATH)
typesetter = LatexSvgTypesetter(MATH_CACHE, preamble_macros=cfg.math_macros)


EDITOR_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ page_title }}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="stylesheet" href="/static/preview.css">
  <script src="/static/editor.js" defer></script>
</head>
<body data-debounce-ms="{{ debounce_ms }}" data-followup-ms="{{ followup_ms }}">
  <div class="layout">
    <section class="editor-pane">
      <div class="toolbar">
        <button id="compile-btn" type="button">Compile</button>
        <label><input id="auto-compile" type="checkbox" checked> Auto compile</label>
        <button id="table-btn" type="button">Table</button>
      </div>
      <div class="toolbar toolbar-items">
        {% for group, items in toolbar_groups %}
        <select class="toolbar-group" data-group="{{ group }}" aria-label="{{ group }}">
          <option value="" selected>{{ group }}</option>
          {% for item in items %}
          <option value="{{ loop.index0 }}" data-kind="{{ item.kind }}" data-code="{{ item.code }}">{{ item.display }}</option>
          {% endfor %}
        </select>
        {% endfor %}
      </div>
      <label class="pane-label" for="preamble">Preamble</label>
      <textarea id="preamble" spellcheck="false" rows="10">{{ preamble }}</textarea>
      <label class="pane-label" for="content">Document</label>
      <textarea id="content" spellcheck="false">{{ content }}</textarea>
      <ul id="completion-menu" hidden></ul>
    </section>

    <main class="preview-pane">
      <div id="preview-banner">{{ banner|safe }}</div>
      <div id="preview">{{ preview|safe }}</div>
    </main>
  </div>
</body>
</html>
"""


def _json_payload() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400)
    return payload


def _str_field(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        abort(400)
    return value


def _int_field(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        abort(400)
    return value


def _empty_menu(offset: int) -> dict[str, Any]:
    return {"list": [], "from": offset, "to": offset}


@app.route("/")
def index():
    result = render_preview(SAMPLE_BODY, typesetter, cfg)
    return render_template_string(
        EDITOR_TEMPLATE,
        page_title="TeX Preview",
        preamble=generate_initial_preamble(),
        content=SAMPLE_BODY,
        preview=result.html,
        banner=render_error_banner(result.error_banner),
        debounce_ms=cfg.debounce_ms,
        followup_ms=cfg.followup_delay_ms,
        toolbar_groups=TOOLBAR_GROUPS,
    )


@app.route("/api/preview", methods=["POST"])
def api_preview():
    content = _str_field(_json_payload(), "content")
    result = render_preview(content, typesetter, cfg)
    return jsonify(html=result.html, error=result.error_banner)


@app.route("/api/complete", methods=["POST"])
def api_complete():
    """
    Completion menu at an absolute offset.

    trigger: "input" (typed text in `inserted`, `deletion` flag),
    "cursor" (cursor move) or "manual".
    """
    payload = _json_payload()
    text = _str_field(payload, "text")
    offset = _int_field(payload, "offset")
    trigger = payload.get("trigger", "manual")

    if trigger == "input":
        inserted = payload.get("inserted", "")
        if not isinstance(inserted, str):
            abort(400)
        if not should_trigger_on_input(inserted, is_deletion=bool(payload.get("deletion"))):
            return jsonify(_empty_menu(offset))
    elif trigger == "cursor":
        doc = TextDocument(text)
        pos = doc.pos_from_index(offset)
        if not should_trigger_on_cursor(doc.get_line(pos["line"])[: pos["ch"]]):
            return jsonify(_empty_menu(offset))
    elif trigger != "manual":
        abort(400)

    result = resolve_at_offset(text, offset)
    if result is None:
        return jsonify(_empty_menu(offset))
    return jsonify(to_menu_payload(result))


@app.route("/api/apply", methods=["POST"])
def api_apply():
    payload = _json_payload()
    text = _str_field(payload, "text")
    offset = _int_field(payload, "offset")
    index = _int_field(payload, "index")

    result = resolve_at_offset(text, offset)
    if result is None or not 0 <= index < len(result.candidates):
        abort(400)

    applied = apply_candidate(text, result, result.candidates[index])
    return jsonify(text=applied.text, cursor=applied.cursor, reopen=applied.reopen)


@app.route("/api/enter", methods=["POST"])
def api_enter():
    payload = _json_payload()
    result = handle_enter(_str_field(payload, "text"), _int_field(payload, "offset"), cfg)
    if result is None:
        return jsonify({"pass": True})
    return jsonify(text=result.text, cursor=result.cursor)


@app.route("/api/environment", methods=["POST"])
def api_environment():
    payload = _json_payload()
    result = insert_environment(
        _str_field(payload, "text"), _int_field(payload, "offset"), _str_field(payload, "env")
    )
    return jsonify(text=result.text, cursor=result.cursor)


@app.route("/api/package", methods=["POST"])
def api_package():
    payload = _json_payload()
    preamble = add_package(_str_field(payload, "preamble"), _str_field(payload, "package"))
    return jsonify(preamble=preamble)


@app.route("/api/toolbar", methods=["POST"])
def api_toolbar():
    """
    Apply toolbar item `index` of `group` to the selection.

    `packages` lists what the browser should add to the preamble through
    /api/package; `reopen` asks for the completion menu after the
    follow-up delay.
    """
    payload = _json_payload()
    text = _str_field(payload, "text")
    try:
        item = find_toolbar_item(_str_field(payload, "group"), _int_field(payload, "index"))
    except (KeyError, IndexError):
        abort(400)

    result = toolbar_action(
        text, _int_field(payload, "selStart"), _int_field(payload, "selEnd"), item
    )
    return jsonify(
        text=result.text,
        selStart=result.sel_start,
        selEnd=result.sel_end,
        reopen=result.reopen,
        packages=list(result.packages),
    )


@app.route("/api/sync", methods=["POST"])
def api_sync():
    """Clicked preview node -> editor selection. Out-of-range offsets are a no-op."""
    payload = _json_payload()
    content = _str_field(payload, "content")
    span = resolve_click(_int_field(payload, "start"), _int_field(payload, "end"), len(content))
    if span is None:
        return jsonify({})
    doc = TextDocument(content)
    return jsonify({"from": doc.pos_from_index(span.start), "to": doc.pos_from_index(span.end)})


@app.route("/api/table", methods=["POST"])
def api_table():
    payload = _json_payload()
    return jsonify(latex=generate_table_latex(_int_field(payload, "rows"), _int_field(payload, "cols")))


@app.route("/math/<digest>.svg")
def math_image(digest: str):
    # Basic safety: only hex digests allowed
    if not all(c in "0123456789abcdef" for c in digest) or len(digest) != 40:
        abort(404)

    svg_path = MATH_CACHE / f"{digest}.svg"
    if not svg_path.is_file():
        abort(404)

    return send_from_directory(MATH_CACHE, svg_path.name)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    # Run in dev mode
    app.run(debug=False)
