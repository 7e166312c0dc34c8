# config_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any
import re

try:
    import yaml  # PyYAML
except ImportError as e:
    raise SystemExit(
        "Missing dependency: PyYAML\n"
        "Install with: python -m pip install pyyaml"
    ) from e


class PreviewConfig:
    """
    Immutable-ish container for preview + editor configuration.
    """

    def __init__(
        self,
        *,
        display_environments: frozenset[str],
        caption_prefix: str,
        label_template: str,
        hline_marker: str,
        debounce_ms: int,
        followup_delay_ms: int,
        indent_unit: str,
        math_macros: str,
        tabular_re: re.Pattern,
        begin_env_re: re.Pattern,
    ):
        self.display_environments = display_environments
        self.caption_prefix = caption_prefix
        self.label_template = label_template
        self.hline_marker = hline_marker
        self.debounce_ms = debounce_ms
        self.followup_delay_ms = followup_delay_ms
        self.indent_unit = indent_unit
        self.math_macros = math_macros
        self.tabular_re = tabular_re
        self.begin_env_re = begin_env_re


# ---------------- Defaults ---------------------------------------------------

DEFAULT_CONFIG = PreviewConfig(
    display_environments=frozenset(
        {"align", "align*", "equation", "pmatrix", "bmatrix", "Vmatrix", "vmatrix", "cases"}
    ),
    caption_prefix="Table: ",
    label_template="(Label: {label})",
    hline_marker=r"\hline",
    debounce_ms=300,
    followup_delay_ms=50,
    indent_unit="  ",
    math_macros="",
    # group 1: column format (single line), group 2: body (greedy up to the last end marker)
    tabular_re=re.compile(r"\\begin\{tabular\}\{([^\n]*?)\}(.*)\\end\{tabular\}", re.DOTALL),
    begin_env_re=re.compile(r"\\begin\{([a-zA-Z*]+)\}\s*$"),
)

# ---------------- Loader -----------------------------------------------------


def _as_str_set(value: Any, name: str) -> frozenset[str]:
    if value is None:
        return frozenset()
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list of strings")
    return frozenset(str(v) for v in value)


def _as_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    return value


def _as_non_negative_int(value: Any, name: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer")
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def load_config(path: Path) -> PreviewConfig:
    """
    Load YAML config and return a PreviewConfig instance.

    Missing keys fall back to DEFAULT_CONFIG one by one.
    """
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise TypeError("Config root must be a mapping")

    regex = raw.get("regex", {}) or {}
    if not isinstance(regex, dict):
        raise TypeError("regex must be a mapping")

    return PreviewConfig(
        display_environments=_as_str_set(
            raw.get("display_environments", sorted(DEFAULT_CONFIG.display_environments)),
            "display_environments",
        ),
        caption_prefix=_as_str(
            raw.get("caption_prefix", DEFAULT_CONFIG.caption_prefix), "caption_prefix"
        ),
        label_template=_as_str(
            raw.get("label_template", DEFAULT_CONFIG.label_template), "label_template"
        ),
        hline_marker=_as_str(
            raw.get("hline_marker", DEFAULT_CONFIG.hline_marker), "hline_marker"
        ),
        debounce_ms=_as_non_negative_int(
            raw.get("debounce_ms", DEFAULT_CONFIG.debounce_ms), "debounce_ms"
        ),
        followup_delay_ms=_as_non_negative_int(
            raw.get("followup_delay_ms", DEFAULT_CONFIG.followup_delay_ms),
            "followup_delay_ms",
        ),
        indent_unit=_as_str(
            raw.get("indent_unit", DEFAULT_CONFIG.indent_unit), "indent_unit"
        ),
        math_macros=_as_str(
            raw.get("math_macros", DEFAULT_CONFIG.math_macros) or "", "math_macros"
        ),
        tabular_re=re.compile(
            regex.get("tabular_re", DEFAULT_CONFIG.tabular_re.pattern),
            re.DOTALL,
        ),
        begin_env_re=re.compile(
            regex.get("begin_env_re", DEFAULT_CONFIG.begin_env_re.pattern)
        ),
    )


def load_config_or_default(path: Path) -> PreviewConfig:
    """Load `path` if it exists, otherwise return DEFAULT_CONFIG."""
    if not path.is_file():
        return DEFAULT_CONFIG
    return load_config(path)
