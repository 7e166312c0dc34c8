"""
Display strings for completion candidates and post-insertion cursor placement.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tex_completion import Candidate, CompletionResult

# Column the description starts at, per context kind
DISPLAY_WIDTHS: dict[str, int] = {
    "styling_option": 30,
    "class_option": 22,
    "package_option": 25,
    "class_name": 12,
}


def format_display(option: str, description: str, width: int) -> str:
    """'option' padded to `width`, then the description."""
    if not description:
        return option
    return f"{option.ljust(width)} {description}"


@dataclass(frozen=True)
class AppliedCompletion:
    text: str
    cursor: int
    # True when the sub-option menu must open again at `cursor`
    reopen: bool


def apply_candidate(text: str, result: "CompletionResult", candidate: "Candidate") -> AppliedCompletion:
    """
    Replace [from, to) of `text` with the candidate and place the cursor.

    The cursor lands at from + candidate.cursor_offset, or right after the
    inserted text when the candidate does not say otherwise.
    """
    start, end = result.from_offset, result.to_offset
    new_text = text[:start] + candidate.insert_text + text[end:]
    offset = candidate.cursor_offset
    if offset is None:
        offset = len(candidate.insert_text)
    return AppliedCompletion(
        text=new_text,
        cursor=start + offset,
        reopen=candidate.opens_sub_menu,
    )


def to_menu_payload(result: "CompletionResult") -> dict[str, Any]:
    """JSON-ready menu for the browser: {kind, list, from, to}."""
    return {
        "kind": result.context.kind.value,
        "list": [
            {
                "text": c.insert_text,
                "displayText": c.display_text,
                "opensSubMenu": c.opens_sub_menu,
            }
            for c in result.candidates
        ],
        "from": result.from_offset,
        "to": result.to_offset,
    }
