#!/usr/bin/env python3
"""
tex_completion.py

Cursor-context autocompletion for LaTeX source.

Given the current line and the cursor column, an ordered chain of context
matchers is tried against the line up to the cursor:

  1. styling option   \\fill[red, dash|    \\draw[densely d|
  2. class option     \\documentclass[12pt, a|]{article}
  3. package option   \\usepackage[margin=1in, l|]{geometry}
  4. class name       \\documentclass{ar|
  5. package name     \\usepackage{hyp|
  6. command name     \\docum|

The first matcher whose predicate fires decides the context; later ones are
not consulted, even when the winner has no candidates.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Callable, Optional
import logging
import re

from completion_catalog import CompletionCatalog, DEFAULT_CATALOG
from suggestion_formatter import DISPLAY_WIDTHS, format_display

logger = logging.getLogger(__name__)


class ContextKind(str, Enum):
    STYLING_OPTION = "styling_option"
    CLASS_OPTION = "class_option"
    PACKAGE_OPTION = "package_option"
    CLASS_NAME = "class_name"
    PACKAGE_NAME = "package_name"
    COMMAND_NAME = "command_name"


@dataclass(frozen=True)
class Candidate:
    insert_text: str
    display_text: str
    opens_sub_menu: bool = False
    # cursor position inside insert_text after insertion (None: after the text)
    cursor_offset: Optional[int] = None


@dataclass(frozen=True)
class CompletionContext:
    kind: ContextKind
    used_keys: frozenset[str]
    prefix: str
    from_offset: int
    to_offset: int
    # set when offering the sub-vocabulary of a base option ("densely ", "pattern=")
    base_option: Optional[str] = None


@dataclass(frozen=True)
class CompletionResult:
    context: CompletionContext
    candidates: list[Candidate] = field(default_factory=list)

    @property
    def from_offset(self) -> int:
        return self.context.from_offset

    @property
    def to_offset(self) -> int:
        return self.context.to_offset


@dataclass(frozen=True)
class CompletionRequest:
    line: str
    cursor: int
    document: str
    catalog: CompletionCatalog
    line_start: int = 0

    @property
    def line_to_cursor(self) -> str:
        return self.line[: self.cursor]

    def offset(self, column: int) -> int:
        return self.line_start + column


# ---------------- Predicates --------------------------------------------------

_CLASS_OPTION_RE = re.compile(r"\\documentclass\[([^\]]*)$")
_PACKAGE_OPTION_RE = re.compile(r"\\usepackage\[([^\]]*)$")
_CLASS_NAME_RE = re.compile(r"\\documentclass(?:\[[^\]]*\])?\{([\w-]*)$", re.ASCII)
_PACKAGE_NAME_RE = re.compile(r"\\usepackage(?:\[[^\]]*\])?\{([\w-]*)$", re.ASCII)
_COMMAND_RE = re.compile(r"\\(\w*)$", re.ASCII)

# first {name} anywhere on the line
_NAME_ON_LINE_RE = re.compile(r"\{([\w-]+)\}", re.ASCII)
_USED_PACKAGES_RE = re.compile(r"\\usepackage(?:\[[^\]]*\])?\{([^}]+)\}")


@lru_cache(maxsize=None)
def _styling_re(commands: frozenset[str]) -> re.Pattern:
    names = "|".join(re.escape(c) for c in sorted(commands))
    return re.compile(r"\\(?:" + names + r")\[([^\]]*)$")


def _styling_predicate(request: CompletionRequest) -> Optional[re.Match]:
    return _styling_re(request.catalog.styling_commands).search(request.line_to_cursor)


def _re_predicate(pattern: re.Pattern) -> Callable[[CompletionRequest], Optional[re.Match]]:
    def predicate(request: CompletionRequest) -> Optional[re.Match]:
        return pattern.search(request.line_to_cursor)
    return predicate


# ---------------- Bracket-group helpers ---------------------------------------


def split_bracket_group(typed: str) -> tuple[list[str], str]:
    """
    Split the text typed inside [...] into (completed tokens, active token).

    The active token is the last comma-separated piece with leading
    whitespace removed.
    """
    parts = typed.split(",")
    active = parts.pop()
    return parts, active.lstrip()


def identity_key(option: str, *, split_on_whitespace: bool = True) -> str:
    """Part of an option before '=' (and, for styling options, before whitespace)."""
    token = option.strip()
    if split_on_whitespace:
        return re.split(r"=|\s", token, maxsplit=1)[0]
    return token.split("=", 1)[0]


def decompose_sub_option(active: str, catalog: CompletionCatalog) -> Optional[tuple[str, str]]:
    """
    Split an active token into (base, sub-token) when base owns a sub-vocabulary.

    'densely d' -> ('densely', 'd'), 'pattern=do' -> ('pattern=', 'do').
    Bases without '=' need at least one whitespace before the sub-token.
    """
    for base in catalog.sub_option_bases():
        if base.endswith("="):
            if active.startswith(base):
                return base, active[len(base):].lstrip()
            continue
        m = re.match(re.escape(base) + r"\s+(.*)$", active, re.DOTALL)
        if m:
            return base, m.group(1)
    return None


def _option_candidates(
    options: dict[str, str],
    prefix: str,
    used: frozenset[str],
    width: int,
) -> list[Candidate]:
    return [
        Candidate(insert_text=name, display_text=format_display(name, desc, width))
        for name, desc in options.items()
        if name.startswith(prefix) and identity_key(name, split_on_whitespace=False) not in used
    ]


# ---------------- Resolvers ---------------------------------------------------


def _resolve_styling_option(m: re.Match, request: CompletionRequest) -> CompletionResult:
    catalog = request.catalog
    completed, active = split_bracket_group(m.group(1))
    used = frozenset(identity_key(t) for t in completed)
    width = DISPLAY_WIDTHS[ContextKind.STYLING_OPTION.value]
    to_offset = request.offset(request.cursor)

    decomposed = decompose_sub_option(active, catalog)
    if decomposed is not None:
        base, sub_token = decomposed
        option = catalog.styling_options[base]
        candidates = []
        for name, desc in option.sub_options.items():
            if not name.startswith(sub_token):
                continue
            full = base + name if base.endswith("=") else f"{base} {name}"
            candidates.append(Candidate(insert_text=name, display_text=format_display(full, desc, width)))
        context = CompletionContext(
            kind=ContextKind.STYLING_OPTION,
            used_keys=used,
            prefix=sub_token,
            from_offset=to_offset - len(sub_token),
            to_offset=to_offset,
            base_option=base,
        )
        return CompletionResult(context, candidates)

    candidates = []
    for name, option in catalog.styling_options.items():
        if not name.startswith(active) or identity_key(name) in used:
            continue
        display = format_display(name, option.description, width)
        if option.has_sub_options:
            insert = name if name.endswith("=") else name + " "
            candidates.append(Candidate(insert_text=insert, display_text=display, opens_sub_menu=True))
        else:
            candidates.append(Candidate(insert_text=name, display_text=display))

    context = CompletionContext(
        kind=ContextKind.STYLING_OPTION,
        used_keys=used,
        prefix=active,
        from_offset=to_offset - len(active),
        to_offset=to_offset,
    )
    return CompletionResult(context, candidates)


def _bracket_context(kind: ContextKind, m: re.Match, request: CompletionRequest) -> CompletionContext:
    completed, active = split_bracket_group(m.group(1))
    used = frozenset(identity_key(t, split_on_whitespace=False) for t in completed)
    to_offset = request.offset(request.cursor)
    return CompletionContext(
        kind=kind,
        used_keys=used,
        prefix=active,
        from_offset=to_offset - len(active),
        to_offset=to_offset,
    )


def _name_on_line(line: str) -> Optional[str]:
    m = _NAME_ON_LINE_RE.search(line)
    return m.group(1) if m else None


def _resolve_class_option(m: re.Match, request: CompletionRequest) -> CompletionResult:
    context = _bracket_context(ContextKind.CLASS_OPTION, m, request)
    options = request.catalog.class_options(_name_on_line(request.line))
    width = DISPLAY_WIDTHS[ContextKind.CLASS_OPTION.value]
    return CompletionResult(context, _option_candidates(options, context.prefix, context.used_keys, width))


def _resolve_package_option(m: re.Match, request: CompletionRequest) -> CompletionResult:
    context = _bracket_context(ContextKind.PACKAGE_OPTION, m, request)
    package = request.catalog.packages.get(_name_on_line(request.line) or "")
    if package is None:
        return CompletionResult(context, [])
    width = DISPLAY_WIDTHS[ContextKind.PACKAGE_OPTION.value]
    return CompletionResult(
        context, _option_candidates(dict(package.options), context.prefix, context.used_keys, width)
    )


def _name_context(kind: ContextKind, prefix: str, used: frozenset[str], request: CompletionRequest) -> CompletionContext:
    to_offset = request.offset(request.cursor)
    return CompletionContext(
        kind=kind,
        used_keys=used,
        prefix=prefix,
        from_offset=to_offset - len(prefix),
        to_offset=to_offset,
    )


def _resolve_class_name(m: re.Match, request: CompletionRequest) -> CompletionResult:
    catalog = request.catalog
    prefix = m.group(1)
    width = DISPLAY_WIDTHS[ContextKind.CLASS_NAME.value]
    candidates = [
        Candidate(
            insert_text=name,
            display_text=format_display(name, catalog.document_classes[name].description, width),
        )
        for name in catalog.class_names
        if name.startswith(prefix)
    ]
    return CompletionResult(_name_context(ContextKind.CLASS_NAME, prefix, frozenset(), request), candidates)


def used_packages(document: str) -> frozenset[str]:
    """Every package named by a \\usepackage{...} anywhere in the document."""
    used: set[str] = set()
    for m in _USED_PACKAGES_RE.finditer(document):
        for pkg in m.group(1).split(","):
            if pkg.strip():
                used.add(pkg.strip())
    return frozenset(used)


def _resolve_package_name(m: re.Match, request: CompletionRequest) -> CompletionResult:
    prefix = m.group(1)
    used = used_packages(request.document)
    candidates = [
        Candidate(insert_text=name, display_text=name)
        for name in request.catalog.package_names
        if name.startswith(prefix) and name not in used
    ]
    return CompletionResult(_name_context(ContextKind.PACKAGE_NAME, prefix, used, request), candidates)


def _resolve_command_name(m: re.Match, request: CompletionRequest) -> CompletionResult:
    typed = m.group(1)
    to_offset = request.offset(request.cursor)
    context = CompletionContext(
        kind=ContextKind.COMMAND_NAME,
        used_keys=frozenset(),
        prefix=typed,
        # replace from the backslash
        from_offset=to_offset - len(typed) - 1,
        to_offset=to_offset,
    )
    if not typed:
        return CompletionResult(context, [])
    candidates = [
        Candidate(
            insert_text=skeleton.insert_text,
            display_text=skeleton.display_text,
            cursor_offset=skeleton.cursor_offset,
        )
        for skeleton in request.catalog.commands
        if skeleton.command.startswith(typed)
    ]
    return CompletionResult(context, candidates)


@dataclass(frozen=True)
class ContextMatcher:
    kind: ContextKind
    predicate: Callable[[CompletionRequest], Optional[re.Match]]
    resolver: Callable[[re.Match, CompletionRequest], CompletionResult]


# Order matters: the first predicate that fires wins.
CONTEXT_MATCHERS: tuple[ContextMatcher, ...] = (
    ContextMatcher(ContextKind.STYLING_OPTION, _styling_predicate, _resolve_styling_option),
    ContextMatcher(ContextKind.CLASS_OPTION, _re_predicate(_CLASS_OPTION_RE), _resolve_class_option),
    ContextMatcher(ContextKind.PACKAGE_OPTION, _re_predicate(_PACKAGE_OPTION_RE), _resolve_package_option),
    ContextMatcher(ContextKind.CLASS_NAME, _re_predicate(_CLASS_NAME_RE), _resolve_class_name),
    ContextMatcher(ContextKind.PACKAGE_NAME, _re_predicate(_PACKAGE_NAME_RE), _resolve_package_name),
    ContextMatcher(ContextKind.COMMAND_NAME, _re_predicate(_COMMAND_RE), _resolve_command_name),
)

# Contexts where moving the cursor (not only typing) opens the menu
CURSOR_TRIGGER_KINDS = frozenset({
    ContextKind.STYLING_OPTION,
    ContextKind.CLASS_OPTION,
    ContextKind.PACKAGE_OPTION,
    ContextKind.CLASS_NAME,
    ContextKind.PACKAGE_NAME,
})

# Typed characters that close a group and never open the menu
_NON_TRIGGER_INPUTS = frozenset({"}", "]", ","})


def resolve_completion(
    line: str,
    cursor: int,
    *,
    document: str = "",
    catalog: CompletionCatalog = DEFAULT_CATALOG,
    line_start: int = 0,
) -> Optional[CompletionResult]:
    """
    Resolve the completion context at `cursor` (a column in `line`).

    document: full editor text, used for document-wide package dedup.
    line_start: absolute offset of the line, added to from/to offsets.

    Returns None when no context matches.
    """
    request = CompletionRequest(
        line=line,
        cursor=max(0, min(cursor, len(line))),
        document=document,
        catalog=catalog,
        line_start=line_start,
    )
    for matcher in CONTEXT_MATCHERS:
        m = matcher.predicate(request)
        if m is None:
            continue
        result = matcher.resolver(m, request)
        logger.debug(
            "completion context %s prefix=%r -> %d candidates",
            matcher.kind.value, result.context.prefix, len(result.candidates),
        )
        return result
    return None


def detect_context_kind(line_to_cursor: str, catalog: CompletionCatalog = DEFAULT_CATALOG) -> Optional[ContextKind]:
    """Kind of the first matcher whose predicate fires, without resolving candidates."""
    request = CompletionRequest(
        line=line_to_cursor, cursor=len(line_to_cursor), document="", catalog=catalog
    )
    for matcher in CONTEXT_MATCHERS:
        if matcher.predicate(request) is not None:
            return matcher.kind
    return None


def should_trigger_on_input(inserted: str, *, is_deletion: bool = False) -> bool:
    """Typing opens the menu, except deletions and the closers '}', ']' and ','."""
    if is_deletion:
        return False
    return inserted[:1] not in _NON_TRIGGER_INPUTS


def should_trigger_on_cursor(line_to_cursor: str, catalog: CompletionCatalog = DEFAULT_CATALOG) -> bool:
    return detect_context_kind(line_to_cursor, catalog) in CURSOR_TRIGGER_KINDS
