"""
Read-only lookup tables for autocompletion.

Built once at import time; every table is a MappingProxyType or a tuple,
so nothing here can be mutated at runtime.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class StylingOption:
    name: str
    description: str
    sub_options: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def has_sub_options(self) -> bool:
        return bool(self.sub_options)


@dataclass(frozen=True)
class DocumentClass:
    name: str
    description: str
    options: Mapping[str, str]
    inherits: tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageInfo:
    name: str
    description: str
    options: Mapping[str, str]


@dataclass(frozen=True)
class CommandSkeleton:
    command: str       # name without backslash, matched by prefix
    insert_text: str
    display_text: str
    cursor_offset: int  # cursor position inside insert_text after insertion


@dataclass(frozen=True)
class CompletionCatalog:
    styling_commands: frozenset[str]
    styling_options: Mapping[str, StylingOption]
    common_class_options: Mapping[str, str]
    document_classes: Mapping[str, DocumentClass]
    class_names: tuple[str, ...]
    packages: Mapping[str, PackageInfo]
    package_names: tuple[str, ...]
    commands: tuple[CommandSkeleton, ...]

    def class_options(self, class_name: Optional[str]) -> dict[str, str]:
        """Common options plus the class's own (and inherited) options."""
        options = dict(self.common_class_options)
        doc_class = self.document_classes.get(class_name) if class_name else None
        if doc_class is None:
            return options
        options.update(doc_class.options)
        for parent in doc_class.inherits:
            parent_class = self.document_classes.get(parent)
            if parent_class is not None:
                options.update(parent_class.options)
        return options

    def sub_option_bases(self) -> tuple[str, ...]:
        return tuple(name for name, opt in self.styling_options.items() if opt.has_sub_options)


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


def _styling(name: str, description: str, sub_options: Optional[dict[str, str]] = None) -> StylingOption:
    return StylingOption(name, description, _frozen(sub_options or {}))


_LINE_PATTERN_SUBS = {
    "dashed": "A {mod} dashed line.",
    "dotted": "A {mod} dotted line.",
    "dash dot": "A {mod} dash-dot line.",
}

_STYLING_OPTIONS = [
    # Colors
    _styling("red", "Sets the color to red."),
    _styling("blue", "Sets the color to blue."),
    _styling("green", "Sets the color to green."),
    _styling("yellow", "Sets the color to yellow."),
    _styling("orange", "Sets the color to orange."),
    _styling("purple", "Sets the color to purple."),
    _styling("black", "Sets the color to black."),
    _styling("white", "Sets the color to white."),
    _styling("gray", "Sets the color to gray."),
    _styling("cyan", "Sets the color to cyan."),
    _styling("magenta", "Sets the color to magenta."),
    _styling("blue!50", "A 50% tint of blue."),
    _styling("green!70!black", "A 70% green, 30% black mix."),
    # Opacity
    _styling("opacity=", "Sets fill & stroke opacity (e.g., opacity=0.5)"),
    _styling("fill opacity=", "Sets fill opacity (e.g., fill opacity=0.4)"),
    _styling("draw opacity=", "Sets stroke opacity (e.g., draw opacity=0.7)"),
    # Line styles
    _styling("draw=", "Sets stroke color (e.g., draw=black)"),
    _styling("thick", "A thick line."),
    _styling("ultra thick", "An ultra thick line."),
    _styling("thin", "A thin line."),
    _styling("dashed", "A dashed line pattern."),
    _styling("dotted", "A dotted line pattern."),
    _styling("dash dot", "A dash-dot line pattern."),
    # Line style modifiers
    _styling(
        "densely",
        "Apply a dense pattern to a line style.",
        {k: v.format(mod="densely") for k, v in _LINE_PATTERN_SUBS.items()},
    ),
    _styling(
        "loosely",
        "Apply a loose pattern to a line style.",
        {k: v.format(mod="loosely") for k, v in _LINE_PATTERN_SUBS.items()},
    ),
    # Patterns
    _styling(
        "pattern=",
        "Fill with a pattern. Needs \\usetikzlibrary{patterns}.",
        {
            "north west lines": "Diagonal lines pattern.",
            "crosshatch": "Crosshatch pattern.",
            "checkerboard": "Checkerboard pattern.",
            "dots": "Dots pattern.",
        },
    ),
    _styling("pattern color=", "Sets pattern color (e.g., pattern color=blue)"),
    # Shading
    _styling(
        "shading=",
        "Sets shading style. Needs \\usetikzlibrary{shadings}.",
        {"axis": "Axial shading.", "radial": "Radial shading."},
    ),
    _styling("left color=", "Sets the left color for axial shading (e.g., left color=red)."),
    _styling("right color=", "Sets the right color for axial shading (e.g., right color=blue)."),
    _styling("top color=", "Sets the top color for axial shading (e.g., top color=yellow)."),
    _styling("bottom color=", "Sets the bottom color for axial shading (e.g., bottom color=green)."),
    _styling("middle color=", "Sets the middle color for shading (e.g., middle color=white)."),
]

_COMMON_CLASS_OPTIONS = {
    "10pt": "Sets base font size to 10pt.",
    "11pt": "Sets base font size to 11pt.",
    "12pt": "Sets base font size to 12pt.",
    "a4paper": "Use A4 paper size.",
    "letterpaper": "Use US Letter paper size.",
    "legalpaper": "Use US Legal paper size.",
    "twocolumn": "Typeset in two columns.",
    "landscape": "Use landscape orientation.",
    "oneside": "Format for one-sided printing.",
    "twoside": "Format for two-sided printing.",
    "fleqn": "Display equations flushed to the left.",
    "leqno": "Place equation numbers on the left.",
}

_CHAPTER_OPTIONS = {
    "openright": "Chapters start on a right-hand page.",
    "openany": "Chapters start on any next page.",
    "chapterprefix": 'Prefix chapter numbers with "Chapter".',
    "nochapterprefix": "No prefix for chapter numbers.",
}

_DOCUMENT_CLASSES = [
    DocumentClass("article", "For articles, short reports, documentation.", _frozen({})),
    DocumentClass("book", "For books with chapters.", _frozen(_CHAPTER_OPTIONS)),
    DocumentClass("report", "For longer reports with chapters.", _frozen(_CHAPTER_OPTIONS)),
    DocumentClass(
        "standalone",
        "Creates cropped PDFs for graphics.",
        _frozen({
            "tikz": "Load the TikZ package for diagrams.",
            "preview": "Generate a preview image.",
            "border=5pt": "Add a 5pt border around content.",
            "crop": "Crop output to content size.",
        }),
    ),
    DocumentClass("letter", "For writing letters.", _frozen({})),
    DocumentClass(
        "beamer",
        "For creating presentations (slides).",
        _frozen({
            "aspectratio=169": "Set aspect ratio to 16:9.",
            "handout": "Generate a handout version for printing.",
            "compress": "Compress navigation bars.",
            "t": "Align frame content to the top.",
            "c": "Align frame content to the center (default).",
            "b": "Align frame content to the bottom.",
            "smaller": "Use a smaller font size for frame content.",
            "professionalfonts": "Use professional fonts (e.g., Computer Modern).",
            "ignorenonframetext": "Ignore any text outside of frame environments.",
        }),
    ),
    DocumentClass(
        "memoir",
        "A versatile class for books, reports, and articles.",
        _frozen({
            "extrafontsizes": "Provides more font size commands.",
            "draft": "Marks document as a draft (shows overfull boxes).",
            "final": "Marks document as final (hides draft marks).",
        }),
        inherits=("book", "report"),
    ),
]

_PACKAGES = [
    PackageInfo("geometry", "Control page layout and margins.", _frozen({
        "a4paper": "Use A4 paper size.",
        "letterpaper": "Use US Letter paper size.",
        "margin=1in": "Set all margins to 1 inch.",
        "landscape": "Use landscape orientation.",
        "twoside": "Format for two-sided printing.",
        "includehead": "Include header in text height.",
        "includefoot": "Include footer in text height.",
        "headheight=15pt": "Set header height.",
        "bindingoffset=": "Add offset for binding.",
        "heightrounded": "Adjust text height to an integer number of lines.",
        "total={width,height}": "Specify total page dimensions.",
        "top=1in": "Set top margin.",
        "bottom=1in": "Set bottom margin.",
        "left=1in": "Set left margin.",
        "right=1in": "Set right margin.",
    })),
    PackageInfo("inputenc", "Specify input encoding.", _frozen({
        "utf8": "Unicode UTF-8 encoding (recommended).",
        "latin1": "ISO 8859-1 encoding.",
        "ascii": "Basic ASCII encoding.",
    })),
    PackageInfo("fontenc", "Specify font encoding.", _frozen({
        "T1": "T1 font encoding (for accented characters).",
        "OT1": "Original TeX font encoding.",
    })),
    PackageInfo("babel", "Provide language-specific typography.", _frozen({
        "english": "Load hyphenation patterns for English.",
        "french": "Load hyphenation patterns for French.",
        "german": "Load hyphenation patterns for German.",
        "spanish": "Load hyphenation patterns for Spanish.",
        "main=english": "Set the main document language.",
    })),
    PackageInfo("hyperref", "Create hyperlinks within the document.", _frozen({
        "colorlinks=true": "Color links instead of using boxes.",
        "linkcolor=blue": "Set color of internal links.",
        "citecolor=green": "Set color of citation links.",
        "urlcolor=magenta": "Set color of URL links.",
        "pdfauthor=": "Set the PDF author metadata.",
        "pdftitle=": "Set the PDF title metadata.",
        "pdfkeywords=": "Set the PDF keywords metadata.",
        "hidelinks": "Hide link borders and colors.",
        "bookmarks=true": "Create PDF bookmarks.",
        "breaklinks=true": "Allow links to wrap across lines.",
        "pdfencoding=auto": "Automatically determine PDF string encoding.",
        "pdfstartview=Fit": "Set the initial PDF view to fit the page.",
    })),
    PackageInfo("caption", "Customize captions in floating environments.", _frozen({
        "font=small": "Use a smaller font for captions.",
        "labelfont=bf": 'Use a bold font for the label (e.g., "Figure 1").',
        "justification=centering": "Center-align the caption text.",
        "justification=raggedright": "Left-align the caption text.",
        "justification=justified": "Justify the caption text.",
    })),
    PackageInfo("biblatex", "Advanced bibliography management.", _frozen({
        "backend=biber": "Use Biber backend (recommended).",
        "backend=bibtex": "Use BibTeX backend.",
        "style=apa": "Use APA citation style.",
        "style=numeric": "Use numeric citation style.",
        "style=authoryear": "Use author-year citation style.",
        "sorting=ynt": "Sort by year, name, title.",
        "sorting=none": "Do not sort; use citation order.",
    })),
    PackageInfo("xcolor", "Provides color support.", _frozen({
        "table": "Load color for table cells.",
        "dvipsnames": "Load the dvips color name set.",
        "svgnames": "Load the SVG color name set.",
        "x11names": "Load the X11 color name set.",
    })),
    PackageInfo("siunitx", "Typesetting for physical quantities, units, and numbers.", _frozen({
        "detect-all=true": "Detect and apply font settings from surrounding text.",
        "locale=": "Set the locale for number formatting (e.g., locale=US).",
    })),
]

_PACKAGE_NAMES = sorted([
    "amsmath", "amssymb", "amsfonts", "amsthm", "babel", "biblatex",
    "caption", "cleveref", "enumitem", "fancyhdr", "fontenc", "geometry",
    "graphicx", "hyperref", "inputenc", "microtype", "siunitx", "tikz",
    "ulem", "xcolor",
])

_COMMANDS = (
    CommandSkeleton("usepackage", "\\usepackage{}", "\\usepackage{}", len("\\usepackage{")),
    CommandSkeleton(
        "usepackage", "\\usepackage[]{}", "\\usepackage[options]{package}", len("\\usepackage[")
    ),
    CommandSkeleton(
        "documentclass",
        "\\documentclass[]{}",
        "\\documentclass[options]{class}",
        len("\\documentclass["),
    ),
)

DEFAULT_CATALOG = CompletionCatalog(
    styling_commands=frozenset({"fill", "draw"}),
    styling_options=_frozen({opt.name: opt for opt in _STYLING_OPTIONS}),
    common_class_options=_frozen(_COMMON_CLASS_OPTIONS),
    document_classes=_frozen({c.name: c for c in _DOCUMENT_CLASSES}),
    class_names=tuple(c.name for c in _DOCUMENT_CLASSES),
    packages=_frozen({p.name: p for p in _PACKAGES}),
    package_names=tuple(_PACKAGE_NAMES),
    commands=_COMMANDS,
)

# Packages inserted into a fresh preamble
DEFAULT_PACKAGES = ("amsmath", "amssymb", "amsfonts", "xcolor", "tikz", "geometry", "hyperref")
