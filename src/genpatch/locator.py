"""Structural locator – finds anchor points in foreign, unparsed source text.

Nothing here builds a syntax tree.  Block boundaries come from brace-depth
counting behind the :class:`BlockBoundaryLocator` interface, declarations come
from line-anchored regexes.  Two locators exist:

* :class:`BraceCountingLocator` counts every ``{`` / ``}`` in the text,
  including those inside string literals and comments.
* :class:`LiteralAwareLocator` skips Kotlin/Groovy string literals, char
  literals and comments while counting.

Both are linear scans.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional


class BlockBoundaryLocator(ABC):
    """Yields the code braces of a text; everything else derives from that."""

    name: str = ""

    @abstractmethod
    def iter_braces(self, text: str, start: int = 0) -> Iterator[tuple[int, str]]:
        """Yield ``(offset, char)`` for each brace counted from *start*."""

    def find_block_end(self, text: str, open_index: int) -> Optional[int]:
        """Return the offset of the ``}`` matching the ``{`` at *open_index*.

        ``None`` when the text ends before depth returns to zero.
        """
        if open_index < 0 or open_index >= len(text) or text[open_index] != "{":
            return None
        depth = 0
        for idx, ch in self.iter_braces(text, open_index):
            if ch == "{":
                depth += 1
            else:
                depth -= 1
                if depth == 0:
                    return idx
        return None

    def is_balanced(self, text: str) -> bool:
        depth = 0
        for _, ch in self.iter_braces(text):
            depth += 1 if ch == "{" else -1
            if depth < 0:
                return False
        return depth == 0

    def last_top_level_close(self, text: str) -> Optional[int]:
        """Offset of the last ``}`` that brings depth back to zero."""
        depth = 0
        last: Optional[int] = None
        for idx, ch in self.iter_braces(text):
            if ch == "{":
                depth += 1
            else:
                depth -= 1
                if depth == 0:
                    last = idx
        return last


def _braces_between(text: str, start: int, end: int) -> Iterator[tuple[int, str]]:
    for idx in range(start, end):
        ch = text[idx]
        if ch == "{" or ch == "}":
            yield idx, ch


class BraceCountingLocator(BlockBoundaryLocator):
    """Raw counting: braces inside literals and comments are counted too."""

    name = "raw"

    def iter_braces(self, text: str, start: int = 0) -> Iterator[tuple[int, str]]:
        yield from _braces_between(text, max(start, 0), len(text))


class LiteralAwareLocator(BlockBoundaryLocator):
    """Skips ``"…"``, ``\"\"\"…\"\"\"``, ``'…'``, ``// …`` and ``/* … */``.

    Braces of a Kotlin template expression inside a string (``"${x}"``) are
    part of the literal and are skipped with it.  Block comments nest, as in
    Kotlin.
    """

    name = "literal-aware"

    def iter_braces(self, text: str, start: int = 0) -> Iterator[tuple[int, str]]:
        i = max(start, 0)
        for span_start, span_end in self.literal_spans(text, i):
            yield from _braces_between(text, i, span_start)
            i = span_end
        yield from _braces_between(text, i, len(text))

    def literal_spans(self, text: str, start: int = 0) -> Iterator[tuple[int, int]]:
        """Yield ``(start, end)`` of every comment and string literal from *start*."""
        i = max(start, 0)
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == "/" and text.startswith("//", i):
                nl = text.find("\n", i)
                end = n if nl < 0 else nl
            elif ch == "/" and text.startswith("/*", i):
                end = self._skip_block_comment(text, i)
            elif ch == '"':
                if text.startswith('"""', i):
                    close = text.find('"""', i + 3)
                    end = n if close < 0 else close + 3
                else:
                    end = self._skip_quoted(text, i, '"')
            elif ch == "'":
                end = self._skip_quoted(text, i, "'")
            else:
                i += 1
                continue
            yield i, end
            i = end

    @staticmethod
    def _skip_quoted(text: str, i: int, quote: str) -> int:
        j = i + 1
        n = len(text)
        while j < n:
            c = text[j]
            if c == "\\":
                j += 2
                continue
            if c == quote:
                return j + 1
            if c == "\n":
                # unterminated on this line: treat the quote as plain text
                return i + 1
            j += 1
        return i + 1

    @staticmethod
    def _skip_block_comment(text: str, i: int) -> int:
        depth = 0
        j = i
        n = len(text)
        while j < n:
            if text.startswith("/*", j):
                depth += 1
                j += 2
            elif text.startswith("*/", j):
                depth -= 1
                j += 2
                if depth == 0:
                    return j
            else:
                j += 1
        return n


_LOCATORS: dict[str, BlockBoundaryLocator] = {
    BraceCountingLocator.name: BraceCountingLocator(),
    LiteralAwareLocator.name: LiteralAwareLocator(),
}

DEFAULT_LOCATOR = LiteralAwareLocator.name


def get_locator(name: Optional[str] = None) -> BlockBoundaryLocator:
    key = (name or DEFAULT_LOCATOR).strip().lower()
    locator = _LOCATORS.get(key)
    if locator is None:
        raise ValueError(f"Unknown locator '{name}' (expected one of: {', '.join(sorted(_LOCATORS))})")
    return locator


def find_block_end(text: str, open_index: int, locator: Optional[BlockBoundaryLocator] = None) -> Optional[int]:
    return (locator or get_locator()).find_block_end(text, open_index)


def is_balanced(text: str, locator: Optional[BlockBoundaryLocator] = None) -> bool:
    return (locator or get_locator()).is_balanced(text)


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass
class MethodDeclaration:
    """A located ``fun`` declaration."""

    name: str
    indent: str
    params: str
    start: int
    open_brace: Optional[int] = None
    close_brace: Optional[int] = None

    @property
    def has_body(self) -> bool:
        return self.open_brace is not None and self.close_brace is not None

    @property
    def param_names(self) -> list[str]:
        return parameter_names(self.params)


@dataclass
class ClassDeclaration:
    """The defining statement of a class and, when present, its body span."""

    name: str
    indent: str
    start: int
    line_end: int
    open_brace: Optional[int] = None
    close_brace: Optional[int] = None

    @property
    def has_body(self) -> bool:
        return self.open_brace is not None


_MODIFIERS = r"(?:override|public|protected|private|internal|open|final|suspend|inline|operator)"
_ANNOTATION = r"@[\w.]+(?:\([^)\n]*\))?"
_RETURN_TYPE_THEN_BRACE = re.compile(r"\s*(?::\s*[\w.<>?,*\s]+?)?\s*\{")


def mask_literals(text: str) -> str:
    """*text* with every comment and string literal blanked to spaces.

    Offsets and line breaks are kept, so a match on the result indexes
    straight into *text*.
    """
    chars = list(text or "")
    for start, end in _LOCATORS[LiteralAwareLocator.name].literal_spans(text or ""):
        for j in range(start, end):
            if chars[j] not in "\r\n":
                chars[j] = " "
    return "".join(chars)


def _member_matches(
    pattern: re.Pattern[str],
    text: str,
    masked: str,
    scope: Optional[ClassDeclaration],
    locator: Optional[BlockBoundaryLocator],
) -> Iterator[re.Match[str]]:
    """Matches of *pattern* in *masked*, limited to members of *scope*.

    Without a scope the whole text is searched.  With one, only matches
    inside the class body at depth one (direct members, not members of
    nested or local classes) are yielded.
    """
    if scope is None:
        yield from pattern.finditer(masked)
        return
    if scope.open_brace is None:
        return
    end = scope.close_brace if scope.close_brace is not None else len(text)
    braces = [
        (idx, ch) for idx, ch in (locator or get_locator()).iter_braces(text, scope.open_brace)
        if idx < end
    ]
    for m in pattern.finditer(masked, scope.open_brace + 1, end):
        depth = sum(1 if ch == "{" else -1 for idx, ch in braces if idx < m.start())
        if depth == 1:
            yield m


def declares_method(
    text: str,
    name: str,
    scope: Optional[ClassDeclaration] = None,
    locator: Optional[BlockBoundaryLocator] = None,
) -> bool:
    """True when ``fun <name>(`` appears in code, located or not.

    Comments and string literals do not count.
    """
    pattern = re.compile(rf"(?<![\w.])fun\s+{re.escape(name)}\s*\(")
    text = text or ""
    return next(_member_matches(pattern, text, mask_literals(text), scope, locator), None) is not None


def _method_pattern(name: str) -> re.Pattern[str]:
    return re.compile(
        rf"^(?P<indent>[ \t]*)(?:(?:{_ANNOTATION}|{_MODIFIERS})[ \t]+)*fun[ \t]+(?P<name>{re.escape(name)})[ \t]*\(",
        re.MULTILINE,
    )


def _matching_paren(text: str, open_index: int) -> Optional[int]:
    depth = 0
    for idx in range(open_index, len(text)):
        ch = text[idx]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return idx
    return None


def find_method(
    text: str,
    name: str,
    locator: Optional[BlockBoundaryLocator] = None,
    scope: Optional[ClassDeclaration] = None,
) -> Optional[MethodDeclaration]:
    """Locate ``fun <name>(…)`` and its brace-delimited body.

    Returns the declaration even when it has no block body (expression body,
    abstract member); callers check :attr:`MethodDeclaration.has_body`.
    Declarations inside comments or strings are ignored.  With *scope* only
    direct members of that class are considered.
    """
    text = text or ""
    masked = mask_literals(text)
    m = next(_member_matches(_method_pattern(name), text, masked, scope, locator), None)
    if not m:
        return None
    paren_open = m.end() - 1
    paren_close = _matching_paren(masked, paren_open)
    if paren_close is None:
        return MethodDeclaration(name=name, indent=m.group("indent"), params="", start=m.start())

    decl = MethodDeclaration(
        name=name,
        indent=m.group("indent"),
        params=text[paren_open + 1:paren_close],
        start=m.start(),
    )
    body = _RETURN_TYPE_THEN_BRACE.match(masked, paren_close + 1)
    if body:
        open_brace = body.end() - 1
        decl.open_brace = open_brace
        decl.close_brace = (locator or get_locator()).find_block_end(text, open_brace)
        if decl.close_brace is None:
            decl.open_brace = None
    return decl


def parameter_names(params: str) -> list[str]:
    """Identifiers of a Kotlin parameter list, in order.

    >>> parameter_names("requestCode: Int, resultCode: Int, data: Intent?")
    ['requestCode', 'resultCode', 'data']
    """
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in params or "":
        if ch in "(<[":
            depth += 1
        elif ch in ")>]":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    if "".join(current).strip():
        parts.append("".join(current))

    names: list[str] = []
    for part in parts:
        head = part.split(":", 1)[0]
        head = re.sub(_ANNOTATION, " ", head)
        tokens = [t for t in head.split() if t not in ("vararg", "noinline", "crossinline", "val", "var")]
        if tokens:
            names.append(tokens[-1])
    return names


def find_class(
    text: str,
    class_name: str,
    locator: Optional[BlockBoundaryLocator] = None,
) -> Optional[ClassDeclaration]:
    """Locate ``class <class_name>`` and, when it has one, its body."""
    m = re.search(
        rf"^(?P<indent>[ \t]*)(?:(?:public|internal|open|final|abstract|private)[ \t]+)*class[ \t]+{re.escape(class_name)}\b[^\n]*$",
        text or "",
        re.MULTILINE,
    )
    if not m:
        return None
    decl = ClassDeclaration(
        name=class_name,
        indent=m.group("indent"),
        start=m.start(),
        line_end=m.end(),
    )
    line = m.group(0)
    if "{" in line:
        decl.open_brace = m.start() + line.index("{")
    else:
        nxt = re.compile(r"(?:[ \t]*\r?\n)+[ \t]*\{").match(text, m.end())
        if nxt:
            decl.open_brace = nxt.end() - 1
    if decl.open_brace is not None:
        decl.close_brace = (locator or get_locator()).find_block_end(text, decl.open_brace)
    return decl


def find_opening_tag(text: str, tag: str) -> Optional[re.Match[str]]:
    """Match covering the full opening tag ``<tag …>`` of an XML element."""
    return re.search(rf"<{re.escape(tag)}\b[^>]*>", text or "", re.DOTALL)


def detect_indent_unit(text: str, default: str = "    ") -> str:
    """Indentation step used by *text* (a tab, or the smallest even space run)."""
    widths: set[int] = set()
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        if line.startswith("\t"):
            return "\t"
        stripped = line.lstrip(" ")
        width = len(line) - len(stripped)
        if width and stripped[:1] != "*" and width % 2 == 0:
            widths.add(width)
    if not widths:
        return default
    return " " * min(widths)


def line_start(text: str, index: int) -> int:
    return text.rfind("\n", 0, index) + 1


def body_indent(text: str, decl: MethodDeclaration, unit: str) -> str:
    """Indentation of the first statement in a method body."""
    if decl.open_brace is None:
        return decl.indent + unit
    end = decl.close_brace if decl.close_brace is not None else len(text)
    for line in text[decl.open_brace + 1:end].splitlines():
        if line.strip():
            return line[: len(line) - len(line.lstrip())]
    return decl.indent + unit
