# ──────────────────────────────────────────────────────────────────────────────
# File: pod_render.py
# Directory: services/
# Purpose : Turn the POD blocks of a Perl source file into HTML
#           • Paragraph parsing (command / verbatim / ordinary)
#           • Formatting codes B I C F S E L X Z, incl. C<< ... >>
#           • Heading anchors + nested table of contents
#
# Upstream:
#   - Imports: codecs, html.entities, markupsafe, re
#
# Downstream:
#   - services.pod_html
#   - routes.pod
#
# Contents:
#   - RenderedDocument
#   - PodRenderer.render_file() / render_string()
#   - parse_codes()
#   - idify()
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import codecs
import logging
import re
from dataclasses import dataclass, field
from html.entities import name2codepoint
from pathlib import Path
from typing import Iterator, List, Optional, Set, Tuple, Union

from markupsafe import escape

logger = logging.getLogger("podview.render")

# ─── Constants ────────────────────────────────────────────────────────────
HTML_FORMATS = frozenset({"html", "xhtml"})
CODES = "BCEFILSXZ"

_POD_START_RE = re.compile(r"^=[a-zA-Z]")
_COMMAND_RE = re.compile(r"^=([a-zA-Z]\w*)[ \t]*(.*)\Z", re.S)
_ENCODING_RE = re.compile(rb"^=encoding[ \t]+(\S+)", re.M)
_CODE_START_RE = re.compile(r"([%s])(<+)" % CODES)
_URL_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:[^:\s]\S*$")
_MANPAGE_RE = re.compile(r"^[\w.:-]+\(\w+\)$")
_NUMBER_ITEM_RE = re.compile(r"^(\d+)\.?(?:\s+|$)")

_SIMPLE_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "verbar": "|",
    "sol": "/",
    "quot": '"',
    "amp": "&",
    "apos": "'",
}


@dataclass
class RenderedDocument:
    name: str
    title: str
    toc: str
    body: str


# ─── Formatting codes ─────────────────────────────────────────────────────

@dataclass
class Code:
    letter: str
    children: List["Node"]
    raw: str


Node = Union[str, Code]


def parse_codes(text: str) -> List[Node]:
    """Parse POD formatting codes into a tree of strings and Code nodes."""
    nodes, _, _ = _parse_seq(text, 0, None)
    return nodes


def _parse_seq(text: str, i: int, close: Optional[str]) -> Tuple[List[Node], int, int]:
    """
    Parse until ``close`` (None means end of text). Returns the nodes, the
    position after the closer and the position where the content ended.
    Unterminated codes run to the end of the text.
    """
    nodes: List[Node] = []
    buf: List[str] = []
    closer_re = re.compile(r"\s+" + re.escape(close)) if close and len(close) > 1 else None

    def flush() -> None:
        if buf:
            nodes.append("".join(buf))
            buf.clear()

    n = len(text)
    while i < n:
        if close == ">" and text[i] == ">":
            flush()
            return nodes, i + 1, i
        if closer_re is not None:
            m = closer_re.match(text, i)
            if m:
                flush()
                return nodes, m.end(), i
        m = _CODE_START_RE.match(text, i)
        if m:
            letter, brackets = m.group(1), m.group(2)
            after = m.end()
            if len(brackets) > 1 and after < n and text[after].isspace():
                inner_close = ">" * len(brackets)
                start = after
                while start < n and text[start].isspace():
                    start += 1
            else:
                inner_close = ">"
                start = m.start(2) + 1
            flush()
            children, i, content_end = _parse_seq(text, start, inner_close)
            nodes.append(Code(letter, children, text[start:content_end]))
            continue
        buf.append(text[i])
        i += 1
    flush()
    return nodes, n, n


def plain_text(nodes: List[Node]) -> str:
    """Text content of a node list, with entities decoded and index codes dropped."""
    out: List[str] = []
    for node in nodes:
        if isinstance(node, str):
            out.append(node)
        elif node.letter in "XZ":
            continue
        elif node.letter == "E":
            out.append(decode_entity(plain_text(node.children)))
        elif node.letter == "L":
            out.append(_link_parts(node)[0])
        else:
            out.append(plain_text(node.children))
    return "".join(out)


def decode_entity(name: str) -> str:
    """Decode the body of an E<...> code; unknown names come back verbatim."""
    name = name.strip()
    if name in _SIMPLE_ENTITIES:
        return _SIMPLE_ENTITIES[name]
    try:
        if name.lower().startswith("0x"):
            return chr(int(name, 16))
        if name.startswith("0") and len(name) > 1:
            return chr(int(name, 8))
        if name.isdigit():
            return chr(int(name))
    except (ValueError, OverflowError):
        return f"E<{name}>"
    if name in name2codepoint:
        return chr(name2codepoint[name])
    return f"E<{name}>"


def idify(text: str) -> str:
    """Anchor id for a heading, following the usual POD-to-XHTML rules."""
    t = text.strip()
    if t and not re.search(r"[a-zA-Z]", t):
        t = "pod" + t
    t = re.sub(r"^[^a-zA-Z]+", "", t)
    t = re.sub(r"[^-a-zA-Z0-9_:.]+", "-", t)
    t = re.sub(r"[-:.]+$", "", t)
    return t or "pod"


def _split_link(raw: str) -> Tuple[Optional[str], str]:
    """Split L<text|target> at the first top-level '|'."""
    depth = 0
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch in CODES and raw.startswith("<", i + 1):
            depth += 1
            i += 2
            continue
        if ch == ">" and depth:
            depth -= 1
        elif ch == "|" and not depth:
            return raw[:i], raw[i + 1:]
        i += 1
    return None, raw


def _link_parts(node: Code) -> Tuple[str, Optional[str], Optional[str], Optional[List[Node]]]:
    """
    Resolve an L<> code into (default text, module name, section, text nodes).
    For URLs the module slot carries the URL and section is None.
    """
    text_raw, target_raw = _split_link(node.raw)
    text_nodes = parse_codes(text_raw) if text_raw is not None else None
    target = plain_text(parse_codes(target_raw)).strip()

    if _URL_RE.match(target):
        label = plain_text(text_nodes) if text_nodes is not None else target
        return label, target, None, text_nodes

    name: Optional[str] = None
    section: Optional[str] = None
    if target.startswith('"') and target.endswith('"') and len(target) > 1:
        section = target[1:-1]
    elif "/" in target:
        name, section = target.split("/", 1)
        section = section.strip().strip('"')
    elif " " in target:
        section = target
    else:
        name = target
    name = name.strip() if name else None

    if text_nodes is not None:
        label = plain_text(text_nodes)
    elif name and section:
        label = f'"{section}" in {name}'
    elif section:
        label = f'"{section}"'
    else:
        label = name or ""
    return label, name, section, text_nodes


# ─── Renderer ─────────────────────────────────────────────────────────────

@dataclass
class _ListState:
    kind: Optional[str] = None  # ul | ol | dl | blockquote
    item_open: bool = False


@dataclass
class _State:
    out: List[str] = field(default_factory=list)
    headings: List[Tuple[int, str, str]] = field(default_factory=list)
    ids: Set[str] = field(default_factory=set)
    lists: List[_ListState] = field(default_factory=list)
    verbatim: List[str] = field(default_factory=list)
    formats: List[str] = field(default_factory=list)
    title: str = ""
    in_name: bool = False


class PodRenderer:
    """
    Renders POD to an HTML body and table of contents.

    Module links (``L<Foo::Bar>``) point at ``{url_prefix}/Foo/Bar{module_ext}``
    so they land on the document route of this service.
    """

    def __init__(self, url_prefix: str = "/pod", module_ext: str = ".pm"):
        self.url_prefix = url_prefix.rstrip("/")
        self.module_ext = module_ext

    # ── entry points ──────────────────────────────────────────────────────
    def render_file(self, path: Union[str, Path], name: str = "") -> RenderedDocument:
        data = Path(path).read_bytes()
        return self.render_string(decode_source(data), name=name)

    def render_string(self, text: str, name: str = "") -> RenderedDocument:
        st = _State()
        for para in iter_paragraphs(text):
            self._paragraph(st, para)
        self._flush_verbatim(st)
        self._close_lists(st)
        return RenderedDocument(
            name=name,
            title=st.title,
            toc=render_toc(st.headings),
            body="\n".join(st.out),
        )

    # ── paragraphs ────────────────────────────────────────────────────────
    def _paragraph(self, st: _State, para: str) -> None:
        m = _COMMAND_RE.match(para)
        if st.formats:
            if m and m.group(1) == "end":
                st.formats.pop()
            elif m and m.group(1) == "begin":
                st.formats.append(_format_name(m.group(2)))
            elif st.formats[-1] in HTML_FORMATS:
                st.out.append(para)
            return

        if para[:1] in (" ", "\t"):
            st.verbatim.append(para)
            return
        self._flush_verbatim(st)

        if m:
            self._command(st, m.group(1), m.group(2).strip())
        else:
            self._ordinary(st, para)

    def _command(self, st: _State, cmd: str, arg: str) -> None:
        if cmd in ("head1", "head2", "head3", "head4"):
            self._close_lists(st)
            self._heading(st, int(cmd[-1]), arg)
        elif cmd == "over":
            st.lists.append(_ListState())
        elif cmd == "item":
            self._item(st, arg)
        elif cmd == "back":
            if st.lists:
                self._close_list(st, st.lists.pop())
        elif cmd == "begin":
            st.formats.append(_format_name(arg))
        elif cmd == "for":
            fmt, _, rest = arg.partition(" ")
            if fmt.lstrip(":").lower() in HTML_FORMATS:
                st.out.append(rest.strip())
        elif cmd in ("pod", "cut", "encoding", "end"):
            pass
        else:
            logger.debug("ignoring unknown POD command =%s", cmd)

    def _heading(self, st: _State, level: int, arg: str) -> None:
        nodes = parse_codes(arg)
        text = plain_text(nodes)
        anchor = _unique(st.ids, idify(text))
        st.headings.append((level, anchor, text))
        st.out.append(f'<h{level} id="{anchor}">{self.inline(nodes)}</h{level}>')
        st.in_name = level == 1 and text.strip().upper() == "NAME"

    def _item(self, st: _State, arg: str) -> None:
        if not st.lists:
            st.lists.append(_ListState())
        lst = st.lists[-1]
        if lst.kind is None:
            if arg == "*" or arg.startswith("* ") or arg.startswith("*\n"):
                lst.kind = "ul"
            elif _NUMBER_ITEM_RE.match(arg):
                lst.kind = "ol"
            else:
                lst.kind = "dl"
            st.out.append(f"<{lst.kind}>")
        elif lst.kind == "blockquote":
            lst.kind = "dl"
            st.out.append("<dl>")

        if lst.kind == "dl":
            if lst.item_open:
                st.out.append("</dd>")
            st.out.append(f"<dt>{self.inline(parse_codes(arg))}</dt>")
            st.out.append("<dd>")
        else:
            if lst.item_open:
                st.out.append("</li>")
            if lst.kind == "ul":
                rest = arg[1:] if arg.startswith("*") else arg
            else:
                rest = _NUMBER_ITEM_RE.sub("", arg, count=1)
            st.out.append("<li>")
            if rest.strip():
                st.out.append(f"<p>{self.inline(parse_codes(rest.strip()))}</p>")
        lst.item_open = True

    def _ordinary(self, st: _State, para: str) -> None:
        if st.lists and st.lists[-1].kind is None:
            st.lists[-1].kind = "blockquote"
            st.out.append("<blockquote>")
        nodes = parse_codes(para)
        if st.in_name and not st.title:
            st.title = " ".join(plain_text(nodes).split())
        st.out.append(f"<p>{self.inline(nodes)}</p>")

    def _flush_verbatim(self, st: _State) -> None:
        if not st.verbatim:
            return
        block = "\n\n".join(
            "\n".join(line.expandtabs(8) for line in para.split("\n")) for para in st.verbatim
        )
        st.verbatim.clear()
        if st.lists and st.lists[-1].kind is None:
            st.lists[-1].kind = "blockquote"
            st.out.append("<blockquote>")
        st.out.append(f"<pre><code>{escape(block)}</code></pre>")

    def _close_list(self, st: _State, lst: _ListState) -> None:
        if lst.kind is None:
            return
        if lst.item_open:
            st.out.append("</dd>" if lst.kind == "dl" else "</li>")
        st.out.append(f"</{lst.kind}>")

    def _close_lists(self, st: _State) -> None:
        while st.lists:
            self._close_list(st, st.lists.pop())

    # ── inline ────────────────────────────────────────────────────────────
    def inline(self, nodes: List[Node], nbsp: bool = False) -> str:
        out: List[str] = []
        for node in nodes:
            if isinstance(node, str):
                s = str(escape(node))
                out.append(s.replace(" ", "&nbsp;") if nbsp else s)
                continue
            letter = node.letter
            if letter in "XZ":
                continue
            if letter == "E":
                out.append(str(escape(decode_entity(plain_text(node.children)))))
            elif letter == "B":
                out.append(f"<b>{self.inline(node.children, nbsp)}</b>")
            elif letter in "IF":
                out.append(f"<i>{self.inline(node.children, nbsp)}</i>")
            elif letter == "C":
                out.append(f"<code>{self.inline(node.children, nbsp)}</code>")
            elif letter == "S":
                out.append(self.inline(node.children, nbsp=True))
            elif letter == "L":
                out.append(self._link(node, nbsp))
        return "".join(out)

    def module_url(self, name: str) -> str:
        return f"{self.url_prefix}/{name.replace('::', '/')}{self.module_ext}"

    def _link(self, node: Code, nbsp: bool) -> str:
        label, name, section, text_nodes = _link_parts(node)
        html_label = self.inline(text_nodes, nbsp) if text_nodes is not None else str(escape(label))
        if name and section is None and _URL_RE.match(name):
            return f'<a href="{escape(name)}">{html_label}</a>'
        if name and _MANPAGE_RE.match(name):
            return html_label
        href = self.module_url(name) if name else ""
        if section:
            href += "#" + idify(section)
        return f'<a href="{escape(href)}">{html_label}</a>'


# ─── Helpers ──────────────────────────────────────────────────────────────

def decode_source(data: bytes) -> str:
    """Decode file bytes honouring an =encoding line; UTF-8 otherwise."""
    encoding = "utf-8"
    m = _ENCODING_RE.search(data)
    if m:
        candidate = m.group(1).decode("ascii", "replace")
        try:
            encoding = codecs.lookup(candidate).name
        except LookupError:
            logger.warning("unknown POD encoding %r, falling back to utf-8", candidate)
    text = data.decode(encoding, errors="replace")
    return text.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")


def iter_paragraphs(text: str) -> Iterator[str]:
    """
    Yield the POD paragraphs of a source text. Code outside POD blocks is
    skipped; a command line starts a block and =cut ends it.
    """
    in_pod = False
    buf: List[str] = []
    for line in text.split("\n"):
        if not in_pod:
            if _POD_START_RE.match(line):
                in_pod = True
            else:
                continue
        if not line.strip():
            if buf:
                yield "\n".join(buf)
                buf = []
            continue
        if _POD_START_RE.match(line) and buf:
            yield "\n".join(buf)
            buf = []
        if line.startswith("=cut") and not buf:
            in_pod = False
            continue
        buf.append(line)
    if buf:
        yield "\n".join(buf)


def render_toc(headings: List[Tuple[int, str, str]]) -> str:
    """Nested <ul> of heading links."""
    if not headings:
        return ""
    out: List[str] = []
    levels: List[int] = []
    for level, anchor, text in headings:
        if not levels:
            out.append('<ul id="index">')
            levels.append(level)
        else:
            while len(levels) > 1 and level < levels[-1]:
                out.append("</li>\n</ul>")
                levels.pop()
            if level > levels[-1]:
                out.append("<ul>")
                levels.append(level)
            else:
                out.append("</li>")
        out.append(f'<li><a href="#{anchor}">{escape(text)}</a>')
    while levels:
        out.append("</li>\n</ul>")
        levels.pop()
    return "\n".join(out)


def _unique(ids: Set[str], anchor: str) -> str:
    candidate = anchor
    n = 1
    while candidate in ids:
        candidate = f"{anchor}-{n}"
        n += 1
    ids.add(candidate)
    return candidate


def _format_name(arg: str) -> str:
    return (arg.split() or [""])[0].lstrip(":").lower()
