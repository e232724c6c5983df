"""
Content renderer: turns a TextPayload into safe rich markup.

Rendering runs an explicit, ordered list of named stages:

Line stages (first match wins per line):
  category_callout  **Category:** rest
  section_header    **label:**
  bullet            • text
  numbered          N. text

Inline stages (applied in order to the raw-text segments of each line;
markup emitted by an earlier stage is never re-scanned):
  video_links       YouTube URL or markdown link to one -> thumbnail card
                    (only without structured videos)
  images            ![alt](src)
  markdown_links    [text](url)
  bare_urls         http(s)://...
  bold              **text**

Blank lines separate paragraphs, single newlines inside a paragraph become <br>.
The output depends only on the content, the has-structured-videos flag and the
RenderContext passed in.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union
from urllib.parse import parse_qs, quote, urlsplit

from allion_voice import markup
from allion_voice.markup import Markup
from allion_voice.models.message import TextPayload, WebSource, YouTubeVideo

Segment = Union[str, Markup]

YOUTUBE_URL = r"https?://(?:www\.)?(?:youtube\.com/watch\?v=|youtu\.be/)([A-Za-z0-9_-]+)[^\s)<]*"
YOUTUBE_PATTERN = re.compile(YOUTUBE_URL, re.IGNORECASE)
# [label](yt-url) or ![alt](yt-url); group 1 is the URL, group 2 the video id
YOUTUBE_MARKDOWN_PATTERN = re.compile(r"!?\[[^\]\n]{0,500}\]\((" + YOUTUBE_URL + r")\)", re.IGNORECASE)
IMAGE_PATTERN = re.compile(r"!\[([^\]\n]{0,500})\]\(([^)\s]+)\)")
LINK_PATTERN = re.compile(r"\[([^\]\n]{1,500})\]\(([^)\s]+)\)")
URL_PATTERN = re.compile(
    r"https?://[-\w.]+(?::\d+)?(?:/[\w/.%~+@-]*)?(?:\?[\w&=%.~+/-]*)?(?:#[\w.-]*)?",
    re.IGNORECASE,
)
BOLD_PATTERN = re.compile(r"\*\*([^*]+)\*\*")
DATA_IMAGE_PATTERN = re.compile(r"data:image/[\w.+-]+;base64,[A-Za-z0-9+/=]+")

CALLOUT_LINE = re.compile(r"^\*\*(Category):\*\*\s*(\S.*)$")
HEADER_LINE = re.compile(r"^\*\*([^*\n]+):\*\*\s*(.*)$")
BULLET_LINE = re.compile(r"^\s*• (.+)$")
NUMBERED_LINE = re.compile(r"^\s*(\d{1,9})\. (.+)$")

# Escape sequences that sometimes survive double JSON encoding upstream
LEFTOVER_ESCAPES = (("\\n", "\n"), ("\\u2022", "•"), ('\\"', '"'), ("\\\\", "\\"))

LEGACY_API_PREFIX = "/api/images"
TRAILING_PUNCTUATION = ".,;:!?"


@dataclass(frozen=True)
class RenderContext:
    """Request-scoped rendering settings."""
    asset_endpoint: str = "/assets"
    static_prefix: str = "/diagnostic-images"


@dataclass(frozen=True)
class StageInput:
    has_structured_videos: bool
    context: RenderContext


InlineStage = Callable[[str, StageInput], list[Segment]]


def is_safe_url(url: str) -> bool:
    lowered = url.strip().lower()
    if lowered.startswith(("http://", "https://", "mailto:")):
        return True
    return lowered.startswith("/") and not lowered.startswith("//")


def _split(pattern: re.Pattern, text: str, replace: Callable[[re.Match], list[Segment]]) -> list[Segment]:
    out: list[Segment] = []
    pos = 0
    for match in pattern.finditer(text):
        if match.start() > pos:
            out.append(text[pos:match.start()])
        out.extend(replace(match))
        pos = match.end()
    if pos < len(text):
        out.append(text[pos:])
    return out


# Inline stages

def video_links(text: str, stage: StageInput) -> list[Segment]:
    if stage.has_structured_videos:
        # The structured list owns the cards; bare_urls leaves these as text.
        return [text]

    def replace(match: re.Match) -> list[Segment]:
        url = match.group(0).rstrip(TRAILING_PUNCTUATION)
        tail = match.group(0)[len(url):]
        return [markup.video_card(url, match.group(1))] + ([tail] if tail else [])

    out: list[Segment] = []
    linked = _split(YOUTUBE_MARKDOWN_PATTERN, text, lambda m: [markup.video_card(m.group(1), m.group(2))])
    for seg in linked:
        out.extend([seg] if isinstance(seg, Markup) else _split(YOUTUBE_PATTERN, seg, replace))
    return out


def images(text: str, stage: StageInput) -> list[Segment]:
    def replace(match: re.Match) -> list[Segment]:
        alt, src = match.group(1), match.group(2)
        return [_image(alt or "Diagnostic Image", src, stage.context) or match.group(0)]
    return _split(IMAGE_PATTERN, text, replace)


def _image(alt: str, src: str, ctx: RenderContext) -> Optional[Markup]:
    if src.startswith("data:"):
        if not DATA_IMAGE_PATTERN.fullmatch(src):
            return None
        return markup.image(src, alt)
    if src.startswith((ctx.asset_endpoint, LEGACY_API_PREFIX)):
        name = _reference_name(src)
        fallback = (
            markup.fallback_image(f"{ctx.static_prefix}/{quote(name, safe='')}", f"{alt} (static)")
            if name else markup.fallback_note("Image could not be loaded from any source")
        )
        return markup.image(src, alt, fallback)
    if src.startswith(ctx.static_prefix):
        return markup.image(src, alt, markup.fallback_note("Image could not be loaded"))
    filename = re.split(r"[/\\]", src)[-1] or src
    return markup.image(
        f"{ctx.asset_endpoint}?name={quote(filename, safe='')}",
        alt,
        markup.fallback_note(f"Image reference: {filename}"),
    )


def _reference_name(src: str) -> str:
    parts = urlsplit(src)
    names = parse_qs(parts.query).get("name")
    if names:
        return names[0]
    tail = parts.path.rstrip("/").rsplit("/", 1)[-1]
    return "" if tail in ("images", "assets") else tail


def markdown_links(text: str, stage: StageInput) -> list[Segment]:
    def replace(match: re.Match) -> list[Segment]:
        label, url = match.group(1), match.group(2)
        if not is_safe_url(url):
            return [match.group(0)]
        return [markup.anchor(url, label)]
    return _split(LINK_PATTERN, text, replace)


def bare_urls(text: str, stage: StageInput) -> list[Segment]:
    def replace(match: re.Match) -> list[Segment]:
        url = match.group(0)
        trimmed = url.rstrip(TRAILING_PUNCTUATION)
        tail = url[len(trimmed):]
        if stage.has_structured_videos and YOUTUBE_PATTERN.match(trimmed):
            out: list[Segment] = [Markup(markup.text(trimmed))]
        else:
            out = [markup.anchor(trimmed, trimmed, css="report-link break-all")]
        if tail:
            out.append(tail)
        return out
    return _split(URL_PATTERN, text, replace)


def bold(text: str, stage: StageInput) -> list[Segment]:
    return _split(BOLD_PATTERN, text, lambda m: [markup.strong(m.group(1))])


# Line classification

@dataclass
class Line:
    kind: str  # "text" | "blank" | "heading" | "callout" | "bullet" | "numbered"
    body: str = ""
    label: str = ""
    number: Optional[int] = None


def category_callout(line: str) -> Optional[Line]:
    m = CALLOUT_LINE.match(line)
    return Line("callout", body=m.group(2), label=m.group(1)) if m else None


def section_header(line: str) -> Optional[Line]:
    m = HEADER_LINE.match(line)
    return Line("heading", body=m.group(2), label=m.group(1).strip()) if m else None


def bullet(line: str) -> Optional[Line]:
    m = BULLET_LINE.match(line)
    return Line("bullet", body=m.group(1)) if m else None


def numbered(line: str) -> Optional[Line]:
    m = NUMBERED_LINE.match(line)
    return Line("numbered", body=m.group(2), number=int(m.group(1))) if m else None


LineRule = Callable[[str], Optional[Line]]


class Pipeline:
    """An ordered set of line rules and inline stages."""

    def __init__(
        self,
        line_rules: Sequence[tuple[str, LineRule]],
        inline_stages: Sequence[tuple[str, InlineStage]],
        normalize_escapes: bool = False,
    ):
        self.line_rules = tuple(line_rules)
        self.inline_stages = tuple(inline_stages)
        self.normalize_escapes = normalize_escapes

    @property
    def stage_names(self) -> list[str]:
        return [name for name, _ in self.line_rules] + [name for name, _ in self.inline_stages]

    def classify(self, line: str) -> Line:
        if not line.strip():
            return Line("blank")
        for _name, rule in self.line_rules:
            found = rule(line)
            if found is not None:
                return found
        return Line("text", body=line)

    def inline(self, text: str, stage: StageInput) -> str:
        segments: list[Segment] = [text]
        for _name, fn in self.inline_stages:
            next_segments: list[Segment] = []
            for seg in segments:
                if isinstance(seg, Markup):
                    next_segments.append(seg)
                else:
                    next_segments.extend(fn(seg, stage))
            segments = next_segments
        return "".join(seg if isinstance(seg, Markup) else markup.text(seg) for seg in segments)

    def render(self, content: str, has_structured_videos: bool = False,
               context: Optional[RenderContext] = None) -> str:
        stage = StageInput(has_structured_videos, context or RenderContext())
        if self.normalize_escapes:
            for escaped, char in LEFTOVER_ESCAPES:
                content = content.replace(escaped, char)
        content = content.replace("\r\n", "\n")

        blocks: list[str] = []
        paragraph: list[str] = []
        items: list[Line] = []

        def flush() -> None:
            if paragraph:
                body = "<br>".join(self.inline(line, stage) for line in paragraph)
                blocks.append(f'<div class="report-paragraph">{body}</div>')
                paragraph.clear()
            if items:
                tag = "ul" if items[0].kind == "bullet" else "ol"
                rendered = []
                for item in items:
                    value = f' value="{item.number}"' if item.number is not None else ""
                    rendered.append(f"<li{value}>{self.inline(item.body, stage)}</li>")
                blocks.append(f'<{tag} class="report-list">{"".join(rendered)}</{tag}>')
                items.clear()

        for raw in content.split("\n"):
            line = self.classify(raw)
            if line.kind == "blank":
                flush()
            elif line.kind == "heading":
                flush()
                blocks.append(markup.heading(line.label))
                if line.body.strip():
                    paragraph.append(line.body)
            elif line.kind == "callout":
                flush()
                blocks.append(markup.callout(line.label, self.inline(line.body, stage)))
            elif line.kind in ("bullet", "numbered"):
                if paragraph or (items and items[0].kind != line.kind):
                    flush()
                items.append(line)
            else:
                if items:
                    flush()
                paragraph.append(line.body)
        flush()
        return "\n".join(blocks)


REPORT_PIPELINE = Pipeline(
    line_rules=[
        ("category_callout", category_callout),
        ("section_header", section_header),
        ("bullet", bullet),
        ("numbered", numbered),
    ],
    inline_stages=[
        ("video_links", video_links),
        ("images", images),
        ("markdown_links", markdown_links),
        ("bare_urls", bare_urls),
        ("bold", bold),
    ],
    normalize_escapes=True,
)

# Lighter formatting for unstructured chat messages
CHAT_PIPELINE = Pipeline(
    line_rules=[
        ("bullet", bullet),
        ("numbered", numbered),
    ],
    inline_stages=[
        ("images", images),
        ("markdown_links", markdown_links),
        ("bare_urls", bare_urls),
        ("bold", bold),
    ],
)


def render_content(content: str, has_structured_videos: bool = False,
                   context: Optional[RenderContext] = None) -> str:
    return REPORT_PIPELINE.render(content, has_structured_videos, context)


def format_chat(text: str, context: Optional[RenderContext] = None) -> str:
    """Format an unstructured chat message."""
    return CHAT_PIPELINE.render(text, False, context)


def render_sources(sources: Sequence[WebSource]) -> str:
    if not sources:
        return ""
    rows = []
    for source in sources:
        title = source.title or source.url
        if is_safe_url(source.url):
            link = markup.anchor(source.url, title)
        else:
            link = markup.text(title)
        rows.append(f'<li>{link}<p class="source-url">{markup.text(source.url)}</p></li>')
    return (
        '<section class="web-sources"><h3>Web Sources</h3>'
        f'<ul>{"".join(rows)}</ul></section>'
    )


def render_videos(videos: Sequence[YouTubeVideo]) -> str:
    if not videos:
        return ""
    cards = []
    for video in videos:
        thumb = markup.thumbnail_for(video.thumbnail, video.video_id)
        href = video.url if is_safe_url(video.url) else "#"
        cards.append(
            '<div class="video-card">'
            f'<a href="{markup.attr(href)}" target="_blank" rel="noopener noreferrer">'
            f'<img src="{markup.attr(thumb)}" alt="{markup.attr(video.title)}" loading="lazy">'
            f'<p class="video-title">{markup.text(video.title)}</p>'
            "</a></div>"
        )
    return (
        '<section class="diagnostic-videos"><h3>Diagnostic Videos</h3>'
        f'<div class="video-grid">{"".join(cards)}</div></section>'
    )


def render(payload: TextPayload, context: Optional[RenderContext] = None) -> str:
    """Render a full report: main content, then sources and videos."""
    parts = []
    if payload.content:
        body = render_content(payload.content, payload.has_structured_videos, context)
        parts.append(f'<div class="diagnostic-content">{body}</div>')
    for section in (render_sources(payload.web_sources), render_videos(payload.youtube_videos)):
        if section:
            parts.append(section)
    return "\n".join(parts)
