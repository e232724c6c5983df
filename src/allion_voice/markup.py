"""
HTML fragments emitted by the renderer.

Every value interpolated here is escaped; callers pass raw text and URLs.
"""

import html
from typing import Optional

YOUTUBE_THUMBNAIL = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"
YOUTUBE_DEFAULT_THUMBNAIL = "https://img.youtube.com/vi/default/mqdefault.jpg"
PLACEHOLDER_THUMBNAIL = "default/default.jpg"


class Markup(str):
    """Already-rendered HTML. Pipeline stages never re-scan these segments."""


def attr(value: str) -> str:
    return html.escape(value, quote=True)


def text(value: str) -> str:
    return html.escape(value, quote=False)


def anchor(href: str, label: str, css: str = "report-link") -> Markup:
    return Markup(
        f'<a href="{attr(href)}" target="_blank" rel="noopener noreferrer" class="{css}">{text(label)}</a>'
    )


def strong(label: str) -> Markup:
    return Markup(f"<strong>{text(label)}</strong>")


def heading(label: str) -> Markup:
    return Markup(f'<h3 class="report-heading">{text(label)}</h3>')


def callout(label: str, body: str) -> Markup:
    return Markup(
        f'<div class="report-callout"><strong>{text(label)}:</strong> <span>{body}</span></div>'
    )


def video_card(url: str, video_id: str) -> Markup:
    """Inline card for a YouTube link found in report text."""
    thumb = YOUTUBE_THUMBNAIL.format(video_id=video_id)
    return Markup(
        '<div class="video-card">'
        f'<a href="{attr(url)}" target="_blank" rel="noopener noreferrer">'
        f'<img src="{attr(thumb)}" alt="YouTube Thumbnail" loading="lazy">'
        '<span class="video-card-caption">\U0001F3A5 Watch Diagnostic Video</span>'
        f'<span class="video-card-url">{text(url)}</span>'
        "</a></div>"
    )


def image(src: str, alt: str, fallback: Optional[str] = None) -> Markup:
    """Image figure; `fallback` is a pre-rendered sibling shown when `src` fails."""
    body = f'<img src="{attr(src)}" alt="{attr(alt)}" loading="lazy">'
    if fallback:
        body += fallback
    return Markup(f'<figure class="report-image">{body}</figure>')


def fallback_image(src: str, alt: str) -> str:
    return f'<img class="image-fallback" src="{attr(src)}" alt="{attr(alt)}" loading="lazy" hidden>'


def fallback_note(message: str) -> str:
    return f'<figcaption class="image-fallback" hidden>{text(message)}</figcaption>'


def thumbnail_for(thumbnail: Optional[str], video_id: Optional[str]) -> str:
    if thumbnail and PLACEHOLDER_THUMBNAIL not in thumbnail:
        return thumbnail
    if video_id:
        return YOUTUBE_THUMBNAIL.format(video_id=video_id)
    return YOUTUBE_DEFAULT_THUMBNAIL
