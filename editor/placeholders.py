"""
Image placeholders in generated markup.

Generated documents mark where images belong with a fixed-shape tag:

    <img data-ai-generate="true" data-section="..." alt="..." />

Matching is done on that exact attribute shape, never by parsing, so each
placeholder string can later be found and replaced verbatim.
"""

import asyncio
import html
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from .markup import escape_attr

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(
    r'<img\s+data-ai-generate="true"\s+data-section="([^"]*)"\s+alt="([^"]*)"\s*/?>'
)


@dataclass(frozen=True)
class Placeholder:
    markup: str
    section: str
    alt: str


@dataclass(frozen=True)
class ResolvedImage:
    placeholder: str
    image_url: str
    alt: str


ImageFactory = Callable[[Placeholder], Awaitable[ResolvedImage]]


def find_placeholders(markup: str) -> List[Placeholder]:
    return [
        Placeholder(match.group(0), match.group(1), match.group(2))
        for match in PLACEHOLDER_PATTERN.finditer(markup or "")
    ]


def image_tag(url: str, alt: str) -> str:
    # alt may be raw (network payload) or already entity-encoded (placeholder markup)
    return f'<img src="{escape_attr(url)}" alt="{escape_attr(html.unescape(alt or ""))}" />'


def substitute_placeholders(markup: str, images: Iterable[ResolvedImage]) -> Tuple[str, int]:
    """
    Replace each placeholder with a real image tag.

    Each placeholder string is replaced once; images whose placeholder is not
    present are ignored. Returns the new markup and how many were replaced.
    """
    replaced = 0
    for image in images:
        if not image.placeholder or not image.image_url or image.placeholder not in markup:
            continue
        markup = markup.replace(image.placeholder, image_tag(image.image_url, image.alt), 1)
        replaced += 1
    return markup, replaced


async def resolve_placeholders(
    placeholders: Iterable[Placeholder],
    factory: ImageFactory,
) -> List[ResolvedImage]:
    """Run ``factory`` for every placeholder concurrently; failed placeholders are skipped."""
    pending = list(placeholders)
    if not pending:
        return []

    results = await asyncio.gather(*(factory(p) for p in pending), return_exceptions=True)

    resolved: List[ResolvedImage] = []
    for placeholder, result in zip(pending, results):
        if isinstance(result, BaseException):
            logger.warning("Image generation failed for section %r: %s", placeholder.section, result)
            continue
        if result is not None:
            resolved.append(result)
    return resolved


def images_from_payload(payload: Iterable[Dict[str, Optional[str]]]) -> List[ResolvedImage]:
    """Build ResolvedImage values from ``{"placeholder", "imageUrl", "alt"}`` records."""
    images = []
    for item in payload or ():
        placeholder = item.get("placeholder")
        url = item.get("imageUrl") or item.get("image_url")
        if placeholder and url:
            images.append(ResolvedImage(placeholder, url, item.get("alt") or ""))
    return images
