"""
Prompt templates for document generation, selection edits, translation, images,
SEO metadata and keyword research.
"""

import re
from typing import Iterable, List, NamedTuple, Optional

from config import config

HTML_RULES = """
---
HTML OUTPUT RULES (non-negotiable):
- Output ONLY clean HTML. No markdown, no code fences, no explanations.
- NEVER use **asterisks** for bold - use <strong> tags. NEVER use *asterisks* for italic - use <em> tags.
- Use ONLY these HTML elements: h1, h2, h3, h4, p, ul, ol, li, strong, em, a, blockquote, hr, img.
- Do NOT use div, table, span, iframe, or inline style attributes - they will be stripped by the editor.
- For tips/info boxes, use <blockquote>. For data comparisons, use <ul> or <ol>."""

IMAGE_NEGATIVE_RULE = (
    "CRITICAL: The image must contain absolutely NO text, NO words, NO letters, "
    "NO numbers, NO logos, and NO watermarks of any kind."
)


class PromptPair(NamedTuple):
    system: str
    user: str


def build_image_rule(count: int) -> str:
    return (
        f"- Include exactly {count} image placeholders as: "
        '<img data-ai-generate="true" data-section="description of what image should show" '
        'alt="descriptive alt text" />'
    )


def build_brand_context(
    brand_context: Optional[str],
    products: Optional[str] = None,
    tone_of_voice: Optional[str] = None,
    target_audience: Optional[str] = None,
    conditions: Optional[str] = None,
) -> str:
    """
    Merge free-form brand context with structured brand fields and cap its length.

    Returns:
        Context text, at most the configured limit plus a truncation notice
    """
    context = brand_context or "No brand context set"
    fields = [
        ("Products / Services", products),
        ("Tone of Voice", tone_of_voice),
        ("Target Audience", target_audience),
        ("VOP (Conditions)", conditions),
    ]
    extras = "\n\n".join(f"{label}: {value}" for label, value in fields if value)
    if extras:
        context = f"{context}\n\n{extras}"

    limit = config.GENERATION.brand_context_limit
    if len(context) > limit:
        context = context[:limit] + config.GENERATION.brand_context_notice
    return context


def _document_user_message(
    *,
    title: Optional[str],
    topic: str,
    keywords: Iterable[str],
    language: str,
    brand_name: str,
    brand_context: str,
    template_html: str,
    content_type: str,
) -> str:
    parts: List[str] = []
    if title:
        parts.append(f"Title: {title}")
    parts.append(f"Topic: {topic}")
    parts.append(f"Keywords: {', '.join(keywords)}")
    parts.append(f"Language: {config.GENERATION.language_name(language)}")
    parts.append(f"Brand: {brand_name}")
    if brand_context:
        parts.append(f"Brand context: {brand_context}")
    if template_html:
        parts.append(f"\nHTML template structure:\n<template>\n{template_html}\n</template>")
    parts.append(f"\nWrite the complete {content_type} now as clean HTML.")
    return "\n".join(parts)


def build_document_prompt(
    *,
    project_type: str,
    topic: str,
    keywords: Iterable[str],
    language: str,
    brand_name: str,
    brand_context: str,
    template_html: str,
    image_count: int,
    title: Optional[str] = None,
    custom_prompt: Optional[str] = None,
) -> PromptPair:
    """Prompt for a whole blog post or presell page."""
    content_type = "presell page" if project_type == "presell" else "blog post"
    image_rule = build_image_rule(image_count)
    language_name = config.GENERATION.language_name(language)
    user = _document_user_message(
        title=title,
        topic=topic,
        keywords=keywords,
        language=language,
        brand_name=brand_name,
        brand_context=brand_context,
        template_html=template_html,
        content_type=content_type,
    )

    if custom_prompt:
        return PromptPair(f"{custom_prompt}\n{HTML_RULES}\n{image_rule}", user)

    if project_type == "presell":
        system = f"""You are an expert conversion copywriter for {brand_name}. You write persuasive advertorial/presell pages that convert readers into customers while feeling authentic and trustworthy.

Rules:
- Use a listicle format with numbered reasons (like "7 reasons why...")
- Structure: Hook headline, numbered reasons with emotional hooks, product showcase, urgency/scarcity, CTA
- Write as if from a real person sharing their genuine experience (first person)
- Include social proof elements (statistics, testimonial-style content)
- Make it persuasive but authentic, not overly salesy
- Target word count: 800-1500 words
- Write in {language_name}
{HTML_RULES}
{image_rule}"""
    else:
        system = f"""You are an expert SEO content writer for {brand_name}. You write engaging, well-researched blog posts that rank well in search engines while providing genuine value to readers.

Rules:
- Write naturally, weaving keywords in organically, never keyword-stuff
- Place image placeholders at logical positions between sections
- Target word count: 1200-2000 words
- Write in {language_name}
{HTML_RULES}
{image_rule}"""
    return PromptPair(system, user)


def build_edit_selection_prompt(
    selected_html: str,
    instruction: str,
    context_before: str,
    context_after: str,
    brand_name: Optional[str] = None,
) -> PromptPair:
    """Prompt that rewrites one selected fragment while keeping its tag structure."""
    brand = f" for {brand_name}" if brand_name else ""
    system = f"""You are editing a specific section of HTML content{brand}.

CRITICAL RULES:
- Rewrite ONLY the selected HTML according to the instruction
- You MUST preserve the EXACT same HTML tag structure. If the input is <li> elements, output <li> elements. If it's <p> tags, output <p> tags. Do NOT change the wrapping tags.
- Do NOT add new wrapping tags (e.g. don't wrap <li> items in a new <ul>)
- Do NOT remove structural tags
- Output ONLY the rewritten HTML fragment, nothing else, no explanations, no markdown code fences"""

    user = f"""Selected HTML to edit:
{selected_html}

Instruction: {instruction}

Context before (for reference only, do NOT include in output):
{context_before}

Context after (for reference only, do NOT include in output):
{context_after}"""
    return PromptPair(system, user)


def build_continue_writing_prompt(
    last_content: str,
    project_type: str,
    brand_name: Optional[str] = None,
) -> PromptPair:
    brand = f" for {brand_name}" if brand_name else ""
    system = f"""You are continuing to write a {project_type}{brand}.
Continue naturally from where the content left off.
Write 2-3 paragraphs of clean HTML.
Match the existing tone and style.
Output ONLY HTML, no explanations."""
    user = f"""Here is the end of the current content. Continue writing from here:

{last_content}"""
    return PromptPair(system, user)


def build_translation_prompt(
    content_html: str,
    source_language: str,
    target_language: str,
    brand_names: Optional[Iterable[str]] = None,
) -> PromptPair:
    source = config.GENERATION.language_name(source_language)
    target = config.GENERATION.language_name(target_language)
    quoted = ", ".join('"' + name + '"' for name in (brand_names or ()) if name)
    if quoted:
        brand_rule = f"- Brand names {quoted} must NOT be translated"
    else:
        brand_rule = "- Brand names must NOT be translated"
    system = f"""You are a professional translator specializing in marketing and e-commerce content.
Translate content from {source} to {target}.

Rules:
- Preserve ALL HTML tags, attributes, structure, and formatting exactly as-is
- Translate ONLY the visible text content between tags
- Maintain SEO-friendly, natural phrasing in {target}
{brand_rule}
- Product names should remain in their original form unless there's a well-known local equivalent
- Maintain the tone and persuasive style of the original
- Output ONLY the translated HTML, nothing else"""
    return PromptPair(system, content_html)


def build_image_edit_prompt(prompt: str, original_alt: str = "", image_style: Optional[str] = None) -> str:
    context = f" Context: {original_alt}." if original_alt else ""
    style = f" Style: {image_style}." if image_style else ""
    return f"{prompt}.{context}{style} High quality, photorealistic. No text or watermarks."


def build_placeholder_image_prompt(
    section: str,
    alt: str,
    brand_name: Optional[str],
    brand_context: Optional[str],
    image_style: Optional[str],
) -> str:
    brand_description = (brand_context or "")[:200]
    brand_part = f". {brand_description}" if brand_description else ""
    style = image_style or config.GENERATION.default_image_style
    return (
        f"Image for {brand_name or 'the brand'}{brand_part}. Scene: {section}. "
        f"Description: {alt}. Style: {style}. High quality, photorealistic. {IMAGE_NEGATIVE_RULE}"
    )


# =============================================================================
# SEO METADATA AND KEYWORD RESEARCH
# =============================================================================

SEO_CONTENT_PREVIEW_CHARS = 1500

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def markup_to_plain_text(markup: str, limit: Optional[int] = None) -> str:
    """Tags replaced by spaces, whitespace collapsed, optionally cut to ``limit`` chars."""
    text = _WHITESPACE_RE.sub(" ", _TAG_RE.sub(" ", markup or "")).strip()
    return text[:limit] if limit is not None else text


def build_seo_metadata_prompt(
    content_html: str,
    title: str,
    keywords: Iterable[str],
    language: str,
    brand_name: Optional[str] = None,
) -> PromptPair:
    system = f"""You are an SEO specialist. Generate optimized SEO title and meta description for web content.

Rules:
- SEO Title: Max 60 characters. Include the primary keyword near the beginning. Make it compelling and click-worthy.
- SEO Description: 140-155 characters. Summarize the content value proposition. Include 1-2 keywords naturally. End with a call-to-action or benefit.
- Write in {config.GENERATION.language_name(language)}
- Output ONLY valid JSON: {{"seo_title": "...", "seo_description": "..."}}
- No markdown, no code fences, no explanations."""
    brand_line = f"Brand: {brand_name}" if brand_name else ""
    user = f"""Generate SEO title and meta description for this content:

Title: {title}
Target keywords: {', '.join(keywords or ())}
{brand_line}

Content (first {SEO_CONTENT_PREVIEW_CHARS} chars):
{markup_to_plain_text(content_html, SEO_CONTENT_PREVIEW_CHARS)}

Output as JSON: {{"seo_title": "...", "seo_description": "..."}}"""
    return PromptPair(system, user)


def build_keyword_suggestions_prompt(
    brand: Optional[str],
    brand_context: str,
    country: str,
    language: str,
    categories: Optional[str] = None,
    count: Optional[int] = None,
) -> PromptPair:
    language_name = config.GENERATION.language_name(language)
    count = count or config.GENERATION.keyword_suggestion_count
    system = f"""You are an SEO keyword research expert specializing in the {country} market.
You understand search intent and know what keywords drive traffic for e-commerce brands."""
    categories_line = f"Product categories: {categories}" if categories else ""
    subject = f"the {brand} brand" if brand else "this brand"
    user = f"""Suggest {count} keyword ideas for {subject}.

Brand context: {brand_context}
{categories_line}
Target market: {country}
Language: {language_name}

For each keyword, provide:
- The keyword in {language_name}
- Estimated monthly search volume (be realistic)
- Search intent: informational (blog-worthy), commercial (comparison/review), or transactional (buy-intent)
- Brief reasoning for why this keyword is valuable

Output as a JSON array:
[{{"keyword": "...", "estimated_volume": number, "intent": "informational|commercial|transactional", "reasoning": "..."}}]

Output ONLY the JSON array - no explanations or code fences."""
    return PromptPair(system, user)
