from __future__ import annotations

import re
from typing import Optional

import structlog
from structlog.contextvars import bound_contextvars

from .exceptions import SynthesisBackendError
from .extraction import RateLimiter
from .llm import LLMClient
from .schemas import PLACEHOLDER, SynthesisResult

logger = structlog.get_logger(__name__)

REJECTION_PHRASE = "could not be generated"

_RULE_RE = re.compile(r"-{3,}")
_LINK_RE = re.compile(r"\[([^\]]+)\]\s*\(([^)]+)\)")
_BLANK_LINES_RE = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")

PROMPT_TEMPLATE = """
You are a professional rewriting assistant with deep expertise in academic writing and editorial content. Your task is to rewrite the provided content about "{topic}" into a **single clean, logically structured paragraph** using **formal, article-grade English** and **Markdown-formatted inline hyperlinks**.

### REWRITING RULES:

1. **Markdown Hyperlinks Only**
   - Convert all raw URLs, malformed links, and footnote-style references into Markdown inline hyperlinks embedded within clean sentence structure.
   - Example: "...as seen in the [Wikipedia entry on theism](https://example.com)".

2. **No Redundancy or Noise**
   - Do not include failure messages, footnote references, deleted posts, usernames, or platform rules and policies.

3. **Single, Cohesive Paragraph**
   - Always produce exactly one full paragraph with no section dividers, headings, footnotes, or broken sentences.

4. **Descriptive Link Anchors**
   - Anchor text must describe the link target. Never use "this article", "here" or "resource" as anchor text.

5. **Limit and Vary Link Usage**
   - Include each link once and distribute links naturally through the paragraph.

6. **Fill Gaps with Accurate Context**
   - If source content is missing or incomplete, write an accurate academic statement about the topic instead. Never invent citations or insert placeholders like "(link)".

7. **No Technical Metadata**
   - Do not mention site policies, support pages, user agreements, or CAPTCHA explanations.

8. **Clean Grammar and Flow**
   - Sentences must be fluid and professional, with correct capitalization and punctuation.

9. **No Code Blocks or Tags**
   - No ```markdown or ```html fences, comments, or extraneous information.

10. **Concise yet Detailed**
   - Cover the key points without unnecessary verbosity, in a formal academic tone.

### SOURCE CONTENT:
{content}
"""


def build_prompt(topic: str, content: str) -> str:
    return PROMPT_TEMPLATE.format(topic=topic, content=content)


def postprocess(text: str) -> str:
    """
    Normalize generated Markdown.

    Drops horizontal-rule runs, joins ``[anchor]`` and ``(url)`` split across
    whitespace into one inline link and squeezes blank-line runs to a single
    blank line. Applying it to its own output changes nothing.
    """
    text = _RULE_RE.sub("", text)
    text = _LINK_RE.sub(r"[\1](\2)", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def is_acceptable(text: str) -> bool:
    return bool(text) and REJECTION_PHRASE not in text.lower()


class Synthesizer:
    """
    Turns aggregated source text into one paragraph via a fallback chain.

    Variants are tried in order and each gets exactly one request. The first
    accepted result wins; exhausting the chain returns the placeholder, it is
    never raised.
    """

    def __init__(self, variants: list[LLMClient], pacer: Optional[RateLimiter] = None) -> None:
        self.variants = variants
        self.pacer = pacer

    async def _attempt(self, variant: LLMClient, prompt: str) -> str:
        if self.pacer is not None:
            await self.pacer.wait("generation")
        try:
            raw = await variant.complete_text(prompt)
        except Exception as exc:  # noqa: BLE001
            raise SynthesisBackendError(f"{type(exc).__name__}: {exc}", variant.label) from exc
        text = postprocess(raw or "")
        if not is_acceptable(text):
            raise SynthesisBackendError("Empty or invalid response", variant.label)
        return text

    async def synthesize(self, topic: str, content: str) -> SynthesisResult:
        prompt = build_prompt(topic, content)
        for variant in self.variants:
            with bound_contextvars(variant=variant.label, model=variant.model):
                try:
                    text = await self._attempt(variant, prompt)
                except SynthesisBackendError as exc:
                    logger.warning("synthesis_variant_failed", error=exc.message)
                    continue
                logger.info("synthesis_succeeded", chars=len(text))
                return SynthesisResult(text=text, ok=True, variant=variant.label)
        logger.error("synthesis_exhausted", variants=len(self.variants))
        return SynthesisResult(text=PLACEHOLDER, ok=False)
