"""
Caption writer protocol.

Defines the interface for caption writers so a model-backed writer can be
swapped in without changing the gated generation flow.
"""
from typing import List, Protocol

from socialgen.features.generations.prompts import DEFAULT_HOOK, HOOKS, PLATFORM_FORMATTING
from socialgen.models.generation import CaptionRequest


class CaptionWriter(Protocol):
    """Turns a built prompt plus the request into caption text."""

    def write(self, prompt: str, request: CaptionRequest) -> str:
        ...


def _clamp(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)].rstrip() + "..."


def normalize_hashtag(tag: str) -> str:
    cleaned = tag.strip().lstrip("#").replace(" ", "")
    return f"#{cleaned}" if cleaned else ""


def normalize_mention(handle: str) -> str:
    cleaned = handle.strip().lstrip("@").replace(" ", "")
    return f"@{cleaned}" if cleaned else ""


class TemplateCaptionWriter:
    """Deterministic writer: same request, same caption."""

    def write(self, prompt: str, request: CaptionRequest) -> str:
        fmt = PLATFORM_FORMATTING[request.platform]
        hook = HOOKS.get(request.tone.lower(), DEFAULT_HOOK)

        blocks: List[str] = [hook]
        if request.context and request.context.strip():
            blocks.append(request.context.strip())
        mentions = " ".join(m for m in (normalize_mention(h) for h in request.mentions) if m)
        if mentions:
            blocks.append(mentions)
        if request.platform == "facebook":
            blocks.append("What do you think?")

        tags = " ".join(t for t in (normalize_hashtag(h) for h in request.hashtags) if t)
        separator = "\n" if request.platform == "twitter" else "\n\n"
        body = separator.join(blocks)
        if not tags:
            return _clamp(body, fmt["max_chars"])

        # Hashtags always survive truncation; the body gives way
        room = fmt["max_chars"] - len(tags) - len(separator)
        if room <= 0:
            return _clamp(tags, fmt["max_chars"])
        return f"{_clamp(body, room)}{separator}{tags}"
