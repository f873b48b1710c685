"""Translate generic style/template tags into provider-native prompts."""

from __future__ import annotations

from dataclasses import dataclass

STYLE_PROMPTS: dict[str, str] = {
    "realistic": "realistic, photorealistic, high quality",
    "anime": "anime style, vibrant colors, stylized illustration",
    "vintage": "vintage, classic, timeless photography",
}

TEMPLATE_PROMPTS: dict[str, str] = {
    "christmas": "Christmas theme, holiday celebration, cozy atmosphere",
    "birthday": "birthday party, celebration, festive",
    "wedding": "wedding ceremony, elegant, romantic",
    "graduation": "graduation ceremony, achievement, celebration",
    "reunion": "family reunion, gathering, joyful",
}

DEFAULT_NEGATIVE_PROMPT = "blurry, distorted faces, extra limbs, low quality, text, watermark"


@dataclass(frozen=True, slots=True)
class RunwareTemplate:
    """Model and prompt configuration for one (template, style) pair."""

    id: str
    model_id: str
    base_prompt: str
    negative_prompt: str
    width: int
    height: int


RUNWARE_TEMPLATES: dict[tuple[str, str], RunwareTemplate] = {
    ("christmas", "realistic"): RunwareTemplate(
        id="christmas_realistic_v1",
        model_id="runware:101@1",
        base_prompt=(
            "cozy family Christmas portrait in living room, warm lighting, smiling "
            "family, high detail, 4k, DSLR, bokeh background"
        ),
        negative_prompt=DEFAULT_NEGATIVE_PROMPT,
        width=1024,
        height=1024,
    ),
}


def build_prompt(style: str, template: str) -> str:
    """Compose the free-text prompt used by prompt-driven providers."""

    style_prompt = STYLE_PROMPTS.get(style, style)
    template_prompt = TEMPLATE_PROMPTS.get(template, template)
    return (
        f"Create a beautiful family mosaic photo with {style_prompt} style, "
        f"{template_prompt} theme. High quality, professional photography."
    )


def resolve_runware_template(template: str, style: str) -> RunwareTemplate | None:
    """Return the Runware configuration for the pair, or ``None`` if unmapped."""

    return RUNWARE_TEMPLATES.get((template, style))


__all__ = [
    "DEFAULT_NEGATIVE_PROMPT",
    "RUNWARE_TEMPLATES",
    "RunwareTemplate",
    "build_prompt",
    "resolve_runware_template",
]
