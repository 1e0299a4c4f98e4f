"""Instruction template sent to the external annotation model."""

import json
from typing import Any

SYSTEM_PROMPT = """\
You generate keyboard and assistive-technology focus order annotations for {platform} UI.

Rules:
- Scope strictly to the provided frame trees. Use only node ids that appear in them.
- Return only focusable elements (buttons, links, text inputs, tabs, toggles).
- Follow reading order: top-to-bottom, then left-to-right, unless the layout clearly
  groups controls differently.
- A node without children is a complete control. Do not split it into parts.
- When a node name is generic, use its "inference" hint and "parentName" to write a
  label that tells repeated controls apart.
- Roles must be one of: button, link, textbox, tab, checkbox, switch, combobox.

Return JSON only, no prose:
{{"annotations": [{{"frameId": "<frame id>", "order": [{{"id": "<node id>", "label": "...", "role": "..."}}], "notes": "..."}}]}}
"""

USER_PROMPT = """\
Platform: {platform}
Frames (id, name, type, role, focusable, parentName, inference, children):
{frames}
"""

HINT_PROMPT = "Designer's note: {prompt}"


def build_messages(
    *,
    platform: str,
    frames: list[dict[str, Any]],
    image: str | None = None,
    prompt: str | None = None,
) -> list[dict[str, Any]]:
    """Render chat messages for one annotation request."""
    text = USER_PROMPT.format(platform=platform, frames=json.dumps(frames, ensure_ascii=False))
    if prompt:
        text += "\n" + HINT_PROMPT.format(prompt=prompt)

    user_content: str | list[dict[str, Any]] = text
    if image:
        user_content = [
            {"type": "text", "text": text},
            {"type": "image_url", "image_url": {"url": image, "detail": "high"}},
        ]
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(platform=platform)},
        {"role": "user", "content": user_content},
    ]
