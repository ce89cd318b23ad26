"""
자막 스타일 프리셋

템플릿을 고르면 템플릿에 적힌 값만 덮어쓰고, 나머지 스타일은 유지.
"""

from __future__ import annotations

from typing import Dict, List

from backend.app.schemas import VideoStyle

FONT_FAMILIES: List[str] = [
    "Inter",
    "Montserrat",
    "Roboto",
    "Open Sans",
    "Playfair Display",
    "Space Grotesk",
    "Plus Jakarta Sans",
]

CAPTION_TEMPLATES: List[Dict] = [
    {
        "id": "beast",
        "name": "TITAN BOLD",
        "code": "TB",
        "style": {
            "fontFamily": "Montserrat",
            "fontSize": 52,
            "fontWeight": "900",
            "color": "#ffffff",
            "highlightColor": "#facc15",
            "highlightStyle": "outline",
            "layout": "word",
            "animation": "pop",
            "shadow": True,
            "stroke": True,
            "strokeColor": "#000000",
            "strokeWidth": 3,
            "position": "middle",
        },
    },
    {
        "id": "minimal",
        "name": "CLEAN CREATOR",
        "code": "CC",
        "style": {
            "fontFamily": "Inter",
            "fontSize": 32,
            "fontWeight": "600",
            "color": "#ffffff",
            "highlightColor": "#ffffff",
            "highlightStyle": "underline",
            "layout": "double",
            "animation": "fade",
            "shadow": False,
            "stroke": False,
            "position": "bottom",
        },
    },
    {
        "id": "podcast",
        "name": "VOICE OVER",
        "code": "VO",
        "style": {
            "fontFamily": "Space Grotesk",
            "fontSize": 40,
            "fontWeight": "700",
            "color": "#ffffff",
            "highlightColor": "#a855f7",
            "highlightStyle": "background",
            "layout": "phrase",
            "animation": "slide",
            "shadow": True,
            "stroke": False,
            "position": "bottom",
        },
    },
    {
        "id": "neon",
        "name": "VIBE GLOW",
        "code": "VG",
        "style": {
            "fontFamily": "Montserrat",
            "fontSize": 48,
            "fontWeight": "900",
            "color": "#ffffff",
            "highlightColor": "#ec4899",
            "highlightStyle": "glow",
            "layout": "word",
            "animation": "bounce",
            "shadow": False,
            "stroke": True,
            "strokeColor": "#000000",
            "strokeWidth": 1,
            "position": "middle",
        },
    },
]


def get_template(template_id: str) -> Dict:
    for t in CAPTION_TEMPLATES:
        if t["id"] == template_id:
            return t
    raise KeyError(template_id)


def apply_template(style: VideoStyle, template_id: str) -> VideoStyle:
    t = get_template(template_id)
    merged = style.model_dump(by_alias=True)
    merged.update(t["style"])
    merged["template"] = t["id"]
    return VideoStyle.model_validate(merged)
