"""
Presentation helpers for brand divisions: theme colours and the showcase carousel.
"""
from __future__ import annotations

from typing import Any

from app.kinygroup.constants import DEFAULT_BRAND_COLOR

THEME_KEYS = ("primary", "bg", "bgSolid", "border", "text", "accent", "hover", "gradient")

_CSS_VARS = {
    "primary": "--theme-primary",
    "bg": "--theme-bg",
    "bgSolid": "--theme-bg-solid",
    "border": "--theme-border",
    "text": "--theme-text",
    "accent": "--theme-accent",
    "hover": "--theme-hover",
    "gradient": "--theme-gradient",
}


def generate_theme_from_color(color: str) -> dict[str, str]:
    """Derive a full theme from one hex colour using alpha suffixes."""
    return {
        "primary": color,
        "bg": f"{color}1A",
        "bgSolid": f"{color}0D",
        "border": f"{color}33",
        "text": color,
        "accent": color,
        "hover": color,
        "gradient": f"linear-gradient(135deg, {color} 0%, {color}CC 100%)",
    }


def theme_colors(division: Any) -> dict[str, str]:
    """Stored theme values win; anything missing is derived from ``color``."""
    stored = getattr(division, "theme", None) or {}
    base = getattr(division, "color", None) or DEFAULT_BRAND_COLOR
    fallback = generate_theme_from_color(base)
    return {k: (stored.get(k) or fallback[k]) for k in THEME_KEYS}


def theme_css_variables(division: Any) -> str:
    """Inline ``style`` value exposing the theme as CSS custom properties."""
    theme = theme_colors(division)
    return "; ".join(f"{_CSS_VARS[k]}: {theme[k]}" for k in THEME_KEYS)


# ---------- Carousel ----------
def wrap_index(index: int, count: int) -> int:
    if count <= 0:
        return 0
    return index % count


def carousel_slide_style(index: int, active_index: int, count: int) -> dict[str, Any]:
    """
    Position of one slide in the brand showcase, relative to the active slide.

    The active slide sits centred; its neighbours step out to either side,
    smaller and dimmer; anything further away is parked off-screen.
    """
    diff = (index - active_index + count) % count if count else 0
    style: dict[str, Any] = {"top": "50%"}
    if diff == 0:
        style.update(
            left="50%",
            transform="translateX(-50%) scale(1) translateY(-50%)",
            z_index=50,
            opacity=1,
            filter="brightness(1.1) blur(0px)",
        )
    elif diff == 1:
        style.update(
            left="72%",
            transform="translateX(0%) scale(0.85) translateY(-50%)",
            z_index=40,
            opacity=0.7,
            filter="blur(1px)",
        )
    elif diff == count - 1:
        style.update(
            left="28%",
            transform="translateX(-100%) scale(0.85) translateY(-50%)",
            z_index=40,
            opacity=0.7,
            filter="blur(1px)",
        )
    elif diff == 2:
        style.update(
            left="88%",
            transform="translateX(0%) scale(0.7) translateY(-50%)",
            z_index=30,
            opacity=0.4,
            filter="blur(2px)",
        )
    elif diff == count - 2:
        style.update(
            left="12%",
            transform="translateX(-100%) scale(0.7) translateY(-50%)",
            z_index=30,
            opacity=0.4,
            filter="blur(2px)",
        )
    else:
        style.update(
            left="-25%" if diff > count / 2 else "125%",
            transform="translateX(-50%) scale(0.5) translateY(-50%)",
            z_index=10,
            opacity=0,
            filter="blur(3px)",
        )
    return style


def carousel_style_attr(style: dict[str, Any]) -> str:
    return (
        f"left: {style['left']}; top: {style['top']}; transform: {style['transform']}; "
        f"z-index: {style['z_index']}; opacity: {style['opacity']}; filter: {style['filter']}"
    )
