# --- bmap_lib/rendering/tokens.py ---
import logging
from typing import List, Optional, Sequence
from urllib.parse import quote_plus

from bmap_lib import schema
from .constants import DEFAULT_TOKEN_SIZE
from .geometry import fmt

log = logging.getLogger("bmap.render")

_ATTR_ENTITIES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ("'", "&#39;"),
    ('"', "&quot;"),
)


def escape_attribute(value: str) -> str:
    for char, entity in _ATTR_ENTITIES:
        value = value.replace(char, entity)
    return value


class TokenPlacer:
    """Places tokens as images (environment objects, avatars) or plain circles."""

    def __init__(self, base_url: str, styles: dict):
        self.base_url = base_url.rstrip("/")
        self.styles = styles

    def env_object_url(self, token: schema.Token) -> str:
        """Lookup URL of the env-object endpoint; colour and size only when set."""
        url = f"{self.base_url}/env-object?type={quote_plus(token.env_type)}"
        if token.env_color and token.env_color.strip():
            url += f"&color={quote_plus(token.env_color)}"
        if token.env_size is not None:
            url += f"&size={token.env_size}"
        return url

    def image_url(self, token: schema.Token) -> Optional[str]:
        if token.is_environment_object:
            return self.env_object_url(token)
        if token.avatar_url and token.avatar_url.strip():
            return token.avatar_url.strip()
        return None

    def render_token(self, token: schema.Token) -> Optional[str]:
        if token.x is None or token.y is None:
            log.debug("Skipping token without position: %s", token)
            return None

        default_size = self.styles.get("token_size", DEFAULT_TOKEN_SIZE)
        url = self.image_url(token)
        if url:
            size = default_size
            if token.is_environment_object and token.env_size is not None:
                size = token.env_size
            half = size / 2
            return (
                f"<image x='{fmt(token.x - half)}' y='{fmt(token.y - half)}' "
                f"width='{size}' height='{size}' href='{escape_attribute(url)}' "
                "preserveAspectRatio='xMidYMid slice'/>"
            )

        fill = token.color or self.styles.get("token_color", "#808080")
        stroke = token.border_color or self.styles.get("token_border_color", "#000000")
        return (
            f"<circle cx='{fmt(token.x)}' cy='{fmt(token.y)}' r='{fmt(default_size / 2)}' "
            f"fill='{escape_attribute(fill)}' stroke='{escape_attribute(stroke)}' stroke-width='2'/>"
        )

    def render(self, tokens: Sequence[schema.Token]) -> List[str]:
        """Renders every positioned token in order."""
        elements = [e for e in (self.render_token(t) for t in tokens) if e is not None]
        log.debug("Rendered %d of %d tokens", len(elements), len(tokens))
        return elements
