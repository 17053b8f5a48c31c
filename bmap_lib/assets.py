# --- bmap_lib/assets.py ---
"""
The read-only SVG asset library: background textures keyed by terrain id,
the shared water filter and the scenery fragments.

Asset files are parsed once, when the registry is built, into a small
immutable element tree. Rendering only ever walks and re-serializes that
tree; no markup is re-parsed per request.
"""
import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from bmap_lib.errors import AssetError
from bmap_lib.rendering.constants import SVG_NS, XLINK_NS

log = logging.getLogger("bmap.assets")

ASSETS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "resources")

# Registration order defines the terrain ids (0, 1, 2, ...) of the textures that exist.
KNOWN_TEXTURES = ("default", "brick", "grass", "grass2", "earth", "stone", "sand", "rubble")
FLAT_TEXTURES = frozenset({"default", "earth"})
FALLBACK_TEXTURE = "earth"

DEFAULT_TEXTURE_COLORS = {
    "default": "#228B22",
    "grass": "#90EE90",
    "grass2": "#2e7d32",
    "earth": "#8B4513",
    "stone": "#696969",
    "sand": "#F4A460",
    "brick": "#a84600",
}
UNKNOWN_COLOR = "#808080"
LEGACY_COLORS = {0: "#8B4513", 1: "#90EE90", 2: "#8B4513", 3: "#696969", 4: "#F4A460"}
EARTH_COLOR = "#8B4513"

DRAWABLE_TAGS = frozenset(
    {"rect", "path", "circle", "ellipse", "polygon", "polyline", "line", "g", "use", "image", "text"}
)
_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
_ATTR_ENTITIES = {"'": "&apos;"}


@dataclass(frozen=True)
class SvgElement:
    """One parsed SVG element: tag, ordered attributes, children and text."""

    tag: str
    attrs: Tuple[Tuple[str, str], ...] = ()
    children: Tuple["SvgElement", ...] = ()
    text: str = ""
    tail: str = ""

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    def with_attrs(self, updates: Mapping[str, Optional[str]]) -> "SvgElement":
        """Returns a copy with attributes replaced in place, removed (None) or appended."""
        new_attrs = []
        for key, value in self.attrs:
            if key in updates:
                if updates[key] is not None:
                    new_attrs.append((key, updates[key]))
            else:
                new_attrs.append((key, value))
        existing = {key for key, _ in self.attrs}
        new_attrs.extend((k, v) for k, v in updates.items() if k not in existing and v is not None)
        return replace(self, attrs=tuple(new_attrs))

    def iter(self) -> Iterator["SvgElement"]:
        """Yields this element and all descendants in document order."""
        yield self
        for child in self.children:
            yield from child.iter()

    def to_svg(self) -> str:
        attrs = "".join(f" {k}='{escape(v, _ATTR_ENTITIES)}'" for k, v in self.attrs)
        tail = escape(self.tail) if self.tail else ""
        if not self.children and not self.text:
            return f"<{self.tag}{attrs}/>{tail}"
        inner = escape(self.text) if self.text else ""
        inner += "".join(child.to_svg() for child in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>{tail}"


def _local_name(qualified: str) -> Optional[str]:
    """Maps '{ns}name' to the name used in our output; None for foreign namespaces."""
    if not qualified.startswith("{"):
        return qualified
    ns, _, local = qualified[1:].partition("}")
    if ns == SVG_NS:
        return local
    if ns == XLINK_NS:
        return f"xlink:{local}"
    return None


def _convert(node: ET.Element) -> Optional[SvgElement]:
    tag = _local_name(node.tag) if isinstance(node.tag, str) else None
    if tag is None:
        return None
    attrs = []
    for key, value in node.attrib.items():
        name = _local_name(key)
        if name is not None:
            attrs.append((name, value))
    children = tuple(c for c in (_convert(child) for child in node) if c is not None)
    text = (node.text or "").strip() if tag not in ("text", "tspan", "style") else (node.text or "")
    return SvgElement(
        tag=tag,
        attrs=tuple(attrs),
        children=children,
        text=text,
        tail=(node.tail or "").strip(),
    )


def parse_svg(markup: str) -> SvgElement:
    """Parses SVG markup into an SvgElement tree."""
    try:
        root = ET.fromstring(markup)
    except ET.ParseError as e:
        raise AssetError(f"Invalid SVG markup: {e}") from e
    element = _convert(root)
    if element is None or element.tag != "svg":
        raise AssetError("Asset root element is not <svg>")
    return element


@dataclass(frozen=True)
class SvgAsset:
    """A parsed asset file split into its shared definitions and its drawing."""

    name: str
    root: SvgElement
    defs: Tuple[SvgElement, ...] = ()
    body: Tuple[SvgElement, ...] = ()
    color: Optional[str] = None

    @classmethod
    def from_markup(cls, name: str, markup: str) -> "SvgAsset":
        root = parse_svg(markup)
        defs: List[SvgElement] = []
        body: List[SvgElement] = []
        for child in root.children:
            if child.tag == "defs":
                defs.extend(child.children)
            else:
                body.append(child)
        color = None
        for element in root.iter():
            fill = element.get("fill")
            if fill and _HEX_COLOR.match(fill):
                color = fill
                break
        return cls(name=name, root=root, defs=tuple(defs), body=tuple(body), color=color)

    @property
    def drawables(self) -> Tuple[SvgElement, ...]:
        return tuple(el for el in self.body if el.tag in DRAWABLE_TAGS)

    def defs_markup(self) -> str:
        return "".join(el.to_svg() for el in self.defs)

    def inner_markup(self) -> str:
        """Everything inside the root element, definitions included."""
        return "".join(el.to_svg() for el in self.root.children)


@dataclass(frozen=True)
class TextureInfo:
    id: int
    name: str
    display_name: str
    color: str

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "displayName": self.display_name, "color": self.color}


def _load_asset(name: str, path: str) -> Optional[SvgAsset]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return SvgAsset.from_markup(name, f.read())
    except (IOError, AssetError) as e:
        log.warning("Failed to load asset '%s' from %s: %s", name, path, e)
        return None


class TextureRegistry:
    """
    Immutable lookup from terrain id to texture name, colour and parsed SVG,
    plus the non-texture fragments (water filter, scenery). Built once at
    startup and shared read-only between requests.
    """

    def __init__(
        self,
        textures: Sequence[TextureInfo],
        assets: Mapping[str, SvgAsset],
        fragments: Mapping[str, SvgAsset],
    ):
        self._textures = tuple(sorted(textures, key=lambda t: t.id))
        self._by_id = MappingProxyType({t.id: t for t in self._textures})
        self._by_name = MappingProxyType({t.name: t for t in self._textures})
        self._assets = MappingProxyType(dict(assets))
        self._fragments = MappingProxyType(dict(fragments))

    @classmethod
    def load(cls, assets_path: str = ASSETS_DIR) -> "TextureRegistry":
        """Discovers the known textures and fragments below 'assets_path'."""
        texture_dir = os.path.join(assets_path, "texture")
        textures: List[TextureInfo] = []
        assets: Dict[str, SvgAsset] = {}

        for name in KNOWN_TEXTURES:
            path = os.path.join(texture_dir, f"{name}.svg")
            if not os.path.exists(path):
                log.debug("Texture %s not found at %s", name, path)
                continue
            texture_id = len(textures)
            asset = _load_asset(name, path)
            color = (asset.color if asset else None) or DEFAULT_TEXTURE_COLORS.get(
                name, UNKNOWN_COLOR
            )
            textures.append(TextureInfo(texture_id, name, name[:1].upper() + name[1:], color))
            if asset is not None:
                assets[name] = asset
            log.debug("Registered texture: %s (ID: %d)", name, texture_id)

        fragments: Dict[str, SvgAsset] = {}
        water = _load_asset("water", os.path.join(assets_path, "water.svg"))
        if water is not None:
            fragments["water"] = water
        scenery_dir = os.path.join(assets_path, "scenery")
        if os.path.isdir(scenery_dir):
            for filename in sorted(os.listdir(scenery_dir)):
                if filename.endswith(".svg"):
                    stem = filename[: -len(".svg")]
                    asset = _load_asset(stem, os.path.join(scenery_dir, filename))
                    if asset is not None:
                        fragments[stem] = asset

        log.info(
            "Initialized %d background textures: %s",
            len(textures),
            {t.id: t.name for t in textures},
        )
        return cls(textures, assets, fragments)

    def texture_name(self, texture_id: int) -> str:
        info = self._by_id.get(texture_id)
        return info.name if info else FALLBACK_TEXTURE

    def texture_id(self, name: str) -> Optional[int]:
        info = self._by_name.get(name)
        return info.id if info else None

    def is_valid_id(self, texture_id: int) -> bool:
        return texture_id in self._by_id

    def is_flat(self, name: str) -> bool:
        """Default and earth terrain are drawn as plain coloured cells."""
        return name in FLAT_TEXTURES

    def color(self, texture_id: int) -> str:
        info = self._by_id.get(texture_id)
        if info is not None:
            return info.color
        return LEGACY_COLORS.get(texture_id, EARTH_COLOR)

    def earth_color(self) -> str:
        earth_id = self.texture_id("earth")
        return self.color(earth_id) if earth_id is not None else EARTH_COLOR

    def filter_id(self, texture_id: int) -> str:
        name = self.texture_name(texture_id)
        return "" if name == "default" else f"#{name}-filter"

    def texture_asset(self, name: str) -> Optional[SvgAsset]:
        if name == "default":
            return None
        return self._assets.get(name)

    def fragment(self, name: str) -> Optional[SvgAsset]:
        return self._fragments.get(name)

    def all_textures(self) -> List[TextureInfo]:
        return list(self._textures)
