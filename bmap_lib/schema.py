from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bmap_lib.rendering.constants import CELL_SIZE, DEFAULT_CANVAS_PX, DEFAULT_GRID_CELLS

# Scenery type indices as they appear on the wire.
SCENERY_TYPES = ("tree", "stone", "house")


@dataclass
class GridDescriptor:
    """Grid size in cells, with the legacy pixel size used when the grid is absent."""

    grid_width: Optional[int] = DEFAULT_GRID_CELLS
    grid_height: Optional[int] = DEFAULT_GRID_CELLS
    canvas_width: Optional[int] = None
    canvas_height: Optional[int] = None

    @property
    def pixel_width(self) -> int:
        if self.grid_width is not None and self.grid_width > 0:
            return self.grid_width * CELL_SIZE
        if self.canvas_width is not None and self.canvas_width > 0:
            return self.canvas_width
        return DEFAULT_CANVAS_PX

    @property
    def pixel_height(self) -> int:
        if self.grid_height is not None and self.grid_height > 0:
            return self.grid_height * CELL_SIZE
        if self.canvas_height is not None and self.canvas_height > 0:
            return self.canvas_height
        return DEFAULT_CANVAS_PX

    @property
    def total_cells(self) -> int:
        """Number of cells the packed arrays describe; 0 when the grid is unknown."""
        if self.grid_width is None or self.grid_height is None:
            return 0
        return max(0, self.grid_width * self.grid_height)

    @property
    def columns(self) -> int:
        """Column count used while rendering (falls back to the default grid)."""
        if self.grid_width is not None and self.grid_width > 0:
            return self.grid_width
        return DEFAULT_GRID_CELLS

    @property
    def rows(self) -> int:
        if self.grid_height is not None and self.grid_height > 0:
            return self.grid_height
        return DEFAULT_GRID_CELLS


@dataclass
class Token:
    """A token placed on the map, either a character/marker or an environment object."""

    x: Optional[float] = None
    y: Optional[float] = None
    id: Optional[int] = None
    token_id: Optional[int] = None
    gm_only: bool = False
    color: Optional[str] = None
    avatar_url: Optional[str] = None
    border_color: Optional[str] = None
    label: Optional[str] = None
    player_name: Optional[str] = None
    character_id: Optional[int] = None
    env_type: Optional[str] = None  # e.g. "tree", "stone", "house"
    env_color: Optional[str] = None
    env_size: Optional[int] = None

    @property
    def is_environment_object(self) -> bool:
        return bool(self.env_type and self.env_type.strip())


@dataclass
class SceneryRecord:
    """A decorative object decoded from the packed 'eob' stream."""

    type_index: int
    x: int
    y: int
    flags: int = 0
    color: Optional[str] = None  # "#rrggbb"
    size: Optional[int] = None

    @property
    def type_name(self) -> str:
        if 0 <= self.type_index < len(SCENERY_TYPES):
            return SCENERY_TYPES[self.type_index]
        return SCENERY_TYPES[0]

    def to_token(self) -> Token:
        return Token(
            x=float(self.x),
            y=float(self.y),
            gm_only=False,
            env_type=self.type_name,
            env_color=self.color,
            env_size=self.size,
        )


@dataclass
class BattlemapRequest:
    """The decoded content of a battlemap image request."""

    grid: GridDescriptor
    terrain: Optional[List[int]] = None
    water: Optional[List[bool]] = None
    tokens: List[Token] = field(default_factory=list)
    scenery: List[SceneryRecord] = field(default_factory=list)

    def all_tokens(self) -> List[Token]:
        """Regular tokens in request order, followed by the decoded scenery."""
        return list(self.tokens) + [record.to_token() for record in self.scenery]


# Wire tag -> Token attribute
_TOKEN_FIELDS = {
    "id": "id",
    "tid": "token_id",
    "x": "x",
    "y": "y",
    "gm": "gm_only",
    "color": "color",
    "url": "avatar_url",
    "bc": "border_color",
    "name": "label",
    "playerName": "player_name",
    "characterId": "character_id",
    "et": "env_type",
    "ec": "env_color",
    "es": "env_size",
}
_FLOAT_FIELDS = {"x", "y"}
_INT_FIELDS = {"id", "token_id", "character_id", "env_size"}


def _deserialize_token(token_data: Dict[str, Any]) -> Token:
    kwargs: Dict[str, Any] = {}
    for tag, attr in _TOKEN_FIELDS.items():
        value = token_data.get(tag)
        if value is None:
            continue
        if attr in _FLOAT_FIELDS:
            value = float(value)
        elif attr in _INT_FIELDS:
            value = int(value)
        elif attr == "gm_only":
            value = bool(value)
        kwargs[attr] = value
    return Token(**kwargs)


def deserialize_tokens(tokens_data: Optional[List[Dict[str, Any]]]) -> List[Token]:
    """Builds Token objects from the 'ts' array; unknown keys are ignored."""
    if not tokens_data:
        return []
    return [_deserialize_token(t) for t in tokens_data if isinstance(t, dict)]


def deserialize_grid(data: Dict[str, Any]) -> GridDescriptor:
    """Reads 'gw'/'gh' (cells) and 'w'/'h' (legacy pixels)."""

    def _opt_int(key: str, default: Optional[int] = None) -> Optional[int]:
        if key not in data:
            return default
        value = data[key]
        return int(value) if value is not None else None

    return GridDescriptor(
        grid_width=_opt_int("gw", DEFAULT_GRID_CELLS),
        grid_height=_opt_int("gh", DEFAULT_GRID_CELLS),
        canvas_width=_opt_int("w"),
        canvas_height=_opt_int("h"),
    )
