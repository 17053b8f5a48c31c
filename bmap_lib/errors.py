class BattlemapError(Exception):
    """Base class for all errors raised while decoding or rendering a battlemap."""


class PayloadDecodeError(BattlemapError):
    """The 'data' parameter could not be turned into bytes (empty or bad Base64)."""


class AssetError(BattlemapError):
    """An SVG asset in the bundle could not be parsed."""


class GridSizeError(BattlemapError):
    """The requested grid has more cells than the renderer accepts."""
