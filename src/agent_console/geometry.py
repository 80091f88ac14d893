"""Map pointer positions on a letterboxed frame back to browser coordinates."""

from __future__ import annotations

import base64
import binascii
import io
import math
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

DEFAULT_FRAME_WIDTH = 1280
DEFAULT_FRAME_HEIGHT = 800


@dataclass(slots=True, frozen=True)
class ContainFit:
    """Placement of a native-size frame inside a display box under "contain" scaling."""

    scale: float
    offset_x: float
    offset_y: float
    rendered_width: float
    rendered_height: float


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def contain_fit(
    display_width: float,
    display_height: float,
    native_width: float,
    native_height: float,
) -> ContainFit:
    scale = min(display_width / native_width, display_height / native_height)
    rendered_width = native_width * scale
    rendered_height = native_height * scale
    return ContainFit(
        scale=scale,
        offset_x=(display_width - rendered_width) / 2,
        offset_y=(display_height - rendered_height) / 2,
        rendered_width=rendered_width,
        rendered_height=rendered_height,
    )


def project_to_native(
    display_width: float,
    display_height: float,
    pointer_x: float,
    pointer_y: float,
    native_width: int | None = None,
    native_height: int | None = None,
) -> tuple[int, int] | None:
    """Return native coordinates for a pointer, without the bounds check.

    Missing or zero native dimensions fall back to 1280x800. Returns ``None``
    only when the display box has no area.
    """

    native_width = native_width or DEFAULT_FRAME_WIDTH
    native_height = native_height or DEFAULT_FRAME_HEIGHT
    if display_width <= 0 or display_height <= 0:
        return None

    fit = contain_fit(display_width, display_height, native_width, native_height)
    return (
        _round_half_up((pointer_x - fit.offset_x) / fit.scale),
        _round_half_up((pointer_y - fit.offset_y) / fit.scale),
    )


def map_to_native(
    display_width: float,
    display_height: float,
    pointer_x: float,
    pointer_y: float,
    native_width: int | None = None,
    native_height: int | None = None,
) -> tuple[int, int] | None:
    """Map a pointer inside the display box to native frame coordinates.

    Returns ``None`` when the pointer lands in the letterbox padding, i.e.
    outside ``0..native_width`` x ``0..native_height``.
    """

    native_width = native_width or DEFAULT_FRAME_WIDTH
    native_height = native_height or DEFAULT_FRAME_HEIGHT
    point = project_to_native(
        display_width, display_height, pointer_x, pointer_y, native_width, native_height
    )
    if point is None:
        return None
    x, y = point
    if 0 <= x <= native_width and 0 <= y <= native_height:
        return point
    return None


def frame_size(screenshot: str | bytes | None) -> tuple[int, int] | None:
    """Read the pixel size of a base64-encoded frame, or ``None`` if unknown."""

    if not screenshot:
        return None
    if isinstance(screenshot, str) and screenshot.startswith("data:"):
        screenshot = screenshot.split(",", 1)[-1]
    try:
        raw = base64.b64decode(screenshot, validate=False)
        with Image.open(io.BytesIO(raw)) as image:
            return image.size
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError, Image.DecompressionBombError):
        return None


__all__ = [
    "ContainFit",
    "DEFAULT_FRAME_HEIGHT",
    "DEFAULT_FRAME_WIDTH",
    "contain_fit",
    "frame_size",
    "map_to_native",
    "project_to_native",
]
