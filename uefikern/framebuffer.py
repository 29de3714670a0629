"""A linear framebuffer, graphics mode selection and drawing BMP images.

Pixels are four bytes each in blue, green, red, reserved order; a scan line
holds ``pixels_per_scan_line`` pixels, which may be more than are visible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

PIXEL_SIZE = 4
BMP_HEADER_SIZE = 54


@dataclass
class GraphicConfig:
    """Framebuffer geometry handed from the boot loader to the kernel."""

    frame_base: int = 0
    frame_size: int = 0
    horizontal_resolution: int = 0
    vertical_resolution: int = 0
    pixels_per_scan_line: int = 0


class Framebuffer:
    """Video memory described by a ``GraphicConfig``, held in a byte array."""

    def __init__(self, config: GraphicConfig):
        if config.frame_size < 0 or config.pixels_per_scan_line < 0:
            raise ValueError("framebuffer geometry must not be negative")
        self.config = config
        self.memory = bytearray(config.frame_size)

    def _offset(self, x: int, y: int) -> int:
        if not 0 <= x < self.config.pixels_per_scan_line or y < 0:
            raise ValueError(f"pixel ({x}, {y}) outside the framebuffer")
        offset = PIXEL_SIZE * (y * self.config.pixels_per_scan_line + x)
        if offset + PIXEL_SIZE > len(self.memory):
            raise ValueError(f"pixel ({x}, {y}) outside the framebuffer")
        return offset

    def draw_pixel(self, x: int, y: int, pixel) -> None:
        """Set the blue, green and red bytes of a pixel; the reserved byte is kept."""
        pixel = bytes(pixel)
        if len(pixel) < 3:
            raise ValueError("a pixel needs blue, green and red bytes")
        offset = self._offset(x, y)
        self.memory[offset : offset + 3] = pixel[:3]

    def pixel_at(self, x: int, y: int) -> bytes:
        """The four bytes of the pixel at (x, y)."""
        offset = self._offset(x, y)
        return bytes(self.memory[offset : offset + PIXEL_SIZE])

    def scroll_up(self, height: int) -> None:
        """Move the picture up by ``height`` scan lines, clearing the bottom."""
        diff = PIXEL_SIZE * self.config.pixels_per_scan_line * height
        size = len(self.memory)
        if height < 0 or diff > size:
            raise ValueError(f"cannot scroll by {height} lines")
        self.memory[: size - diff] = self.memory[diff:size]
        self.memory[size - diff :] = bytes(diff)


def choose_mode(modes: Iterable[Tuple[int, int]]) -> int:
    """Index of the largest 16:9 or 4:3 mode among (horizontal, vertical) pairs; 0 if none."""
    best_index = 0
    best_resolution = 0
    for index, (h, v) in enumerate(modes):
        if not (h * 9 == v * 16 or h * 3 == v * 4):
            continue
        if best_resolution < h * v:
            best_index = index
            best_resolution = h * v
    return best_index


def draw_bmp(framebuffer: Framebuffer, data) -> None:
    """Fill the visible screen from a 24-bit bottom-up BMP of the screen's size."""
    data = bytes(data)
    width = framebuffer.config.horizontal_resolution
    height = framebuffer.config.vertical_resolution
    needed = BMP_HEADER_SIZE + 3 * width * height
    if len(data) < needed:
        raise ValueError(f"bitmap holds {len(data)} bytes, {needed} needed")
    if width == 0:
        return
    for i in range(width * height):
        x = i % width
        y = height - 1 - i // width
        start = BMP_HEADER_SIZE + i * 3
        framebuffer.draw_pixel(x, y, data[start : start + 3])