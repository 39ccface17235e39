"""
Parva GPU and Screen
====================

The Parva GPU drives a 64x48 monochrome screen through a draw buffer:

- Command 0 moves the cursor to (A, B)
- Command 2 draws a 6x8 pixel block at the cursor into the buffer. A
  holds the top four rows, B the bottom four, six pixels per row, most
  significant bit first.
- Command 3 ORs the buffer onto the screen and clears the buffer
- Command 4 clears the screen

The screen can be rendered as text (one character per pixel) or as a
PNG image through Pillow.
"""

import io
import logging

from PIL import Image

from lbpasm.cpu.parva import (
    GPU_CLEAR,
    GPU_DRAW,
    GPU_MOVE_CURSOR,
    GPU_SHOW_BUFFER,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
)

logger = logging.getLogger(__name__)

BLOCK_WIDTH = 6
BLOCK_HALF_HEIGHT = 4

PIXEL_ON = "█"
PIXEL_OFF = " "


def blank_screen() -> list[list[int]]:
    return [[0] * SCREEN_WIDTH for _ in range(SCREEN_HEIGHT)]


class Gpu:
    """Screen, draw buffer and cursor of the Parva GPU."""

    def __init__(self) -> None:
        self.cursor_x = 0
        self.cursor_y = 0
        self.screen = blank_screen()
        self.buffer = blank_screen()

    def command(self, command: int, value_a: int, value_b: int) -> None:
        """Execute one GPU command with its two argument words."""
        if command == GPU_MOVE_CURSOR:
            self.cursor_x = value_a
            self.cursor_y = value_b
        elif command == GPU_DRAW:
            self.draw_block(value_a, value_b)
        elif command == GPU_SHOW_BUFFER:
            for y in range(SCREEN_HEIGHT):
                for x in range(SCREEN_WIDTH):
                    self.screen[y][x] |= self.buffer[y][x]
            self.buffer = blank_screen()
        elif command == GPU_CLEAR:
            self.screen = blank_screen()
        else:
            logger.debug("ignoring unknown GPU command %d", command)

    def draw_block(self, top: int, bottom: int) -> None:
        """
        Draw a 6x8 block at the cursor into the buffer.

        Pixels falling outside the screen are dropped.
        """
        for row in range(BLOCK_HALF_HEIGHT):
            for column in range(BLOCK_WIDTH):
                bit = 23 - (column + row * BLOCK_WIDTH)
                x = self.cursor_x + column
                self._set(x, self.cursor_y + row, (top >> bit) & 1)
                self._set(x, self.cursor_y + row + BLOCK_HALF_HEIGHT, (bottom >> bit) & 1)

    def _set(self, x: int, y: int, value: int) -> None:
        if 0 <= x < SCREEN_WIDTH and 0 <= y < SCREEN_HEIGHT:
            self.buffer[y][x] = value
        else:
            logger.debug("pixel (%d, %d) is off screen", x, y)

    # ========================================
    # Rendering
    # ========================================

    def render_text(self) -> str:
        return "\n".join(
            "".join(PIXEL_ON if pixel else PIXEL_OFF for pixel in row) for row in self.screen
        )

    def render_image(self, scale: int = 4) -> bytes:
        """
        Render the screen as a PNG image.

        Args:
            scale: Size of one screen pixel in image pixels

        Returns:
            PNG image bytes
        """
        img = Image.new("L", (SCREEN_WIDTH * scale, SCREEN_HEIGHT * scale), color=0)
        for y, row in enumerate(self.screen):
            for x, pixel in enumerate(row):
                if pixel:
                    img.paste(255, (x * scale, y * scale, (x + 1) * scale, (y + 1) * scale))

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()
