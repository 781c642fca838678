"""
colors.py — Category colour assignment.

Colours come from a fixed seven-entry palette and are handed out in the
order categories are first seen.  Beyond seven categories the palette
cycles, so two categories may share a colour.
"""

from __future__ import annotations

PALETTE: tuple[str, ...] = (
    "#195c90",  # blue
    "#de7f26",  # orange
    "#a0db8e",  # light green
    "#ac1e8e",  # magenta
    "#edae01",  # amber
    "#d61800",  # red
    "#cf6766",  # rose
)


class CategoryPalette:
    """
    Memoized category → colour mapping for one diagram instance.

    :param palette: Colours to cycle through.
    """

    def __init__(self, palette: tuple[str, ...] = PALETTE) -> None:
        self.palette = palette
        self._colors: dict[str, str] = {}

    def get_color(self, category: str) -> str:
        """
        Return the colour for *category*, assigning one on first use.

        :param category: Node category.
        :return: Hex colour string.
        """
        color = self._colors.get(category)
        if color is None:
            color = self.palette[len(self._colors) % len(self.palette)]
            self._colors[category] = color
        return color

    def assigned(self) -> dict[str, str]:
        """Return a copy of the colours assigned so far."""
        return dict(self._colors)

    def reset(self) -> None:
        """Forget all assignments (new graph load)."""
        self._colors.clear()

    def __len__(self) -> int:
        return len(self._colors)
