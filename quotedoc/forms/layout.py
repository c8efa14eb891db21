"""
Layout primitives for the quote PDF.

Everything here is measurement and bookkeeping, no drawing: text wrapping
against real glyph widths, per-row heights, the column grid, and the
RenderCursor that decides where rows land and when a page must break. The
drawing side hands the cursor a surface object that knows how to start a
page, draw column headers and close a table border.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from reportlab.pdfbase.pdfmetrics import stringWidth

from ..core.formatting import round_half_up

log = logging.getLogger("quote_layout")

Measure = Callable[[str, str, float], float]

# ── Row geometry (characteristics column) ─────────────────────────────────────
CELL_FONT_SIZE = 8
LINE_HEIGHT = max(9, round_half_up(CELL_FONT_SIZE * 1.1))
SPACER_HEIGHT = max(4, round_half_up(LINE_HEIGHT * 0.35))
ROW_PAD_TOP = 6
ROW_PAD_BOTTOM = 6
MIN_ROW_HEIGHT = 28


# ═══════════════════════════════════════════════════════════════════════════════
# TEXT WRAPPING
# ═══════════════════════════════════════════════════════════════════════════════

def wrap_text(text: str, font: str, size: float, max_width: float,
              measure: Measure = stringWidth) -> List[str]:
    """Greedy word wrap by measured width.

    Words are added to the current line while it stays within max_width. A
    word wider than max_width on its own is broken character by character;
    its last fragment stays open so following words can join it.
    """
    if not text:
        return []
    lines: List[str] = []
    cur = ""
    for word in text.split():
        candidate = f"{cur} {word}" if cur else word
        if measure(candidate, font, size) <= max_width:
            cur = candidate
            continue
        if cur:
            lines.append(cur)
        if measure(word, font, size) <= max_width:
            cur = word
            continue
        partial = ""
        for ch in word:
            if measure(partial + ch, font, size) <= max_width:
                partial += ch
            else:
                if partial:
                    lines.append(partial)
                partial = ch
        cur = partial
    if cur:
        lines.append(cur)
    return lines


def fit_text(text: str, font: str, size: float, max_width: float,
             measure: Measure = stringWidth) -> str:
    """Single-line text clipped with '...' so it stays inside max_width."""
    text = text or ""
    if measure(text, font, size) <= max_width:
        return text
    while text and measure(text + "...", font, size) > max_width:
        text = text[:-1]
    return text + "..." if text else ""


# ═══════════════════════════════════════════════════════════════════════════════
# BOXES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Box:
    """Rectangle in PDF points, anchored at its top edge (y grows upward)."""
    x: float
    top: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top - self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def center_y(self) -> float:
        return self.top - self.height / 2

    def inset(self, dx: float, dy: float = 0) -> "Box":
        return Box(self.x + dx, self.top - dy, self.width - 2 * dx, self.height - 2 * dy)

    def below(self, gap: float, height: float, width: Optional[float] = None,
              x: Optional[float] = None) -> "Box":
        """Box stacked under this one."""
        return Box(self.x if x is None else x, self.bottom - gap,
                   self.width if width is None else width, height)


# ═══════════════════════════════════════════════════════════════════════════════
# COLUMN GRID
# ═══════════════════════════════════════════════════════════════════════════════

def compute_column_widths(available: int, lead_percents: Sequence[float],
                          trail_percents: Sequence[float], min_width: int) -> List[int]:
    """Whole-point column widths that sum exactly to ``available``.

    Lead columns take a share of the full width; trailing columns share what
    is left. Each column is floored at min_width. Leftover points go one at a
    time to the trailing columns; an overshoot is taken back starting from
    the last column without crossing the floor.
    """
    n = len(lead_percents) + len(trail_percents)
    if not trail_percents:
        raise ValueError("need at least one trailing column")
    if available < n * min_width:
        raise ValueError(f"{n} columns of >= {min_width}pt do not fit in {available}pt")

    lead = [max(min_width, round_half_up(available * p)) for p in lead_percents]
    remaining = max(0, available - sum(lead))
    trail = [max(min_width, round_half_up(remaining * p)) for p in trail_percents]

    total = sum(lead) + sum(trail)
    i = 0
    while total < available:
        trail[i % len(trail)] += 1
        total += 1
        i += 1

    widths = lead + trail
    j = n - 1
    while total > available and j >= 0:
        take = min(total - available, widths[j] - min_width)
        widths[j] -= take
        total -= take
        j -= 1
    return widths


def column_edges(left: float, widths: Sequence[float]) -> List[float]:
    edges, x = [], left
    for w in widths:
        edges.append(x)
        x += w
    return edges


# ═══════════════════════════════════════════════════════════════════════════════
# ROW HEIGHT
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RowLayout:
    name_lines: tuple
    char_lines: tuple
    height: int

    @property
    def has_spacer(self) -> bool:
        return bool(self.name_lines) and bool(self.char_lines)

    @property
    def line_count(self) -> int:
        return len(self.name_lines) + len(self.char_lines)

    @property
    def block_height(self) -> int:
        return self.line_count * LINE_HEIGHT + (SPACER_HEIGHT if self.has_spacer else 0)


def row_height(name_line_count: int, char_line_count: int) -> int:
    spacer = SPACER_HEIGHT if name_line_count and char_line_count else 0
    block = (name_line_count + char_line_count) * LINE_HEIGHT + spacer
    return max(MIN_ROW_HEIGHT, ROW_PAD_TOP + ROW_PAD_BOTTOM + block)


def layout_row(name: str, characteristics: str, font: str, text_width: float,
               measure: Measure = stringWidth) -> RowLayout:
    """Wrap name and characteristics into the column and size the row."""
    name_lines = tuple(wrap_text(name, font, CELL_FONT_SIZE, text_width, measure))
    char_lines = tuple(wrap_text(characteristics, font, CELL_FONT_SIZE, text_width, measure))
    return RowLayout(name_lines, char_lines, row_height(len(name_lines), len(char_lines)))


# ═══════════════════════════════════════════════════════════════════════════════
# RENDER CURSOR (pagination state machine)
# ═══════════════════════════════════════════════════════════════════════════════

WRITING_ROWS = "writing_rows"
PAGE_BREAK_NEEDED = "page_break_needed"
WRITING_TOTALS = "writing_totals"
DONE = "done"


@dataclass(frozen=True)
class Placement:
    page_index: int
    top: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top - self.height


class RenderCursor:
    """Tracks the writing position across pages of one document.

    ``surface`` must provide:
        new_page() -> float            start a page with header/footer, return content top y
        draw_column_headers(y) -> float  draw table headers at y, return y under them
        close_table(top, bottom)       draw the table border for this page's section

    Rows are never split: a row that would cross ``floor`` moves whole to a
    new page. A row taller than a fresh page is drawn there anyway.
    """

    def __init__(self, surface, y: float, floor: float):
        self.surface = surface
        self.y = y
        self.floor = floor
        self.page_index = 0
        self.state = WRITING_ROWS
        self.table_origin_y: Optional[float] = None
        self.rows_on_page = 0
        self.fresh_page = False
        self.placements: List[Placement] = []

    def fits(self, height: float) -> bool:
        return self.y - height >= self.floor

    def advance(self, height: float) -> float:
        """Move down by height; return the top of the consumed band."""
        top = self.y
        self.y -= height
        return top

    def new_page(self) -> None:
        self.y = self.surface.new_page()
        self.page_index += 1
        self.rows_on_page = 0
        self.fresh_page = True

    def begin_table(self, reserve: float = 0) -> None:
        """Draw column headers at the cursor.

        ``reserve`` is the room the headers plus a first row need. When it is
        not left on the current page the table starts on a new one instead.
        """
        if reserve and not self.fits(reserve) and not self.fresh_page:
            log.debug("Table start moved to a new page (y=%.1f, need %.1f)", self.y, reserve)
            self.new_page()
        self.table_origin_y = self.y
        self.y = self.surface.draw_column_headers(self.y)

    def close_table_border(self) -> None:
        if self.table_origin_y is None:
            return
        self.surface.close_table(self.table_origin_y, self.y)
        self.table_origin_y = None

    def break_page_if_needed(self, height: float) -> bool:
        if self.fits(height) or self.fresh_page:
            return False
        self.state = PAGE_BREAK_NEEDED
        log.debug("Page break before row %d (y=%.1f, row=%.1f)",
                  len(self.placements) + 1, self.y, height)
        self.close_table_border()
        self.new_page()
        self.begin_table()
        self.state = WRITING_ROWS
        return True

    def place_row(self, height: float) -> Placement:
        """Reserve space for one table row, breaking the page first if needed."""
        if self.state != WRITING_ROWS:
            raise RuntimeError(f"cannot place a row while {self.state}")
        self.break_page_if_needed(height)
        top = self.advance(height)
        self.rows_on_page += 1
        self.fresh_page = False
        placement = Placement(self.page_index, top, height)
        self.placements.append(placement)
        return placement

    def finish_rows(self) -> None:
        self.close_table_border()
        self.state = WRITING_TOTALS

    def reserve_block(self, height: float) -> float:
        """Make sure ``height`` fits below the cursor; new page if not. Returns y."""
        if not self.fits(height) and not self.fresh_page:
            log.debug("Closing block (%.1fpt) moved to a new page", height)
            self.new_page()
        self.fresh_page = False
        return self.y

    def finish(self) -> None:
        self.state = DONE
