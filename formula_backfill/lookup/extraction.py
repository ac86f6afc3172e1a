from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from bs4 import BeautifulSoup, Tag

from ..models.resolution import ChemicalInfo

"""Formula extraction strategies.

The reference site's markup differs between entries, so extraction is an ordered
list of strategies. Each one looks at the parsed page and returns a ChemicalInfo
or None; the first strategy that yields a non-empty formula wins.

Default order:
1. ResultsTableStrategy  - search-results table (#container-right), row matched
   by CAS text, fixed cell positions
2. InfoTableStrategy     - detail page table.ChemicalInfo, row whose text
   mentions the formula label, second cell
3. LabelCellStrategy     - any row holding a td.ltd label cell for the formula,
   second cell; recovers pages where the table class/id is missing
"""

logger = logging.getLogger(__name__)

__all__ = [
    "FORMULA_LABEL",
    "ExtractionStrategy",
    "ResultsTableStrategy",
    "InfoTableStrategy",
    "LabelCellStrategy",
    "DEFAULT_STRATEGIES",
    "parse_html",
    "extract_info",
]

FORMULA_LABEL = "分子式"


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def _text(tag: Tag | None) -> str:
    if tag is None:
        return ""
    # C<sub>2</sub>H<sub>6</sub>O reads as C2H6O; runs of whitespace collapse
    return " ".join(tag.get_text().split())


class ExtractionStrategy:
    """Base class: subclasses implement extract()."""

    name = "base"

    def extract(self, soup: BeautifulSoup, cas: str) -> ChemicalInfo | None:
        raise NotImplementedError


class ResultsTableStrategy(ExtractionStrategy):
    """Row of the results table whose text contains the CAS identifier.

    Cell layout (fixed by the site): 0 CAS, 1 Chinese name, 2 English name,
    3 structure image, 4 molecular formula.
    """

    name = "results_table"
    selector = "table#container-right tr"

    def extract(self, soup: BeautifulSoup, cas: str) -> ChemicalInfo | None:
        rows = soup.select(self.selector)
        # "50-00-0" must not match a row for "150-00-0" or "50-00-01"
        pattern = re.compile(rf"(?<![\d-]){re.escape(cas)}(?![\d-])")
        # first row is the table header
        for row in rows[1:]:
            if not pattern.search(row.get_text()):
                continue
            cells = row.find_all("td")
            image = ""
            if len(cells) > 3:
                img = cells[3].find("img")
                if img is not None and img.get("src"):
                    image = str(img["src"]).strip()
            return ChemicalInfo(
                cas=cas,
                chinese_name=_text(cells[1]) if len(cells) > 1 else "",
                english_name=_text(cells[2]) if len(cells) > 2 else "",
                structure_image=image,
                formula=_text(cells[4]) if len(cells) > 4 else "",
            )
        return None


class InfoTableStrategy(ExtractionStrategy):
    """Detail-page property table: label in the first cell, value in the second."""

    name = "info_table"
    selector = "table.ChemicalInfo tr"

    def extract(self, soup: BeautifulSoup, cas: str) -> ChemicalInfo | None:
        formula = ""
        for row in soup.select(self.selector):
            if FORMULA_LABEL not in row.get_text():
                continue
            cells = row.find_all("td")
            if len(cells) > 1:
                formula = _text(cells[1])
        if not formula:
            return None
        return ChemicalInfo(cas=cas, formula=formula)


class LabelCellStrategy(ExtractionStrategy):
    """Selector fallback: a row holding a td.ltd label cell for the formula."""

    name = "label_cell"
    selector = f'tr:has(> td.ltd:-soup-contains("{FORMULA_LABEL}"))'

    def extract(self, soup: BeautifulSoup, cas: str) -> ChemicalInfo | None:
        formula = ""
        for row in soup.select(self.selector):
            cells = row.find_all("td", recursive=False)
            if len(cells) > 1:
                formula = _text(cells[1])
        if not formula:
            return None
        return ChemicalInfo(cas=cas, formula=formula)


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    ResultsTableStrategy(),
    InfoTableStrategy(),
    LabelCellStrategy(),
)


def extract_info(
    soup: BeautifulSoup,
    cas: str,
    strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
) -> ChemicalInfo | None:
    """Run strategies in order, stopping at the first non-empty formula.

    A strategy that matches a row but finds an empty formula does not stop the
    search; its names/image are kept and merged into a later hit.
    """
    partial: ChemicalInfo | None = None
    for strategy in strategies:
        info = strategy.extract(soup, cas)
        if info is None:
            continue
        if info.formula:
            logger.debug(f"{cas}: formula found by {strategy.name}")
            if partial is not None:
                return ChemicalInfo(
                    cas=cas,
                    chinese_name=partial.chinese_name or info.chinese_name,
                    english_name=partial.english_name or info.english_name,
                    structure_image=partial.structure_image or info.structure_image,
                    formula=info.formula,
                )
            return info
        partial = partial or info
    return None
