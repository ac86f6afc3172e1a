from __future__ import annotations

import logging
from collections.abc import Sequence
from urllib.parse import quote

from ..models.config_models import DEFAULT_URL_TEMPLATE
from ..models.resolution import FailureReason, ResolutionResult
from .extraction import DEFAULT_STRATEGIES, ExtractionStrategy, extract_info, parse_html
from .fetcher import DecodeError, FetchError, PageFetcher

"""CAS identifier -> molecular formula.

resolve() never raises for per-row problems; every outcome is a
ResolutionResult. Calling it twice for the same CAS against the same remote
content gives the same result.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "FormulaResolver",
    "build_url",
]


def build_url(cas: str, url_template: str = DEFAULT_URL_TEMPLATE) -> str:
    return url_template.replace("{cas}", quote(cas.strip(), safe="-"))


class FormulaResolver:
    def __init__(
        self,
        fetcher: PageFetcher,
        url_template: str = DEFAULT_URL_TEMPLATE,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        if "{cas}" not in url_template:
            raise ValueError(f"url template must contain '{{cas}}': {url_template}")
        self.fetcher = fetcher
        self.url_template = url_template
        self.strategies = tuple(strategies)

    def build_url(self, cas: str) -> str:
        return build_url(cas, self.url_template)

    def resolve(self, cas: str) -> ResolutionResult:
        cas = cas.strip()
        url = self.build_url(cas)
        try:
            html = self.fetcher.fetch(url)
        except FetchError as e:
            logger.debug(f"{cas}: fetch failed: {e}")
            return ResolutionResult.failure(
                cas, FailureReason.FETCH_ERROR, url=url, status_code=e.status_code, message=str(e)
            )
        except DecodeError as e:
            logger.debug(f"{cas}: decode failed: {e}")
            return ResolutionResult.failure(cas, FailureReason.DECODE_ERROR, url=url, message=str(e))

        soup = parse_html(html)
        info = extract_info(soup, cas, self.strategies)
        if info is not None:
            return ResolutionResult.success(cas, info, url=url)

        if cas not in soup.get_text():
            return ResolutionResult.failure(
                cas, FailureReason.NOT_FOUND, url=url, message=f"no entry for {cas} on page"
            )
        return ResolutionResult.failure(
            cas,
            FailureReason.EXTRACTION_MISS,
            url=url,
            message=f"no formula found by: {', '.join(s.name for s in self.strategies)}",
        )
