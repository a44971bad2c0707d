"""Code highlighting with a bounded fallback chain."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name

logger = logging.getLogger(__name__)

PLAIN_TEXT = "text"

HighlightEngine = Callable[[str, str], str]


@dataclass(frozen=True, slots=True)
class HighlightResult:
    html: str = ""


def pygments_engine(style: str = "default") -> HighlightEngine:
    """Engine rendering standalone-styled HTML with the given Pygments style.

    Unknown languages raise ``pygments.util.ClassNotFound``.
    """

    def render(code: str, language: str) -> str:
        lexer = get_lexer_by_name(language, stripnl=False)
        formatter = HtmlFormatter(style=style, noclasses=True, wrapcode=True)
        return highlight(code, lexer, formatter)

    return render


class HighlightService:
    """Render source code to markup; never raises to the caller.

    Outcomes are markup for the requested language, markup for plain text,
    or an empty result.
    """

    def __init__(self, engine: HighlightEngine | None = None) -> None:
        self._engine = engine or pygments_engine()

    def _attempt(self, code: str, language: str) -> str | None:
        try:
            html = self._engine(code, language)
        except Exception as exc:
            logger.warning("Highlighting as %r failed: %s", language, exc)
            return None
        if not isinstance(html, str):
            logger.warning("Highlighting as %r returned %s", language, type(html).__name__)
            return None
        return html

    def render(self, source_code: object, language_tag: object = PLAIN_TEXT) -> HighlightResult:
        if not isinstance(source_code, str) or not source_code.strip():
            return HighlightResult()
        language = language_tag if isinstance(language_tag, str) and language_tag else PLAIN_TEXT

        html = self._attempt(source_code, language)
        if html is not None:
            return HighlightResult(html=html)
        html = self._attempt(source_code, PLAIN_TEXT)
        if html is not None:
            return HighlightResult(html=html)
        logger.warning("No highlighting available for %r", language)
        return HighlightResult()
