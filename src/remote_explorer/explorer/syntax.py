# remote_explorer/explorer/syntax.py
from pygments.lexers import TextLexer, get_lexer_for_filename, guess_lexer
from pygments.util import ClassNotFound

from ..utils.logger import get_logger

PLAIN_TEXT = "text"

logger = get_logger("remote_explorer.explorer.syntax")


def _alias(lexer) -> str:
    return lexer.aliases[0] if lexer.aliases else lexer.name.lower()


def detect_language(filename: str, content: str = "") -> str:
    """
    Pick the highlighting language for a file loaded into the editor.

    The file name decides first; files without a known extension fall back
    to content detection (shebang lines and the like). Anything unknown is
    plain text.
    """
    if filename:
        try:
            return _alias(get_lexer_for_filename(filename, content))
        except ClassNotFound:
            pass

    if content.strip():
        try:
            lexer = guess_lexer(content)
            # Only accept non-TextLexer results
            if not isinstance(lexer, TextLexer):
                return _alias(lexer)
        except ClassNotFound:
            pass

    logger.debug(f"No lexer for '{filename}', using plain text")
    return PLAIN_TEXT
