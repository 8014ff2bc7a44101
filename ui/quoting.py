"""
Quoting of file names for output.

The supported styles are literal (names as they are, optionally with
non-printable characters shown as '?'), the shell styles (single quotes a
shell would accept, see QuotingStyle), escape (C-like backslash escapes,
spaces escaped too) and c (double-quoted C string). The quoted width of a
record is measured in terminal cells and cached on the record together with
whether quoting changed the name.
"""

import os
import string

from rich.cells import cell_len

from core.models import FileRecord
from models import IndicatorStyle, QuoteState, QuotingStyle

_C_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}

# Indicator characters that must be escaped so they cannot be mistaken for
# the indicator appended after the name.
_INDICATOR_CHARS = {
    IndicatorStyle.FILE_TYPE: "=>@|",
    IndicatorStyle.CLASSIFY: "*=>@|",
}

# Characters a shell would interpret anywhere in a word.
_SHELL_SPECIALS = frozenset("!\"$&()*;<=>[^`| ?\\'\t\n\r")

# Characters that read the same inside C double quotes and inside shell words.
_QUOTE_COMPATIBLE = frozenset(string.ascii_letters + string.digits + "%+,-./:]_ '")

_SHELL_STYLES = {
    QuotingStyle.SHELL,
    QuotingStyle.SHELL_ALWAYS,
    QuotingStyle.SHELL_ESCAPE,
    QuotingStyle.SHELL_ESCAPE_ALWAYS,
}

# Styles whose output still holds raw control characters for hiding.
_HIDING_STYLES = {QuotingStyle.LITERAL, QuotingStyle.SHELL, QuotingStyle.SHELL_ALWAYS}


def _octal_escape(char: str) -> str:
    return "".join(f"\\{byte:03o}" for byte in os.fsencode(char))


def _special_at(name: str, index: int) -> bool:
    """True if the character at index makes a shell word need quoting."""
    char = name[index]
    if char in _SHELL_SPECIALS:
        return True
    if char in "#~":
        return index == 0
    if char in "{}":
        return len(name) == 1
    return False


def _quote_compatible(name: str, index: int) -> bool:
    char = name[index]
    if char in _QUOTE_COMPATIBLE:
        return True
    if char in "#~{}":
        return index == 0 and (char in "#~" or len(name) == 1)
    if char in _SHELL_SPECIALS or char in "\\?":
        return False
    return char.isprintable()


class NameQuoter:
    """
    Renders names in the configured quoting style.

    Attributes:
        style: The quoting style.
        hide_control_chars: Replace non-printable characters with '?' (literal,
            shell and shell-always styles only; the others escape them).
        extra_chars: Characters escaped in addition to the style's own set.
    """

    def __init__(
        self,
        style: QuotingStyle = QuotingStyle.LITERAL,
        hide_control_chars: bool = False,
        indicator_style: IndicatorStyle = IndicatorStyle.NONE,
    ):
        self.style = style
        self.hide_control_chars = hide_control_chars
        self.extra_chars = _INDICATOR_CHARS.get(indicator_style, "")

    def quote(self, name: str, dirname: bool = False) -> str:
        """
        Quote a name.

        Args:
            name: The name to quote.
            dirname: True when quoting a directory header, where ':' is escaped too.

        Returns:
            str: The quoted name.
        """
        return self._hide(self.styled(name, dirname))

    def styled(self, name: str, dirname: bool = False) -> str:
        """The name in the quoting style, before control characters are hidden."""
        extra = self.extra_chars + (":" if dirname else "")
        if self.style == QuotingStyle.LITERAL:
            return name
        if self.style in _SHELL_STYLES:
            return self._shell_quote(name, extra)
        return self._backslash_quote(name, extra, self.style)

    def _hide(self, text: str) -> str:
        if not self.hide_control_chars or self.style not in _HIDING_STYLES:
            return text
        return "".join(c if c.isprintable() else "?" for c in text)

    def _backslash_quote(self, name: str, extra: str, style: QuotingStyle) -> str:
        parts = []
        for char in name:
            if char == "\\":
                parts.append("\\\\")
            elif char in _C_ESCAPES:
                parts.append(_C_ESCAPES[char])
            elif not char.isprintable():
                parts.append(_octal_escape(char))
            elif style == QuotingStyle.C and char == '"':
                parts.append('\\"')
            elif style == QuotingStyle.ESCAPE and (char == " " or char in extra):
                parts.append("\\" + char)
            elif style == QuotingStyle.C and char in extra:
                parts.append("\\" + char)
            else:
                parts.append(char)
        quoted = "".join(parts)
        if style == QuotingStyle.C:
            return f'"{quoted}"'
        return quoted

    def _shell_quote(self, name: str, extra: str) -> str:
        escapes = self.style in (QuotingStyle.SHELL_ESCAPE, QuotingStyle.SHELL_ESCAPE_ALWAYS)
        if self.style in (QuotingStyle.SHELL, QuotingStyle.SHELL_ESCAPE):
            if self._shell_safe(name, extra, escapes):
                return name
            # Outer quotes protect the extra characters already.
            extra = ""

        if "'" in name and all(_quote_compatible(name, i) for i in range(len(name))):
            return self._backslash_quote(name, extra, QuotingStyle.C)

        parts = ["'"]
        in_escape = False
        for char in name:
            if escapes and (char in _C_ESCAPES or not char.isprintable()):
                if not in_escape:
                    parts.append("'$'")
                    in_escape = True
                parts.append(_C_ESCAPES.get(char) or _octal_escape(char))
                continue
            # A quote closes the current string, even a $'...' one.
            if in_escape and char != "'":
                parts.append("''")
            in_escape = False
            parts.append("'\\''" if char == "'" else char)
        parts.append("'")
        return "".join(parts)

    @staticmethod
    def _shell_safe(name: str, extra: str, escapes: bool) -> bool:
        """True if a shell would read the name as one word without quotes."""
        if not name:
            return False
        for index, char in enumerate(name):
            if _special_at(name, index) or char in extra:
                return False
            if escapes and not char.isprintable():
                return False
        return True

    def needs_quoting(self, name: str) -> bool:
        return self.styled(name) != name

    def width(self, record: FileRecord) -> int:
        """
        Display width of the record's quoted name, cached on the record.

        Args:
            record: The record to measure.

        Returns:
            int: The width in terminal cells.
        """
        if record.width:
            return record.width
        styled = self.styled(record.name)
        record.quoted = QuoteState.YES if styled != record.name else QuoteState.NO
        record.width = cell_len(self._hide(styled))
        return record.width
