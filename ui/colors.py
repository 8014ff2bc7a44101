"""
Color palette and indicator selection.

Each entry is colored according to an indicator slot (directory, symbolic link,
executable, ...) chosen from its type and permission bits. Slots map to Rich
style definitions, rendered as ANSI sequences for the standard 16-color system
so the output matches what terminals expect from a directory listing.
"""

import stat
from typing import Mapping

from rich.color import ColorSystem
from rich.style import Style

from constants import DEFAULT_COLOR_STYLES, FILE_TYPE_COLOR_INDICATORS
from core.models import FileRecord
from models import ColorIndicator

_EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class ColorPalette:
    """
    Maps color indicators to styles and paints text with them.

    Attributes:
        styles: Parsed style per indicator; indicators without a style are not
            colored.
    """

    def __init__(
        self, definitions: Mapping[ColorIndicator, str | None] = DEFAULT_COLOR_STYLES
    ):
        self.styles: dict[ColorIndicator, Style] = {
            indicator: Style.parse(definition)
            for indicator, definition in definitions.items()
            if definition
        }

    def is_colored(self, indicator: ColorIndicator) -> bool:
        return indicator in self.styles

    def paint(self, indicator: ColorIndicator, text: str) -> str:
        """
        Wrap text in the ANSI sequences of an indicator's style.

        Args:
            indicator: The indicator slot.
            text: The text to color.

        Returns:
            str: The colored text, ending with a reset sequence, or the text
                unchanged if the indicator is not colored.
        """
        style = self.styles.get(indicator)
        if style is None:
            return text
        return style.render(text, color_system=ColorSystem.STANDARD)

    def _regular_file_indicator(self, record: FileRecord, mode: int) -> ColorIndicator:
        if mode & stat.S_ISUID and self.is_colored(ColorIndicator.SETUID):
            return ColorIndicator.SETUID
        if mode & stat.S_ISGID and self.is_colored(ColorIndicator.SETGID):
            return ColorIndicator.SETGID
        if mode & _EXECUTE_BITS and self.is_colored(ColorIndicator.EXECUTABLE):
            return ColorIndicator.EXECUTABLE
        if (
            record.stat is not None
            and record.stat.st_nlink > 1
            and self.is_colored(ColorIndicator.MULTIHARDLINK)
        ):
            return ColorIndicator.MULTIHARDLINK
        return ColorIndicator.FILE

    def _directory_indicator(self, mode: int) -> ColorIndicator:
        if (
            mode & stat.S_ISVTX
            and mode & stat.S_IWOTH
            and self.is_colored(ColorIndicator.STICKY_OTHER_WRITABLE)
        ):
            return ColorIndicator.STICKY_OTHER_WRITABLE
        if mode & stat.S_IWOTH and self.is_colored(ColorIndicator.OTHER_WRITABLE):
            return ColorIndicator.OTHER_WRITABLE
        if mode & stat.S_ISVTX and self.is_colored(ColorIndicator.STICKY):
            return ColorIndicator.STICKY
        return ColorIndicator.DIRECTORY

    @staticmethod
    def _special_file_indicator(mode: int) -> ColorIndicator:
        if stat.S_ISLNK(mode):
            return ColorIndicator.LINK
        if stat.S_ISFIFO(mode):
            return ColorIndicator.FIFO
        if stat.S_ISSOCK(mode):
            return ColorIndicator.SOCKET
        if stat.S_ISBLK(mode):
            return ColorIndicator.BLOCK_DEVICE
        if stat.S_ISCHR(mode):
            return ColorIndicator.CHAR_DEVICE
        if stat.S_ISDOOR(mode):
            return ColorIndicator.DOOR
        return ColorIndicator.ORPHAN

    def indicator_for(
        self, record: FileRecord, symlink_target: bool = False
    ) -> ColorIndicator | None:
        """
        Choose the indicator used to color a record's name or its link target.

        Args:
            record: The record.
            symlink_target: True to color the target of a symbolic link instead
                of the record's own name.

        Returns:
            The indicator, or None if the chosen indicator is not colored.
        """
        if symlink_target:
            mode = record.link_mode
            missing = not record.link_ok
        else:
            mode = record.mode
            missing = False

        if missing and self.is_colored(ColorIndicator.MISSING):
            indicator = ColorIndicator.MISSING
        elif not record.stat_ok:
            indicator = FILE_TYPE_COLOR_INDICATORS[record.file_type]
        elif stat.S_ISREG(mode):
            indicator = self._regular_file_indicator(record, mode)
        elif stat.S_ISDIR(mode):
            indicator = self._directory_indicator(mode)
        else:
            indicator = self._special_file_indicator(mode)

        link_ok = record.link_ok if not symlink_target else not missing
        if indicator == ColorIndicator.LINK and not link_ok:
            if self.is_colored(ColorIndicator.ORPHAN):
                indicator = ColorIndicator.ORPHAN

        return indicator if self.is_colored(indicator) else None
