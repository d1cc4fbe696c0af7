import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from docquill.core.stats import strip_markup

logger = logging.getLogger(__name__)


class EditableSurface(ABC):
    """
    Abstract Base Class for the host-provided editing surface.
    The controller only talks to the surface through this contract.
    """

    @abstractmethod
    def apply_format(self, command: str, value: Optional[str] = None) -> None:
        """
        Apply a low-level format command ("bold", "formatBlock", ...) in place.
        """
        pass

    @abstractmethod
    def get_content(self) -> str:
        """
        Return the current serialized markup.
        """
        pass

    @abstractmethod
    def get_selection_text(self) -> str:
        pass

    @abstractmethod
    def splice_fragment(self, markup: str) -> None:
        """
        Insert markup at the caret, replacing the selection if there is one.
        """
        pass

    @abstractmethod
    def set_content(self, markup: str) -> None:
        """
        Replace the whole surface content (revert, undo/redo, highlight preview).
        """
        pass


class MarkupSurface(EditableSurface):
    """
    Headless surface holding serialized markup and a selection range.

    Formatting is rendered by the real host, so apply_format() records the
    command and adopts whatever content the host staged with stage().
    Selection offsets index into the markup string.
    """

    def __init__(self, content: str = '', selection: Optional[Tuple[int, int]] = None):
        self._content = content or ''
        self._staged: Optional[str] = None
        self.applied: List[Tuple[str, Optional[str]]] = []
        self.selection: Tuple[int, int] = (len(self._content), len(self._content))
        if selection is not None:
            self.select(*selection)

    def select(self, start: int, end: Optional[int] = None) -> None:
        size = len(self._content)
        if end is None:
            end = start
        start = max(0, min(int(start), size))
        end = max(0, min(int(end), size))
        if end < start:
            start, end = end, start
        self.selection = (start, end)

    def stage(self, content: str) -> None:
        """Content the host produced for the next apply_format() call."""
        self._staged = content

    def apply_format(self, command: str, value: Optional[str] = None) -> None:
        self.applied.append((command, value))
        if self._staged is not None:
            self._content = self._staged
            self._staged = None
            self.select(*self.selection)
        logger.debug(f"MarkupSurface: applied {command!r} (value={value!r})")

    def get_content(self) -> str:
        return self._content

    def get_selection_text(self) -> str:
        start, end = self.selection
        return strip_markup(self._content[start:end])

    def splice_fragment(self, markup: str) -> None:
        start, end = self.selection
        self._content = self._content[:start] + markup + self._content[end:]
        caret = start + len(markup)
        self.selection = (caret, caret)

    def set_content(self, markup: str) -> None:
        self._content = markup or ''
        self.select(*self.selection)
