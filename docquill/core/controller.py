"""
Document controller: the single owner of an editor session's content.

Every change to the content flows through one gated commit path that enforces
the plain-text length ceiling, keeps the undo/redo history in order and
notifies observers. The editing surface is reached only through the
EditableSurface interface, so the controller runs the same way against a
browser-backed surface or the headless MarkupSurface.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from docquill.core.config import EditorConfig, ToolbarConfig, is_command_enabled
from docquill.core.exporters import ExportedFile, decode_import, export_document
from docquill.core.find_replace import FindReplaceSpec, clear_highlights, count_matches, find_replace
from docquill.core.fragments import FragmentSpec, TableSpec, build_fragment
from docquill.core.history import HistoryManager
from docquill.core.stats import Stats, compute_stats, plain_text_length
from docquill.core.surface import EditableSurface, MarkupSurface

logger = logging.getLogger(__name__)

REJECT_MAX_LENGTH = "max_length"


@dataclass(frozen=True)
class CommitResult:
    accepted: bool
    stats: Optional[Stats] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {'accepted': self.accepted}
        if self.stats is not None:
            data['stats'] = self.stats.to_dict()
        if self.reason:
            data['reason'] = self.reason
        return data


class DocumentController:
    def __init__(self, surface: Optional[EditableSurface] = None, config: Optional[EditorConfig] = None, features=None):
        self.config = config or EditorConfig()
        if surface is None:
            surface = MarkupSurface(self.config.initial_content)
        if not isinstance(surface, EditableSurface):
            raise TypeError("Surface must inherit from EditableSurface")

        self.surface = surface
        self.history = HistoryManager()
        self.features = features
        self.toolbar: ToolbarConfig = self.config.toolbar
        self._observers: List[Callable[[str], None]] = []
        if self.config.on_change:
            self._observers.append(self.config.on_change)

        # Initial content is installed as-is; the ceiling applies to edits
        self._content = self.config.initial_content or ''
        self._stats = compute_stats(self._content)
        if self.surface.get_content() != self._content:
            self.surface.set_content(self._content)
        logger.debug(f"DocumentController: created ({self._stats.char_count} chars, max_length={self.max_length})")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def content(self) -> str:
        return self._content

    @property
    def stats(self) -> Stats:
        return self._stats

    @property
    def max_length(self) -> Optional[int]:
        return self.config.max_length

    @property
    def read_only(self) -> bool:
        return self.config.read_only

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def selection_text(self) -> str:
        return self.surface.get_selection_text()

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a change observer. Returns a function that unsubscribes it."""
        self._observers.append(callback)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)
        return unsubscribe

    # ------------------------------------------------------------------
    # Commit path
    # ------------------------------------------------------------------

    def commit(self, new_content: str) -> CommitResult:
        """
        Adopt content produced outside the controller (typing, a host edit).
        Recorded as one undo step; rejected when it exceeds max_length.
        """
        new_content = new_content or ''

        def sync_surface():
            if self.surface.get_content() != new_content:
                self.surface.set_content(new_content)

        return self._mutate(sync_surface, "commit")

    def _commit(self, new_content: str, from_history: bool) -> CommitResult:
        new_content = new_content or ''
        length = plain_text_length(new_content)

        if self.max_length is not None and length > self.max_length:
            logger.warning(f"DocumentController: rejected commit, {length} chars exceeds max_length {self.max_length}")
            # Keep the surface in step with the committed content
            if self.surface.get_content() != self._content:
                self.surface.set_content(self._content)
            return CommitResult(accepted=False, reason=REJECT_MAX_LENGTH)

        self._content = new_content
        self._stats = compute_stats(new_content)
        if not from_history:
            self.history.clear_redo()
        self._notify()
        return CommitResult(accepted=True, stats=self._stats)

    def _notify(self):
        for observer in list(self._observers):
            try:
                observer(self._content)
            except Exception as e:
                logger.error(f"DocumentController: change observer {observer} failed: {e}", exc_info=True)

    def _read_surface(self) -> str:
        # Highlight previews live on the surface only
        return clear_highlights(self.surface.get_content())

    def _mutate(self, apply: Callable[[], None], label: str) -> CommitResult:
        """Snapshot, apply the mutation to the surface, read back and commit."""
        before = self._content
        self.history.snapshot(before)
        apply()
        after = self._read_surface()

        if after == before:
            self.history.rollback()
            if self.surface.get_content() != before:
                self.surface.set_content(before)
            logger.debug(f"DocumentController: {label} left content unchanged")
            return CommitResult(accepted=True, stats=self._stats)

        result = self._commit(after, from_history=False)
        if not result.accepted:
            self.history.rollback()
        return result

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def handle_input(self) -> Optional[CommitResult]:
        """The surface reports typing: adopt its content through the gate."""
        if self.read_only:
            return None
        return self.commit(self._read_surface())

    def execute_format(self, command: str, value: Optional[str] = None) -> Optional[CommitResult]:
        if self.read_only:
            logger.debug(f"DocumentController: read-only, ignoring {command!r}")
            return None
        if not is_command_enabled(self.toolbar, command):
            logger.info(f"DocumentController: command {command!r} is disabled by toolbar config")
            return None
        if command == 'undo':
            return self.undo()
        if command == 'redo':
            return self.redo()

        return self._mutate(lambda: self.surface.apply_format(command, value), f"format {command!r}")

    def insert_fragment(self, spec: FragmentSpec) -> Optional[CommitResult]:
        if self.read_only:
            return None
        feature = 'table' if isinstance(spec, TableSpec) else 'insert'
        if not self.toolbar.get(feature, True):
            logger.info(f"DocumentController: {feature!r} is disabled by toolbar config")
            return None
        markup = build_fragment(spec)
        if not markup:
            logger.info(f"DocumentController: nothing to insert for {type(spec).__name__}")
            return None
        return self._mutate(lambda: self.surface.splice_fragment(markup), f"insert {type(spec).__name__}")

    def undo(self) -> Optional[CommitResult]:
        if self.read_only:
            return None
        previous = self.history.undo(self._content)
        if previous is None:
            logger.debug("DocumentController: nothing to undo")
            return None
        self.surface.set_content(previous)
        result = self._commit(previous, from_history=True)
        if not result.accepted:
            # Only the ungated initial content can exceed the ceiling; keep it on the undo stack
            self.history.redo(previous)
        return result

    def redo(self) -> Optional[CommitResult]:
        if self.read_only:
            return None
        following = self.history.redo(self._content)
        if following is None:
            logger.debug("DocumentController: nothing to redo")
            return None
        self.surface.set_content(following)
        result = self._commit(following, from_history=True)
        if not result.accepted:
            self.history.undo(following)
        return result

    def find_replace(self, spec: FindReplaceSpec) -> Optional[Union[CommitResult, str]]:
        """
        Replace every match (committed, undoable), or with an empty
        replacement show highlights on the surface and return that preview.
        """
        if not spec.pattern:
            logger.info("DocumentController: empty search pattern, skipped")
            return None
        if not self.toolbar.get('findReplace', True):
            logger.info("DocumentController: find/replace is disabled by toolbar config")
            return None

        if spec.is_highlight:
            preview = find_replace(self._content, spec)
            self.surface.set_content(preview)
            return preview

        if self.read_only:
            return None
        replaced = find_replace(self._content, spec)
        return self._mutate(lambda: self.surface.set_content(replaced), f"replace {spec.pattern!r}")

    def count_matches(self, pattern: str) -> int:
        return count_matches(self._content, pattern)

    def clear_highlights(self) -> None:
        self.surface.set_content(self._content)

    # ------------------------------------------------------------------
    # File interchange
    # ------------------------------------------------------------------

    def import_file(self, data: Union[bytes, str], mimetype: Optional[str]) -> Optional[CommitResult]:
        if self.read_only:
            return None
        text = decode_import(data, mimetype)
        if text is None:
            return None
        logger.info(f"DocumentController: importing {len(text)} chars of {mimetype}")
        return self._mutate(lambda: self.surface.set_content(text), "import")

    def export(self, format_ext: str) -> Optional[ExportedFile]:
        return export_document(self._content, format_ext, self.features)

    def export_html(self) -> ExportedFile:
        return export_document(self._content, 'html')

    def export_text(self) -> ExportedFile:
        return export_document(self._content, 'txt')

    def to_dict(self) -> dict:
        return {
            'content': self._content,
            'stats': self._stats.to_dict(),
            'canUndo': self.can_undo,
            'canRedo': self.can_redo,
            'undoDepth': self.history.undo_depth,
            'redoDepth': self.history.redo_depth,
            'selectionText': self.selection_text(),
            'config': self.config.to_dict(),
        }
