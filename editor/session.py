"""
Editor Session - One document being edited, with everything attached to it.

A session owns:
- the Document and its RenderedView (re-rendered after every change)
- the HighlightOverlay drawn on that view
- the PanelController (one inline panel per session)
- the current selection, view mode and save status

Changes are saved through an awaitable ``on_save(markup)`` callback, debounced
so that a burst of edits produces one save once the document has been idle.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from config import EditorSettings, config
from logging_utils import Phase, create_phase_logger
from models import ContinueWritingRequest, GenerateContentRequest, TranslateRequest

from . import commands
from .document import Document
from .errors import GenerationError
from .highlight import HighlightOverlay, RenderedView
from .models import AssemblyResult, DocumentStats, Range, SaveStatus, ViewMode
from .nodes import MarkKind, NodeKind
from .panel import PanelController
from .streaming import StreamingContentAssembler

logger = logging.getLogger(__name__)

SaveCallback = Callable[[str], Awaitable[Any]]
SessionListener = Callable[["EditorSession"], None]


class EditorSession:
    """
    Editing session for one document.

    Example:
        session = EditorSession("<p>Our shipping is very fast.</p>", generation=service)
        session.select(Range(17, 26))
        session.panel.open()
        await session.panel.submit("make this more specific")
    """

    def __init__(
        self,
        markup: str = "",
        generation: Any = None,
        on_save: Optional[SaveCallback] = None,
        settings: Optional[EditorSettings] = None,
        brand_name: Optional[str] = None,
        image_style: Optional[str] = None,
    ):
        self.settings = settings or config.EDITOR
        self.generation = generation
        self.on_save = on_save
        self.brand_name = brand_name

        self.document = Document.from_markup(markup)
        self.view = RenderedView(self.document)
        self.overlay = HighlightOverlay(self.view)
        self.panel = PanelController(self, generation, brand_name, image_style, self.settings)

        self.selection = Range.caret(0)
        self.view_mode = ViewMode.VISUAL
        self.save_status = SaveStatus.SAVED
        self.last_error: Optional[str] = None
        self.busy = False

        self._listeners: List[SessionListener] = []
        self._save_task: Optional[asyncio.Task] = None
        self.document.subscribe(self._on_document_change)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def markup(self) -> str:
        return self.document.serialize()

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def select(self, range: Range) -> None:
        self.document.check_range(range)
        self.selection = range

    def set_view_mode(self, mode: ViewMode) -> None:
        if mode is not ViewMode.VISUAL:
            self.panel.close()
        self.view_mode = mode

    def set_source(self, markup: str) -> None:
        """Markup edited in the source view replaces the document."""
        self.document.set_whole_document(markup)

    def toolbar_visible(self) -> bool:
        return self.panel.toolbar_visible(self.selection)

    def _on_document_change(self, document: Document) -> None:
        self.view.render(document)
        self.selection = self.selection.clamp(document.size)
        self.save_status = SaveStatus.UNSAVED
        self._schedule_save()
        for listener in list(self._listeners):
            listener(self)

    # =========================================================================
    # AUTOSAVE
    # =========================================================================

    def _schedule_save(self) -> None:
        if self.on_save is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: stay unsaved until flush() is awaited
            return
        if self._save_task is not None and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = loop.create_task(self._save_after_delay())

    async def _save_after_delay(self) -> None:
        await asyncio.sleep(self.settings.autosave_delay_seconds)
        await self._save()

    async def _save(self) -> None:
        if self.on_save is None:
            return
        self.save_status = SaveStatus.SAVING
        try:
            await self.on_save(self.markup)
        except Exception as exc:
            self.save_status = SaveStatus.ERROR
            self.last_error = f"Save failed: {exc}"
            logger.error("Autosave failed: %s", exc)
            return
        self.save_status = SaveStatus.SAVED

    async def flush(self) -> None:
        """Save now if there are unsaved changes, cancelling any pending autosave."""
        if self._save_task is not None and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = None
        if self.save_status in (SaveStatus.UNSAVED, SaveStatus.ERROR):
            await self._save()

    # =========================================================================
    # STATISTICS
    # =========================================================================

    @property
    def word_count(self) -> int:
        return len(self.document.text_between(0, self.document.size, " ").split())

    @property
    def character_count(self) -> int:
        return len(self.document.text_content())

    def stats(self) -> DocumentStats:
        nodes = [node for node, _ in self.document.nodes_between(0, self.document.size)]
        return DocumentStats(
            words=self.word_count,
            characters=self.character_count,
            blocks=sum(1 for node in nodes if node.kind.is_textblock),
            images=sum(1 for node in nodes if node.kind is NodeKind.IMAGE),
        )

    # =========================================================================
    # TOOLBAR
    # =========================================================================

    def toggle_bold(self) -> bool:
        return commands.toggle_bold(self.document, self.selection)

    def toggle_italic(self) -> bool:
        return commands.toggle_italic(self.document, self.selection)

    def is_active(self, kind: MarkKind) -> bool:
        if self.selection.empty:
            return False
        return commands.is_marked(self.document, self.selection, kind)

    def set_paragraph(self) -> None:
        commands.set_paragraph(self.document, self.selection)

    def set_heading(self, level: int) -> None:
        commands.toggle_heading(self.document, self.selection, level)

    def toggle_bullet_list(self) -> None:
        commands.toggle_bullet_list(self.document, self.selection)

    def toggle_ordered_list(self) -> None:
        commands.toggle_ordered_list(self.document, self.selection)

    def toggle_blockquote(self) -> None:
        commands.toggle_blockquote(self.document, self.selection)

    def set_link(self, href: str) -> None:
        if href:
            commands.set_link(self.document, self.selection, href)
        else:
            commands.unset_link(self.document, self.selection)

    def unset_link(self) -> None:
        commands.unset_link(self.document, self.selection)

    def insert_image(self, src: str, alt: Optional[str] = None) -> None:
        inserted = commands.insert_image(self.document, self.selection, src, alt)
        self.selection = Range.caret(inserted.end)

    def insert_horizontal_rule(self) -> None:
        inserted = commands.insert_horizontal_rule(self.document, self.selection)
        self.selection = Range.caret(inserted.end)

    # =========================================================================
    # GENERATION FLOWS
    # =========================================================================

    async def translate(self, source_language: str, target_language: str, brand_names=None) -> bool:
        """Replace the document with its translation. Returns False (document untouched) on failure."""
        phase_logger = create_phase_logger("session-translate", verbose=config.VERBOSE)
        with phase_logger.phase(Phase.TRANSLATION, sub_label=f"{source_language}->{target_language}"):
            try:
                translated = await self.generation.translate(
                    TranslateRequest(
                        content_html=self.markup,
                        source_language=source_language,
                        target_language=target_language,
                        brand_names=list(brand_names or ([self.brand_name] if self.brand_name else [])),
                    )
                )
            except Exception as exc:
                self.last_error = str(GenerationError("translate", exc))
                phase_logger.error(self.last_error)
                return False
            if not translated:
                self.last_error = "Translation returned no content"
                return False
            self.document.set_whole_document(translated)
        return True

    async def continue_writing(self, project_type: str = "blog", brand_name: Optional[str] = None) -> str:
        """
        Stream a continuation onto the end of the document.

        Returns the appended markup; whatever arrived before a stream error
        stays in the document.
        """
        if self.busy:
            return ""
        self.busy = True
        try:
            base = self.markup
            tail = base[-self.settings.continuation_tail_chars:]
            assembler = StreamingContentAssembler(self.document, base_markup=base)
            try:
                stream = self.generation.continue_writing(
                    ContinueWritingRequest(
                        last_content=tail,
                        project_type=project_type,
                        brand_name=brand_name or self.brand_name,
                    )
                )
            except Exception as exc:
                self.last_error = str(GenerationError("continue_writing", exc))
                return ""
            with assembler.phase_logger.phase(Phase.CONTINUATION):
                result = await assembler.run(stream)
            if result.error:
                self.last_error = str(GenerationError("continue_writing", RuntimeError(result.error)))
            self.selection = Range.caret(self.document.size)
            return assembler.buffer.value
        finally:
            self.busy = False

    async def generate(
        self,
        request: GenerateContentRequest,
        image_style: Optional[str] = None,
        fill_images: bool = True,
    ) -> AssemblyResult:
        """
        Whole-document generation: stream into the document, then fill image placeholders.

        The document is replaced as chunks arrive; the caller persists the
        final markup (``result.markup`` or ``session.markup``).
        """
        self.panel.close()
        assembler = StreamingContentAssembler(self.document)
        self.busy = True
        try:
            try:
                stream = self.generation.generate_content(request)
            except Exception as exc:
                self.last_error = str(GenerationError("generate_content", exc))
                return assembler.result()
            result = await assembler.run(stream)
            if result.interrupted:
                self.last_error = str(GenerationError("generate_content", RuntimeError(result.error)))
                return result
            if fill_images and result.completed:
                fill = await assembler.fill_placeholders(
                    self.generation,
                    brand_name=request.brand_name,
                    brand_context=request.brand_context,
                    image_style=image_style,
                )
                result = assembler.result(fill)
            return result
        finally:
            self.busy = False
