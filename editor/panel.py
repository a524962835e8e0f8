"""
Inline Command Panel - Instruction entry anchored to a selection.

State machine:

    CLOSED --open()--> OPEN --submit()--> SUBMITTING --success--> CLOSED
                        ^                     |
                        +------failure--------+
    OPEN --close() / Escape / outside click--> CLOSED

Only one panel is open per session; while it is open the ambient selection
toolbar stays hidden. Every open and close advances an epoch counter; a
submission remembers the epoch it started in and discards its result if the
epoch has moved on by the time the generation call returns.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from config import EditorSettings, config
from logging_utils import Phase, create_phase_logger
from models import EditSelectionRequest, RegenerateImageRequest

from .errors import EditorError, GenerationError
from .models import (
    HighlightHandle,
    PanelOutcome,
    PanelPosition,
    PanelState,
    Range,
    SelectionRect,
    SelectionSnapshot,
    SubmitStatus,
)
from .nodes import image
from .selection import capture
from .splice import SpliceBackEngine

if TYPE_CHECKING:
    from .session import EditorSession

logger = logging.getLogger(__name__)


class PanelController:
    """
    Owns the panel lifecycle for one editing session.

    Args:
        session: Session whose document, selection and highlight overlay are used
        generation: Generation capability (GenerationService or AsyncCopydeskClient)
        brand_name: Brand passed along with text edits
        image_style: Style hint passed along with image edits
    """

    def __init__(
        self,
        session: "EditorSession",
        generation: Any,
        brand_name: Optional[str] = None,
        image_style: Optional[str] = None,
        settings: Optional[EditorSettings] = None,
    ):
        self.session = session
        self.generation = generation
        self.brand_name = brand_name
        self.image_style = image_style
        self.settings = settings or config.EDITOR
        self.splicer = SpliceBackEngine()

        self.state = PanelState.CLOSED
        self.epoch = 0
        self.instruction = ""
        self.snapshot: Optional[SelectionSnapshot] = None
        self.highlight: Optional[HighlightHandle] = None
        self.position: Optional[PanelPosition] = None
        self.focused = False
        self.error: Optional[str] = None
        self.last_outcome: Optional[PanelOutcome] = None

    @property
    def is_open(self) -> bool:
        return self.state is not PanelState.CLOSED

    def toolbar_visible(self, range: Optional[Range]) -> bool:
        """Whether the ambient selection toolbar may show for ``range``."""
        if self.is_open or range is None:
            return False
        return not range.empty

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def open(self, anchor_range: Optional[Range] = None, rect: Optional[SelectionRect] = None) -> bool:
        """
        Capture the selection, highlight it and show the panel.

        Returns False (and stays closed) when a panel is already open or the
        selection is empty.
        """
        if self.is_open:
            logger.debug("Panel already open, ignoring open request")
            return False

        range = anchor_range or self.session.selection
        snapshot = capture(self.session.document, range, self.settings.context_window)
        if snapshot is None:
            logger.debug("Empty selection, panel not opened")
            return False

        self.epoch += 1
        self.snapshot = snapshot
        self.error = None
        self.highlight = self.session.overlay.apply(snapshot.range)
        self.position = self._position_for(rect) if rect else None
        self.state = PanelState.OPEN
        self.focused = True
        logger.debug("Panel opened at epoch %d for %s", self.epoch, snapshot.range.to_dict())
        return True

    def close(self) -> None:
        """Dismiss the panel; any in-flight result becomes stale."""
        if self.state is PanelState.CLOSED:
            return
        self._remove_highlight()
        self.state = PanelState.CLOSED
        self.epoch += 1
        self.instruction = ""
        self.snapshot = None
        self.position = None
        self.focused = False
        logger.debug("Panel closed, epoch now %d", self.epoch)

    def set_instruction(self, text: str) -> None:
        self.instruction = text

    async def handle_key(self, key: str, ctrl: bool = False, meta: bool = False) -> Optional[PanelOutcome]:
        """Escape closes; Ctrl/Cmd+Enter submits."""
        if not self.is_open:
            return None
        if key == "Escape":
            self.close()
            return None
        if key == "Enter" and (ctrl or meta):
            return await self.submit()
        return None

    def handle_outside_click(self, inside_panel: bool) -> None:
        if self.is_open and not inside_panel:
            self.close()

    def _position_for(self, rect: SelectionRect) -> PanelPosition:
        top = rect.top + rect.scroll_y - self.settings.panel_vertical_offset
        left = max(
            float(self.settings.panel_min_left),
            rect.left + rect.width / 2 - self.settings.panel_width / 2,
        )
        return PanelPosition(top=top, left=left)

    def _remove_highlight(self) -> None:
        self.session.overlay.remove(self.highlight)
        self.highlight = None

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def submit(self, instruction: Optional[str] = None) -> PanelOutcome:
        if instruction is not None:
            self.instruction = instruction
        text = self.instruction.strip()

        if self.state is not PanelState.OPEN or self.snapshot is None:
            return self._finish(PanelOutcome(SubmitStatus.REJECTED, "Panel is not open", epoch=self.epoch))
        if not text:
            return self._finish(PanelOutcome(SubmitStatus.REJECTED, "Instruction is empty", epoch=self.epoch))

        epoch = self.epoch
        snapshot = self.snapshot
        self.state = PanelState.SUBMITTING
        self.error = None
        if self.highlight is None:
            self.highlight = self.session.overlay.apply(snapshot.range)

        phase_logger = create_phase_logger(
            f"panel-{epoch}", verbose=config.VERBOSE, extra_verbose=config.EXTRA_VERBOSE
        )
        phase = Phase.IMAGE_EDIT if snapshot.is_image else Phase.SELECTION_EDIT
        action = "image edit" if snapshot.is_image else "selection edit"
        with phase_logger.phase(phase):
            try:
                if snapshot.is_image:
                    response = await self.generation.regenerate_image(
                        RegenerateImageRequest(
                            prompt=text,
                            original_alt=(snapshot.image.alt_text if snapshot.image else "") or "",
                            image_style=self.image_style,
                        )
                    )
                else:
                    response = await self.generation.edit_selection(
                        EditSelectionRequest(
                            selected_html=snapshot.selected_markup,
                            instruction=text,
                            context_before=snapshot.context_before,
                            context_after=snapshot.context_after,
                            brand_name=self.brand_name,
                        )
                    )
            except Exception as exc:
                if epoch != self.epoch:
                    return self._finish(PanelOutcome(SubmitStatus.STALE, epoch=epoch), phase_logger)
                return self._fail(GenerationError(action, exc), epoch, phase_logger)

            if epoch != self.epoch:
                logger.info("Discarding result for epoch %d (current %d)", epoch, self.epoch)
                return self._finish(PanelOutcome(SubmitStatus.STALE, epoch=epoch), phase_logger)

            result = response.image_url if snapshot.is_image else response
            if not (result or "").strip():
                return self._fail(GenerationError(action, ValueError("empty response")), epoch, phase_logger)

            try:
                if snapshot.is_image:
                    splice = None
                    self._replace_image(snapshot, response.image_url, response.alt)
                else:
                    self._remove_highlight()
                    splice = self.splicer.apply(
                        self.session.document,
                        snapshot.selected_markup,
                        response,
                        snapshot.range,
                    )
            except EditorError as exc:
                return self._fail(exc, epoch, phase_logger)

            self.close()
            return self._finish(PanelOutcome(SubmitStatus.APPLIED, splice=splice, epoch=epoch), phase_logger)

    def _replace_image(self, snapshot: SelectionSnapshot, source: str, alt: Optional[str]) -> None:
        document = self.session.document
        original = snapshot.image.source if snapshot.image else None
        alt_text = alt or (snapshot.image.alt_text if snapshot.image else None) or ""

        position = None
        if snapshot.range.end <= document.size:
            for pos, attrs in document.images_between(snapshot.range.start, snapshot.range.end):
                if attrs.source == original:
                    position = pos
                    break
        if position is None:
            position = document.find_image(original)
        if position is None:
            raise EditorError("Image to replace is no longer in the document", {"src": original})

        self._remove_highlight()
        document.replace_node(position, image(source, alt_text))

    def _fail(self, error: EditorError, epoch: int, phase_logger) -> PanelOutcome:
        """Generation or splice failure: document untouched, panel stays open for retry."""
        self._remove_highlight()
        self.state = PanelState.OPEN
        self.error = str(error)
        phase_logger.error(self.error)
        return self._finish(PanelOutcome(SubmitStatus.FAILED, self.error, epoch=epoch), phase_logger)

    def _finish(self, outcome: PanelOutcome, phase_logger=None) -> PanelOutcome:
        self.last_outcome = outcome
        if phase_logger is not None:
            phase_logger.log_outcome(outcome.status.value, outcome.error)
        else:
            logger.debug("Panel submission %s: %s", outcome.status.value, outcome.error)
        return outcome
