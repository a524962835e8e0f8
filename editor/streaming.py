"""
Streaming Content Assembler - Live preview of whole-document generation.

Chunks from the generation stream are appended to a StreamBuffer. After each
chunk the buffer is pushed into the document as its whole content, so the
view always shows what has arrived so far.

Preview policy: an unterminated tag at the end of the buffer (``<p class="``)
is left out of the preview; everything else goes through the tolerant markup
parser, which closes open elements. After ``"<p>A"`` the document holds
``<p>A</p>``. When the stream completes, the full buffer is applied as-is.

After completion, image placeholders in the assembled markup can be filled:
one image request per placeholder, all concurrent, failures left in place.
"""

import codecs
import logging
from typing import Any, AsyncIterator, Iterable, List, Optional, Union

from logging_utils import Phase, PhaseLogger, create_phase_logger
from models import GenerateImagesRequest

from .document import Document
from .errors import GenerationError
from .markup import strip_partial_tag
from .models import AssemblyResult, PlaceholderFillResult
from .placeholders import find_placeholders, images_from_payload, substitute_placeholders

logger = logging.getLogger(__name__)

Chunk = Union[str, bytes]


class StreamBuffer:
    """Append-only accumulator for one generation."""

    def __init__(self):
        self._parts: List[str] = []
        self._discarded = False

    def append(self, text: str) -> None:
        if self._discarded:
            raise RuntimeError("Stream buffer was discarded")
        self._parts.append(text)

    @property
    def value(self) -> str:
        return "".join(self._parts)

    @property
    def discarded(self) -> bool:
        return self._discarded

    def discard(self) -> None:
        self._parts = []
        self._discarded = True

    def __len__(self) -> int:
        return sum(len(part) for part in self._parts)


class StreamingContentAssembler:
    """
    Feeds a generation stream into a document.

    Args:
        document: Document receiving the preview
        base_markup: Markup kept in front of the streamed content (continue-writing)
        phase_logger: Optional logger for the streaming phase

    One assembler consumes one stream; a second ``consume`` call raises.
    """

    def __init__(
        self,
        document: Document,
        base_markup: str = "",
        phase_logger: Optional[PhaseLogger] = None,
    ):
        self.document = document
        self.base_markup = base_markup
        self.buffer = StreamBuffer()
        self.phase_logger = phase_logger or create_phase_logger("stream")
        self.chunk_count = 0
        self.completed = False
        self.interrupted = False
        self.cancelled = False
        self.error: Optional[str] = None
        self._started = False
        self._final_markup: Optional[str] = None

    @property
    def markup(self) -> str:
        """Assembled markup: base plus everything streamed so far."""
        if self._final_markup is not None:
            return self._final_markup
        return self.base_markup + self.buffer.value

    def cancel(self) -> None:
        """Stop applying chunks; content already applied stays."""
        if not self.cancelled:
            logger.info("Streaming cancelled after %d chunks", self.chunk_count)
        self.cancelled = True

    async def consume(self, stream: Union[AsyncIterator[Chunk], Iterable[Chunk]]) -> AsyncIterator[str]:
        """
        Apply ``stream`` chunk by chunk, yielding each decoded chunk after it
        has been pushed into the document.

        A stream error stops consumption without raising: the partial content
        stays in the document and ``interrupted``/``error`` describe what
        happened.
        """
        if self._started:
            raise RuntimeError("StreamingContentAssembler.consume() can only run once")
        self._started = True
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        try:
            async for raw in _aiter(stream):
                if self.cancelled:
                    break
                text = decoder.decode(raw) if isinstance(raw, (bytes, bytearray)) else raw
                if not text:
                    continue
                self.buffer.append(text)
                self.chunk_count += 1
                self.document.set_whole_document(self.base_markup + strip_partial_tag(self.buffer.value))
                yield text
            else:
                tail = decoder.decode(b"", final=True)
                if tail:
                    self.buffer.append(tail)
                self.completed = True
        except Exception as exc:
            self.interrupted = True
            self.error = str(exc) or exc.__class__.__name__
            logger.warning("Generation stream interrupted after %d chunks: %s", self.chunk_count, self.error)

        if self.completed:
            self._final_markup = self.base_markup + self.buffer.value
            self.document.set_whole_document(self._final_markup)

    async def run(self, stream: Union[AsyncIterator[Chunk], Iterable[Chunk]]) -> AssemblyResult:
        """Consume the whole stream and report how it ended."""
        with self.phase_logger.phase(Phase.STREAMING):
            async for _ in self.consume(stream):
                pass
            self.phase_logger.info(
                f"{self.chunk_count} chunks, {len(self.buffer)} chars "
                f"(completed={self.completed}, interrupted={self.interrupted}, cancelled={self.cancelled})"
            )
        return self.result()

    def result(self, placeholders: Optional[PlaceholderFillResult] = None) -> AssemblyResult:
        return AssemblyResult(
            markup=self.markup,
            chunk_count=self.chunk_count,
            completed=self.completed,
            interrupted=self.interrupted,
            cancelled=self.cancelled,
            error=self.error,
            placeholders=placeholders,
        )

    async def fill_placeholders(
        self,
        generation: Any,
        brand_name: Optional[str] = None,
        brand_context: Optional[str] = None,
        image_style: Optional[str] = None,
    ) -> PlaceholderFillResult:
        """
        Replace image placeholders in the assembled markup with generated images.

        Placeholders are matched on the raw assembled markup (the document
        drops their marker attributes when parsing). If the image call fails
        the document is left as it is.
        """
        markup = self.markup
        placeholders = find_placeholders(markup)
        if not placeholders:
            return PlaceholderFillResult(markup, 0, 0)

        with self.phase_logger.phase(Phase.IMAGE_FILL):
            try:
                response = await generation.generate_images(
                    GenerateImagesRequest(
                        html_content=markup,
                        brand_name=brand_name,
                        brand_context=brand_context,
                        image_style=image_style,
                    )
                )
            except Exception as exc:
                error = GenerationError("generate_images", exc)
                self.phase_logger.warning(str(error))
                return PlaceholderFillResult(markup, len(placeholders), 0)

            images = images_from_payload(image.to_payload() for image in response.images)
            filled, resolved = substitute_placeholders(markup, images)
            self._final_markup = filled
            self.document.set_whole_document(filled)
            self.phase_logger.info(f"Filled {resolved}/{len(placeholders)} image placeholders")
        return PlaceholderFillResult(filled, len(placeholders), resolved)

    def discard(self) -> None:
        self.buffer.discard()


async def _aiter(stream: Union[AsyncIterator[Chunk], Iterable[Chunk]]) -> AsyncIterator[Chunk]:
    if hasattr(stream, "__aiter__"):
        async for item in stream:
            yield item
    else:
        for item in stream:
            yield item
