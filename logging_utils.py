"""
Phase Logging for Copydesk
==========================

Colored console logging scoped to the steps of an editing flow: a panel
submission, a streamed generation, the placeholder fill after it, a
translation. Each step is a phase; entering one prints a banner and leaving
it prints how long it took. Console output stays ASCII-only.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, List, NamedTuple, Optional

from colorama import Fore, Style, init

init(autoreset=True)


class Phase:
    """Phase names used by the editing and generation flows"""
    SELECTION_EDIT = "SELECTION_EDIT"
    IMAGE_EDIT = "IMAGE_EDIT"
    STREAMING = "STREAMING_GENERATION"
    IMAGE_FILL = "PLACEHOLDER_IMAGE_FILL"
    TRANSLATION = "TRANSLATION"
    CONTINUATION = "CONTINUE_WRITING"
    SEO = "SEO_METADATA"
    KEYWORDS = "KEYWORD_SUGGESTIONS"


class PhaseStyle(NamedTuple):
    color: str
    tag: str


PHASE_STYLES: Dict[str, PhaseStyle] = {
    Phase.SELECTION_EDIT: PhaseStyle(Fore.YELLOW, "[EDT]"),
    Phase.IMAGE_EDIT: PhaseStyle(Fore.MAGENTA, "[IMG]"),
    Phase.STREAMING: PhaseStyle(Fore.GREEN, "[STR]"),
    Phase.IMAGE_FILL: PhaseStyle(Fore.BLUE, "[FIL]"),
    Phase.TRANSLATION: PhaseStyle(Fore.CYAN + Style.BRIGHT, "[TRN]"),
    Phase.CONTINUATION: PhaseStyle(Fore.GREEN + Style.BRIGHT, "[CNT]"),
    Phase.SEO: PhaseStyle(Fore.BLUE + Style.BRIGHT, "[SEO]"),
    Phase.KEYWORDS: PhaseStyle(Fore.MAGENTA + Style.BRIGHT, "[KWD]"),
}

_DEFAULT_STYLE = PhaseStyle(Fore.WHITE, "[---]")

# Outcome statuses grouped by how they are rendered
_GOOD_OUTCOMES = {"applied", "completed", "saved"}
_SOFT_OUTCOMES = {"stale", "cancelled", "rejected"}


def style_for(phase_name: Optional[str]) -> PhaseStyle:
    return PHASE_STYLES.get(phase_name, _DEFAULT_STYLE)


class PhaseLogger:
    """
    Phase-aware logger for one editing session or request.

    Usage:
        phase_logger = create_phase_logger("panel-3", verbose=True)

        with phase_logger.phase(Phase.SELECTION_EDIT):
            phase_logger.info("Submitting instruction")
            phase_logger.log_prompt("gpt-4o", system_prompt, user_prompt)

    Phases nest; ``durations`` keeps the elapsed seconds of every finished
    phase in the order they ended.
    """

    def __init__(
        self,
        session_id: str,
        verbose: bool = False,
        extra_verbose: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        self.session_id = session_id
        self.verbose = verbose or extra_verbose
        self.extra_verbose = extra_verbose
        self.logger = logger or logging.getLogger(__name__)
        self.durations: List[tuple] = []
        self._stack: List[str] = []

    @property
    def current_phase(self) -> Optional[str]:
        return self._stack[-1] if self._stack else None

    @contextmanager
    def phase(self, phase_name: str, sub_label: Optional[str] = None):
        """Run a block inside ``phase_name``; the footer is printed even when the block raises."""
        style = style_for(phase_name)
        label = f"{phase_name} - {sub_label}" if sub_label else phase_name
        self.logger.info(f"{style.color}{style.tag} >>> {label} [{self.session_id}]{Style.RESET_ALL}")

        self._stack.append(phase_name)
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            self._stack.pop()
            self.durations.append((phase_name, elapsed))
            self.logger.info(f"{style.color}{style.tag} <<< {phase_name} done in {elapsed:.2f}s{Style.RESET_ALL}")

    def _prefix(self) -> str:
        if not self._stack:
            return ""
        style = style_for(self.current_phase)
        return f"{style.color}{style.tag}{Style.RESET_ALL} "

    def info(self, message: str):
        self.logger.info(f"{self._prefix()}{message}")

    def debug(self, message: str):
        """Only emitted in verbose mode"""
        if self.verbose:
            self.logger.debug(f"{self._prefix()}{Style.DIM}{message}{Style.RESET_ALL}")

    def warning(self, message: str):
        self.logger.warning(f"{self._prefix()}{Fore.YELLOW}{message}{Style.RESET_ALL}")

    def error(self, message: str):
        self.logger.error(f"{self._prefix()}{Fore.RED}{Style.BRIGHT}{message}{Style.RESET_ALL}")

    def _dump(self, title: str, sections: List[tuple]):
        style = style_for(self.current_phase)
        rule = "-" * 60
        self.logger.info(f"{style.color}{rule}\n{title}{Style.RESET_ALL}")
        for heading, body in sections:
            if body:
                self.logger.info(f"{Fore.CYAN}[{heading}]{Style.RESET_ALL}\n{body}")
        self.logger.info(f"{style.color}{rule}{Style.RESET_ALL}")

    def log_prompt(self, model: str, system_prompt: Optional[str], user_prompt: str):
        """Full prompt text, extra verbose only"""
        if self.extra_verbose:
            self._dump(f"PROMPT -> {model}", [("SYSTEM", system_prompt), ("USER", user_prompt)])

    def log_response(self, model: str, response: str, metadata: Optional[Dict[str, Any]] = None):
        """Full model output, extra verbose only"""
        if self.extra_verbose:
            meta = ", ".join(f"{key}={value}" for key, value in (metadata or {}).items())
            self._dump(f"RESPONSE <- {model}", [("META", meta), ("BODY", response)])

    def log_outcome(self, status: str, detail: Optional[str] = None):
        """How a flow ended (applied, failed, stale...)"""
        key = status.lower()
        if key in _GOOD_OUTCOMES:
            color = Fore.GREEN + Style.BRIGHT
        elif key in _SOFT_OUTCOMES:
            color = Fore.YELLOW
        else:
            color = Fore.RED + Style.BRIGHT
        suffix = f": {detail}" if detail else ""
        self.logger.info(f"{color}outcome={key}{suffix}{Style.RESET_ALL}")


def create_phase_logger(
    session_id: str,
    verbose: bool = False,
    extra_verbose: bool = False
) -> PhaseLogger:
    """Create a PhaseLogger for one session or request"""
    return PhaseLogger(
        session_id=session_id,
        verbose=verbose,
        extra_verbose=extra_verbose
    )
