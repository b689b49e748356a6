"""Conversation controller: routes user input to onboarding or RAG chat.

Mode is derived from the onboarding engine alone:
  ONBOARDING → every submission goes to OnboardingEngine.submit()
  CHAT       → retrieve → assemble → complete → append reply

Only one request is in flight at a time; ``busy`` is set for the duration of
a submission or folder connection and always cleared on return, including
when the completion backend fails.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from felicia.chat.transcript import Transcript
from felicia.config import FeliciaConfig
from felicia.ingest.base import FolderEntry, FolderSelectionCancelled, IngestCancelled, IngestError
from felicia.ingest.corpus import EMPTY_CORPUS, CorpusIndex, ingest
from felicia.models import ASSISTANT, KNOWLEDGE_PATH, NAME, USER, Message
from felicia.onboarding.engine import OnboardingEngine
from felicia.onboarding.script import DEFAULT_SCRIPT, OnboardingStep
from felicia.rag.assembler import SYSTEM_PROMPT, assemble
from felicia.rag.llm_client import CompletionFn
from felicia.rag.retriever import retrieve
from felicia.store.session import SessionStore

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "Sorry, I could not reach the local AI just now. "
    "Make sure your model server (e.g. Ollama) is running, then try again."
)

CONNECTED = "connected"
CANCELLED = "cancelled"
FAILED = "failed"


class Mode(str, Enum):
    ONBOARDING = "onboarding"
    CHAT = "chat"


class ControllerBusyError(RuntimeError):
    """Raised when input arrives while a request is still outstanding."""


@dataclass
class IngestReport:
    """Result of ``connect_folder``.

    Attributes:
        outcome: 'connected', 'cancelled' (user declined, not an error),
            or 'failed' (previous corpus kept).
        documents: Documents in the active corpus after the call.
        skipped: Files skipped as unreadable during this ingestion.
        message: Human-readable summary for display.
    """

    outcome: str
    documents: int = 0
    skipped: int = 0
    message: str = ""


class ConversationController:
    """Orchestrate onboarding, retrieval, prompt assembly, and completion."""

    def __init__(
        self,
        session: SessionStore,
        complete: CompletionFn,
        config: FeliciaConfig | None = None,
        script: tuple[OnboardingStep, ...] = DEFAULT_SCRIPT,
        folder_opener: Callable[[str], FolderEntry] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or FeliciaConfig()
        self.session = session
        self.engine = OnboardingEngine(session, script)
        self.transcript = Transcript(session)
        self.corpus: CorpusIndex = EMPTY_CORPUS
        self.busy = False
        self._complete = complete
        self._folder_opener = folder_opener
        self._sleep = sleep

    @property
    def mode(self) -> Mode:
        return Mode.CHAT if self.engine.is_complete else Mode.ONBOARDING

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def start(self) -> Message | None:
        """Open the conversation if the transcript is empty.

        Onboarding shows the current step's prompt; chat mode greets a
        returning user by name.
        """
        if len(self.transcript):
            return None
        if self.mode is Mode.ONBOARDING:
            text = self.engine.current_prompt() or ""
        else:
            name = self.engine.facts.get(NAME) or "friend"
            text = f"Welcome back, {name}! How can I help you today?"
        return self.transcript.append(Message(ASSISTANT, text))

    def submit(self, text: str) -> Message | None:
        """Process one user submission to completion.

        Blank input is ignored. Returns the last assistant message appended,
        or None if nothing was appended.

        Raises:
            ControllerBusyError: If a previous request is still outstanding.
        """
        text = text.strip()
        if not text:
            return None
        if self.busy:
            raise ControllerBusyError("A request is already in progress")

        self.busy = True
        try:
            if self.mode is Mode.ONBOARDING:
                return self._submit_onboarding(text)
            return self._submit_chat(text)
        finally:
            self.busy = False

    def _submit_onboarding(self, text: str) -> Message | None:
        self.transcript.append(Message(USER, text))
        result = self.engine.submit(text)
        if result.prompt is None:
            return None

        self._sleep(self.config.onboarding.turn_delay)
        reply = self.transcript.append(Message(ASSISTANT, result.prompt))

        path = self.engine.facts.get(KNOWLEDGE_PATH)
        if result.complete and path and self._folder_opener is not None:
            opener = self._folder_opener
            report = self._connect(lambda: opener(path))
            reply = self.transcript.append(Message(ASSISTANT, report.message))
        return reply

    def _submit_chat(self, text: str) -> Message:
        history = self.transcript.messages
        self.transcript.append(Message(USER, text))

        snippets = retrieve(text, self.corpus, self.config.retrieval)
        prompt = assemble(self.engine.facts, snippets, history, text, self.config.context)
        logger.debug("Prompt assembled: %d snippets, %d chars", len(snippets), len(prompt))

        try:
            reply = self._complete(SYSTEM_PROMPT, prompt)
        except Exception as exc:
            # Backend failure is non-fatal; degrade to the fallback reply
            logger.warning("Completion request failed: %s", exc)
            reply = FALLBACK_MESSAGE

        return self.transcript.append(Message(ASSISTANT, reply))

    # ------------------------------------------------------------------
    # Knowledge folder
    # ------------------------------------------------------------------

    def connect_folder(
        self,
        select: Callable[[], FolderEntry],
        should_cancel: Callable[[], bool] | None = None,
    ) -> IngestReport:
        """Select a folder, ingest it, and swap it in as the active corpus.

        *select* returns the folder's root entry, or raises
        FolderSelectionCancelled if the user backs out. On cancellation or
        failure the previous corpus stays active.

        Raises:
            ControllerBusyError: If a previous request is still outstanding.
        """
        if self.busy:
            raise ControllerBusyError("A request is already in progress")
        self.busy = True
        try:
            return self._connect(select, should_cancel)
        finally:
            self.busy = False

    def _connect(
        self,
        select: Callable[[], FolderEntry],
        should_cancel: Callable[[], bool] | None = None,
    ) -> IngestReport:
        try:
            root = select()
            corpus = ingest(root, self.config.ingest, should_cancel=should_cancel)
        except (FolderSelectionCancelled, IngestCancelled):
            logger.info("Knowledge folder connection cancelled")
            return IngestReport(
                CANCELLED,
                documents=len(self.corpus),
                message="No folder connected. Your previous knowledge is unchanged.",
            )
        except (IngestError, OSError) as exc:
            logger.warning("Knowledge folder ingestion failed: %s", exc)
            return IngestReport(
                FAILED,
                documents=len(self.corpus),
                message=f"I could not read that knowledge folder: {exc}",
            )

        self.corpus = corpus
        noun = "document" if len(corpus) == 1 else "documents"
        return IngestReport(
            CONNECTED,
            documents=len(corpus),
            skipped=corpus.skipped,
            message=f"Knowledge folder connected: {len(corpus)} {noun} ready.",
        )

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear profile, transcript, and completion flag; restart onboarding."""
        self.session.clear()
        self.engine.reset()
        self.transcript.clear()
        logger.info("Session reset")
