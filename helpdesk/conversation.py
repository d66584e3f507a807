"""Step-by-step troubleshooting conversation driven by the knowledge base."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from .config import config
from .defaults import WELCOME_MESSAGE
from .matcher import QueryMatcher
from .models import ChatMessage, ConversationState
from .repository import RepositoryUnavailableError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from .models import Question, Solution
    from .repository import KnowledgeRepository

logger = config.get_logger(__name__)

WELCOME_MESSAGE_ID = "welcome"

NO_MATCH_MESSAGE = (
    "I couldn't find a specific solution for your issue. Could you try "
    "rephrasing your question or provide more details? You can also type the "
    "number of a known issue, or ask about 'boot issues', 'network problems' "
    "or 'performance issues'."
)
NO_STEPS_MESSAGE = (
    'I found a matching issue, "{title}", but don\'t have specific steps '
    "available. Please contact support for further assistance."
)
MULTIPLE_MATCHES_MESSAGE = (
    "I found several issues that might match. Reply with the number of the "
    "one that fits best, or describe your problem in more detail:\n\n{options}"
)
FIRST_STEP_MESSAGE = (
    'I found a solution for "{title}". Let\'s try this first step:\n\n{text}'
)
NEXT_STEP_MESSAGE = "Let's try the next step:\n\n{text}"
RESOLVED_MESSAGE = (
    "Great! I'm glad that worked. Is there anything else I can help you with?"
)
EXHAUSTED_MESSAGE = (
    "I've exhausted all the troubleshooting steps I have for this issue. I "
    "recommend contacting technical support for further assistance. Is there "
    "anything else I can help you with?"
)
SEARCH_FAILED_MESSAGE = (
    "I'm having trouble processing your request right now. This might be "
    "because the support system is offline. Please try again in a moment, or "
    "try asking about common issues like 'computer won't start', 'no internet' "
    "or 'black screen'."
)
STEP_FAILED_MESSAGE = (
    "I encountered an error while trying to get the troubleshooting steps. "
    "Please try starting over with your question or contact support directly."
)


def welcome_message() -> ChatMessage:
    """Build the greeting that opens every chat session."""
    return ChatMessage(role="bot", content=WELCOME_MESSAGE, id=WELCOME_MESSAGE_ID)


def format_step(template: str, solution: Solution, **fields: str) -> str:
    """Render a step message, appending the step's helpful links.

    Returns:
        Message text ready for display.
    """
    text = template.format(text=solution.text, **fields)
    if solution.helpful_links:
        links = "\n".join(f"- {link}" for link in solution.helpful_links)
        text = f"{text}\n\nHelpful links:\n{links}"
    return text


class ConversationManager:
    """Walks one chat session through the troubleshooting steps of a question.

    The session is either idle (no current question, step 0) or working
    through step ``n`` of a question. User text is matched against the
    knowledge base; a single match starts its first step, several matches are
    listed for the user to pick by number. Step outcomes advance or close the
    current question. Any repository failure ends in an apology and an idle
    session.
    """

    def __init__(
        self,
        repository: KnowledgeRepository,
        matcher: QueryMatcher | None = None,
    ) -> None:
        """Initialize ConversationManager.

        Args:
            repository: Knowledge base the session reads questions and steps from.
            matcher: Query matcher. Defaults to ``QueryMatcher()``.
        """
        self.repository = repository
        self.matcher = matcher or QueryMatcher()
        self.state = ConversationState(messages=[welcome_message()])

    @property
    def messages(self) -> list[ChatMessage]:
        return self.state.messages

    @property
    def current_question(self) -> Question | None:
        return self.state.current_question

    @property
    def current_step(self) -> int:
        return self.state.current_step

    @property
    def is_typing(self) -> bool:
        return self.state.is_typing

    def history_text(self) -> str:
        """Render the message log as plain text, one message per paragraph.

        Returns:
            The transcript with ``User:``/``Bot:`` prefixes.
        """
        lines = []
        for message in self.state.messages:
            speaker = "User" if message.role == "user" else "Bot"
            lines.append(f"{speaker}: {message.content}")
        return "\n\n".join(lines)

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self.state.is_typing = True
        try:
            yield
        finally:
            self.state.is_typing = False

    def _emit(self, content: str, **kwargs: object) -> ChatMessage:
        message = ChatMessage(role="bot", content=content, **kwargs)  # type: ignore[arg-type]
        self.state.messages.append(message)
        return message

    def _go_idle(self) -> None:
        self.state.current_question = None
        self.state.current_step = 0

    def _enter_step(self, question: Question, step: int) -> None:
        self.state.current_question = question
        self.state.current_step = step

    def submit_user_input(self, text: str) -> list[ChatMessage]:
        """Handle a free-text description or a question number from the user.

        Returns:
            The bot messages emitted in response; empty if the input was blank
            or another submission is still being handled.
        """
        if self.state.is_typing:
            logger.warning("Ignoring input while a response is pending")
            return []

        query = text.strip()
        if not query:
            return []

        self.state.messages.append(ChatMessage(role="user", content=query))

        with self._busy():
            try:
                questions = self.repository.list_questions()
            except RepositoryUnavailableError:
                logger.exception("Question search failed")
                self._go_idle()
                return [self._emit(SEARCH_FAILED_MESSAGE)]

            candidates = self.matcher.match(query, questions)

            if not candidates:
                self._go_idle()
                return [self._emit(NO_MATCH_MESSAGE)]

            if len(candidates) > 1:
                self._go_idle()
                return [self._emit(self._format_options(candidates, questions))]

            return [self._start_question(candidates[0])]

    def _start_question(self, question: Question) -> ChatMessage:
        logger.info("Starting troubleshooting for question %d", question.id)
        try:
            solution = self.repository.get_solution_step(question.id, 1)
        except RepositoryUnavailableError:
            logger.exception("Fetching step 1 of question %d failed", question.id)
            self._go_idle()
            return self._emit(STEP_FAILED_MESSAGE)

        if solution is None:
            self._go_idle()
            return self._emit(NO_STEPS_MESSAGE.format(title=question.title))

        self._enter_step(question, 1)
        return self._emit(
            format_step(FIRST_STEP_MESSAGE, solution, title=question.title),
            question_id=question.id,
            step=1,
            show_actions=True,
        )

    @staticmethod
    def _format_options(
        candidates: Sequence[Question], questions: Sequence[Question]
    ) -> str:
        """List candidates numbered by their position in the full question list.

        Returns:
            Disambiguation message text.
        """
        positions = {question.id: index for index, question in enumerate(questions, 1)}
        options = "\n".join(
            f"{positions[question.id]}. {question.title}" for question in candidates
        )
        return MULTIPLE_MATCHES_MESSAGE.format(options=options)

    def submit_step_outcome(
        self, worked: bool, question_id: int, step: int
    ) -> list[ChatMessage]:
        """Handle the user's answer to a troubleshooting step.

        Outcomes are only accepted for the step the session is currently on;
        clicks on older step messages are ignored.

        Returns:
            The bot messages emitted in response.
        """
        if self.state.is_typing:
            logger.warning("Ignoring step outcome while a response is pending")
            return []

        question = self.state.current_question
        if (
            question is None
            or question.id != question_id
            or self.state.current_step != step
        ):
            logger.info(
                "Ignoring stale outcome for question %s step %s", question_id, step
            )
            return []

        with self._busy():
            if worked:
                logger.info("Question %d resolved at step %d", question.id, step)
                self._go_idle()
                return [self._emit(RESOLVED_MESSAGE)]

            next_step = step + 1
            try:
                solution = self.repository.get_solution_step(question.id, next_step)
            except RepositoryUnavailableError:
                logger.exception(
                    "Fetching step %d of question %d failed", next_step, question.id
                )
                self._go_idle()
                return [self._emit(STEP_FAILED_MESSAGE)]

            if solution is None:
                logger.info("No step %d for question %d", next_step, question.id)
                self._go_idle()
                return [self._emit(EXHAUSTED_MESSAGE)]

            self._enter_step(question, next_step)
            return [
                self._emit(
                    format_step(NEXT_STEP_MESSAGE, solution),
                    question_id=question.id,
                    step=next_step,
                    show_actions=True,
                )
            ]

    def reset_session(self) -> ChatMessage:
        """Start a new chat, discarding the current question and history.

        Returns:
            The fresh welcome message.
        """
        message = welcome_message()
        self.state = ConversationState(messages=[message])
        logger.info("Conversation reset.")
        return message

    def save_conversation(self) -> int | None:
        """Persist the current transcript through the repository.

        Returns:
            Stored conversation id, or None if the store is unavailable.
        """
        try:
            conversation_id = self.repository.save_conversation(self.state.messages)
        except RepositoryUnavailableError:
            logger.exception("Saving conversation failed")
            return None
        logger.info("Saved conversation %d", conversation_id)
        return conversation_id
