"""Web interface using Streamlit."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import streamlit as st

from helpdesk import (
    AuthService,
    ConversationManager,
    KnowledgeBaseAdmin,
    RepositoryUnavailableError,
    get_repository,
)
from helpdesk.config import config
from helpdesk.models import SOLUTION_TYPES
from helpdesk.repository import FallbackKnowledgeRepository

if TYPE_CHECKING:
    from helpdesk.models import ChatMessage, User
    from helpdesk.repository import KnowledgeRepository

AUTH_USER_KEY = "auth_user"

config.setup_logging()
logger = config.get_logger(__name__)


class StreamlitSessionStore:
    """Session store keeping the logged-in user in ``st.session_state``."""

    def get(self) -> User | None:
        return st.session_state.get(AUTH_USER_KEY)

    def set(self, user: User) -> None:
        st.session_state[AUTH_USER_KEY] = user

    def clear(self) -> None:
        st.session_state.pop(AUTH_USER_KEY, None)


@st.cache_resource
def load_repository() -> KnowledgeRepository:
    """Build the knowledge base repository shared by all sessions.

    Returns:
        Repository for the configured backend.
    """
    return get_repository()


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        repository = load_repository()
        if "conversation_manager" not in st.session_state:
            st.session_state.conversation_manager = ConversationManager(repository)
        if "auth" not in st.session_state:
            st.session_state.auth = AuthService(repository, StreamlitSessionStore())
        if "last_saved_id" not in st.session_state:
            st.session_state.last_saved_id = None

    @staticmethod
    def manager() -> ConversationManager:
        return st.session_state.conversation_manager

    @staticmethod
    def auth() -> AuthService:
        return st.session_state.auth

    @staticmethod
    def reset_chat() -> None:
        """Start a fresh conversation for this session."""
        SessionState.manager().reset_session()
        st.session_state.last_saved_id = None


def validate_configuration() -> bool:
    """Validate application configuration and show user feedback.

    Returns:
        bool: True if configuration is valid, False otherwise.
    """
    try:
        config.validate()
    except ValueError as e:
        st.error(f"Configuration Error: {e}")
        return False
    else:
        return True


def respond(action, *args) -> None:  # noqa: ANN001
    """Run a conversation action behind the typing indicator."""
    with st.spinner("Assistant is typing..."):
        time.sleep(config.TYPING_DELAY_SECONDS)
        action(*args)


def render_sidebar() -> None:
    """Render the sidebar with known issues and chat controls."""
    repository = load_repository()
    manager = SessionState.manager()

    with st.sidebar:
        st.header("Known Issues")
        try:
            questions = repository.list_questions()
        except RepositoryUnavailableError:
            logger.exception("Could not load known issues")
            st.warning("Known issues are unavailable right now.")
            questions = []

        for position, question in enumerate(questions, 1):
            st.markdown(f"**{position}.** {question.title}")
        if questions:
            st.caption("Type a number in the chat to pick an issue directly.")

        if (
            isinstance(repository, FallbackKnowledgeRepository)
            and repository.degraded
        ):
            st.warning(
                "The support database is offline. Showing built-in answers only."
            )

        st.divider()
        st.subheader("Conversation")
        if st.button("New Chat", use_container_width=True):
            SessionState.reset_chat()
            st.rerun()

        if st.button("Save Transcript", use_container_width=True):
            conversation_id = manager.save_conversation()
            if conversation_id is None:
                st.error("Could not save the conversation. Please try again later.")
            else:
                st.session_state.last_saved_id = conversation_id
        if st.session_state.last_saved_id is not None:
            st.success(f"Saved as conversation #{st.session_state.last_saved_id}")

        st.download_button(
            "Download Transcript",
            data=manager.history_text(),
            file_name="helpdesk-transcript.txt",
            mime="text/plain",
            use_container_width=True,
        )

        st.divider()
        render_account()


def render_account() -> None:
    """Render the login form or the logged-in user's controls."""
    auth = SessionState.auth()
    user = auth.current_user

    if user is not None:
        st.write(f"**Signed in as:** {user.name or user.email}")
        if st.button("Log Out", use_container_width=True):
            auth.logout()
            st.rerun()
        return

    with st.expander("Admin Login", expanded=False):
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Log In", use_container_width=True)
        if submitted:
            if auth.login(email, password) is None:
                st.error("Invalid email or password.")
            else:
                st.rerun()


def is_actionable(message: ChatMessage, manager: ConversationManager) -> bool:
    """Check whether step buttons belong under this message.

    Returns:
        True only for the message of the step currently in progress.
    """
    question = manager.current_question
    return (
        message.show_actions
        and question is not None
        and message.question_id == question.id
        and message.step == manager.current_step
    )


def render_chat_interface() -> None:
    """Render the message log, step buttons and chat input."""
    manager = SessionState.manager()

    for message in manager.messages:
        avatar_role = "user" if message.role == "user" else "assistant"
        with st.chat_message(avatar_role):
            st.markdown(message.content)
            if not is_actionable(message, manager):
                continue

            col1, col2 = st.columns(2)
            with col1:
                if st.button("It worked!", key=f"worked-{message.id}"):
                    respond(
                        manager.submit_step_outcome,
                        True,
                        message.question_id,
                        message.step,
                    )
                    st.rerun()
            with col2:
                if st.button("Still not working", key=f"failed-{message.id}"):
                    respond(
                        manager.submit_step_outcome,
                        False,
                        message.question_id,
                        message.step,
                    )
                    st.rerun()

    prompt = st.chat_input(
        "Describe your problem or type an issue number...",
        disabled=manager.is_typing,
    )
    if prompt:
        respond(manager.submit_user_input, prompt)
        st.rerun()


def render_categories_tab(admin: KnowledgeBaseAdmin) -> None:
    """Render category management."""
    categories = admin.list_categories()

    for category in categories:
        with st.expander(f"{category.name} (#{category.id})"):
            with st.form(f"category-{category.id}"):
                name = st.text_input("Name", value=category.name)
                description = st.text_area("Description", value=category.description)
                saved = st.form_submit_button("Save")
            if saved:
                admin.update_category(category.id, name=name, description=description)
                st.rerun()
            if st.button("Delete", key=f"delete-category-{category.id}"):
                admin.delete_category(category.id)
                st.rerun()

    st.subheader("Add Category")
    with st.form("new_category", clear_on_submit=True):
        name = st.text_input("Name")
        description = st.text_area("Description")
        created = st.form_submit_button("Add Category")
    if created:
        admin.create_category(name, description)
        st.rerun()


def render_questions_tab(admin: KnowledgeBaseAdmin) -> None:
    """Render question management."""
    categories = {category.id: category.name for category in admin.list_categories()}
    category_ids = list(categories)

    def category_label(category_id: int) -> str:
        return categories.get(category_id, f"Unknown (#{category_id})")

    for question in admin.list_questions():
        with st.expander(f"{question.title} (#{question.id})"):
            options = category_ids or [question.category_id]
            if question.category_id not in options:
                options = [question.category_id, *options]
            with st.form(f"question-{question.id}"):
                category_id = st.selectbox(
                    "Category",
                    options,
                    index=options.index(question.category_id),
                    format_func=category_label,
                )
                title = st.text_input("Title", value=question.title)
                description = st.text_area("Description", value=question.description)
                keywords = st.text_input(
                    "Keywords (comma separated)", value=", ".join(question.keywords)
                )
                saved = st.form_submit_button("Save")
            if saved:
                admin.update_question(
                    question.id,
                    category_id=category_id,
                    title=title,
                    description=description,
                    keywords=keywords,
                )
                st.rerun()
            if st.button("Delete", key=f"delete-question-{question.id}"):
                admin.delete_question(question.id)
                st.rerun()

    st.subheader("Add Question")
    if not category_ids:
        st.info("Create a category first.")
        return
    with st.form("new_question", clear_on_submit=True):
        category_id = st.selectbox("Category", category_ids, format_func=category_label)
        title = st.text_input("Title")
        description = st.text_area("Description")
        keywords = st.text_input("Keywords (comma separated)")
        created = st.form_submit_button("Add Question")
    if created:
        admin.create_question(category_id, title, description, keywords)
        st.rerun()


def render_solutions_tab(admin: KnowledgeBaseAdmin) -> None:
    """Render solution step management for one question at a time."""
    questions = admin.list_questions()
    if not questions:
        st.info("Create a question first.")
        return

    question = st.selectbox(
        "Question", questions, format_func=lambda question: question.title
    )

    gaps = admin.step_gaps(question.id)
    if gaps:
        st.warning(
            "Missing steps: "
            + ", ".join(str(step) for step in gaps)
            + ". The chat stops at the first gap."
        )

    types = list(SOLUTION_TYPES)
    for solution in admin.list_solutions(question.id):
        with st.expander(f"Step {solution.step} (#{solution.id})"):
            with st.form(f"solution-{solution.id}"):
                step = st.number_input("Step", min_value=1, value=solution.step)
                text = st.text_area("Text", value=solution.text)
                solution_type = st.selectbox(
                    "Type", types, index=types.index(solution.type)
                )
                links = st.text_area(
                    "Helpful links (one per line)",
                    value="\n".join(solution.helpful_links),
                )
                saved = st.form_submit_button("Save")
            if saved:
                admin.update_solution(
                    solution.id,
                    step=int(step),
                    text=text,
                    type=solution_type,
                    helpful_links=links,
                )
                st.rerun()
            if st.button("Delete", key=f"delete-solution-{solution.id}"):
                admin.delete_solution(solution.id)
                st.rerun()

    st.subheader("Add Step")
    next_step = max(
        (solution.step for solution in admin.list_solutions(question.id)), default=0
    )
    with st.form("new_solution", clear_on_submit=True):
        step = st.number_input("Step", min_value=1, value=next_step + 1)
        text = st.text_area("Text")
        solution_type = st.selectbox("Type", types)
        links = st.text_area("Helpful links (one per line)")
        created = st.form_submit_button("Add Step")
    if created:
        admin.create_solution(
            question.id, int(step), text, type=solution_type, helpful_links=links
        )
        st.rerun()


def render_admin_dashboard() -> None:
    """Render the knowledge base editor for administrators."""
    auth = SessionState.auth()
    if not auth.is_admin():
        st.info("Log in with an administrator account to manage the knowledge base.")
        return

    admin = KnowledgeBaseAdmin(load_repository(), auth)
    categories_tab, questions_tab, solutions_tab = st.tabs(
        ["Categories", "Questions", "Solutions"]
    )
    try:
        with categories_tab:
            render_categories_tab(admin)
        with questions_tab:
            render_questions_tab(admin)
        with solutions_tab:
            render_solutions_tab(admin)
    except (ValueError, PermissionError) as e:
        st.error(str(e))
    except RepositoryUnavailableError as e:
        logger.exception("Admin operation failed")
        st.error(f"The knowledge base is unavailable: {e}")


def main() -> None:
    """Main entry point for the Streamlit web application.

    Sets up the page configuration, initializes session state, renders the
    sidebar, and switches between the chat and the admin dashboard.
    """
    st.set_page_config(page_title="HelpdeskBot", layout="wide")

    if not validate_configuration():
        return

    SessionState.initialize()

    st.title("HelpdeskBot")
    st.caption("Step-by-step help for common computer problems")

    render_sidebar()

    if SessionState.auth().is_admin():
        chat_tab, admin_tab = st.tabs(["Chat", "Admin Dashboard"])
        with chat_tab:
            render_chat_interface()
        with admin_tab:
            render_admin_dashboard()
    else:
        render_chat_interface()


if __name__ == "__main__":
    main()
