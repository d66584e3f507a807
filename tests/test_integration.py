"""End-to-end chat sessions over each storage backend."""

import pytest

from helpdesk import AuthService, ConversationManager, KnowledgeBaseAdmin
from helpdesk.config import config
from helpdesk.conversation import EXHAUSTED_MESSAGE, RESOLVED_MESSAGE


def walk_boot_question(manager: ConversationManager) -> list[str]:
    """Ask about boot problems and fail every step until the bot gives up."""
    replies = [reply.content for reply in manager.submit_user_input("boot")]
    while manager.current_question is not None:
        question_id = manager.current_question.id
        step = manager.current_step
        replies.extend(
            reply.content
            for reply in manager.submit_step_outcome(False, question_id, step)
        )
    return replies


@pytest.fixture(params=["static_repository", "seeded_sqlite_repository"])
def backend_repository(request):
    return request.getfixturevalue(request.param)


def test_full_walk_until_exhausted(backend_repository):
    manager = ConversationManager(backend_repository)

    replies = walk_boot_question(manager)

    assert len(replies) == 4
    assert 'I found a solution for "Computer won\'t boot"' in replies[0]
    assert "Try a different power outlet" in replies[1]
    assert "hold the power button for 30 seconds" in replies[2]
    assert replies[3] == EXHAUSTED_MESSAGE
    assert manager.current_step == 0


def test_disambiguate_then_resolve(backend_repository):
    manager = ConversationManager(backend_repository)

    listing = manager.submit_user_input("slow internet")[0].content
    assert "2. Computer is running slow" in listing

    first_step = manager.submit_user_input("2")[0]
    assert "Task Manager" in first_step.content

    closing = manager.submit_step_outcome(True, first_step.question_id, 1)
    assert closing[0].content == RESOLVED_MESSAGE

    conversation_id = manager.save_conversation()
    assert conversation_id is not None


def test_sessions_do_not_share_state(backend_repository):
    first = ConversationManager(backend_repository)
    second = ConversationManager(backend_repository)

    first.submit_user_input("boot")

    assert first.current_step == 1
    assert second.current_step == 0
    assert len(second.messages) == 1


def test_admin_edit_reaches_chat(seeded_sqlite_repository):
    auth = AuthService(seeded_sqlite_repository)
    assert auth.login(config.ADMIN_EMAIL, config.get_admin_password()) is not None
    admin = KnowledgeBaseAdmin(seeded_sqlite_repository, auth)
    admin.create_solution(1, 4, "Remove the battery and try again.")

    replies = walk_boot_question(ConversationManager(seeded_sqlite_repository))

    assert "Remove the battery and try again." in replies[3]
    assert replies[4] == EXHAUSTED_MESSAGE


def test_rest_backend_conversation(http_repository):
    manager = ConversationManager(http_repository)

    replies = manager.submit_user_input("boot")
    assert "Check the power cable." in replies[0].content
    assert "https://example.com/power" in replies[0].content

    replies = manager.submit_step_outcome(False, 1, 1)
    assert "Try another outlet." in replies[0].content

    assert manager.save_conversation() == 1
