"""Static knowledge base used to seed storage and as an offline fallback."""

from .config import config
from .models import Category, Question, Solution, User, UserRole
from .passwords import hash_password

WELCOME_MESSAGE = (
    "Hello! I'm here to help you troubleshoot technical issues. "
    "What problem are you experiencing?"
)

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id=1, name="Hardware", description="Power, devices and peripherals"),
    Category(id=2, name="Network", description="Internet access, Wi-Fi and routers"),
    Category(id=3, name="Performance", description="Speed, freezing and resources"),
    Category(id=4, name="Display", description="Monitors, screens and graphics"),
)

DEFAULT_QUESTIONS: tuple[Question, ...] = (
    Question(
        id=1,
        category_id=1,
        title="Computer won't boot",
        description="The computer does not start when the power button is pressed.",
        keywords=["boot", "startup", "power", "won't start", "turn on"],
    ),
    Question(
        id=2,
        category_id=3,
        title="Computer is running slow",
        description="Programs take a long time to open and the system feels sluggish.",
        keywords=["slow", "performance", "lag", "freezing", "sluggish"],
    ),
    Question(
        id=3,
        category_id=2,
        title="No internet connection",
        description="Websites do not load and online services cannot be reached.",
        keywords=["internet", "wifi", "network", "connection", "offline"],
    ),
    Question(
        id=4,
        category_id=4,
        title="Screen is black or blank",
        description="The monitor shows nothing even though the computer appears on.",
        keywords=["screen", "display", "monitor", "black screen", "blank"],
    ),
)

DEFAULT_SOLUTIONS: tuple[Solution, ...] = (
    Solution(
        id=1,
        question_id=1,
        step=1,
        text=(
            "Check if the power cable is properly connected to both the computer "
            "and the wall outlet."
        ),
    ),
    Solution(
        id=2,
        question_id=1,
        step=2,
        text=(
            "Try a different power outlet, and bypass any power strip or surge "
            "protector."
        ),
    ),
    Solution(
        id=3,
        question_id=1,
        step=3,
        text=(
            "Unplug the cable, hold the power button for 30 seconds, then reconnect "
            "and press it again."
        ),
    ),
    Solution(
        id=4,
        question_id=2,
        step=1,
        text=(
            "Close programs you are not using and open Task Manager (Ctrl+Shift+Esc) "
            "to find anything using a lot of CPU or memory."
        ),
    ),
    Solution(
        id=5,
        question_id=2,
        step=2,
        text="Restart the computer to clear temporary files and finish pending updates.",
    ),
    Solution(
        id=6,
        question_id=2,
        step=3,
        text="Free up disk space so that at least 15% of the system drive is empty.",
        type="link",
        helpful_links=["https://support.microsoft.com/windows"],
    ),
    Solution(
        id=7,
        question_id=3,
        step=1,
        text="Check that Wi-Fi is switched on and that airplane mode is off.",
    ),
    Solution(
        id=8,
        question_id=3,
        step=2,
        text=(
            "Restart your modem and router: unplug them for 30 seconds, then plug "
            "them back in and wait for the lights to settle."
        ),
    ),
    Solution(
        id=9,
        question_id=3,
        step=3,
        text="Forget the Wi-Fi network on your device and reconnect with the password.",
    ),
    Solution(
        id=10,
        question_id=4,
        step=1,
        text=(
            "Make sure the monitor is switched on and its video cable is firmly "
            "connected at both ends."
        ),
    ),
    Solution(
        id=11,
        question_id=4,
        step=2,
        text="Press Windows+Ctrl+Shift+B to restart the graphics driver.",
    ),
    Solution(
        id=12,
        question_id=4,
        step=3,
        text="Connect the computer to another monitor or TV to rule out a faulty screen.",
    ),
)


def default_users() -> list[User]:
    """Build the seeded admin account from configuration.

    Returns:
        List holding the single admin user.
    """
    return [
        User(
            id=1,
            email=config.ADMIN_EMAIL,
            password_hash=hash_password(config.get_admin_password()),
            name=config.ADMIN_NAME,
            role=UserRole.ADMIN,
        )
    ]
