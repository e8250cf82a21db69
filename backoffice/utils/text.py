import html
import re

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def sanitize_input(value) -> str:
    """trim + экранирование HTML, как для любого текста из формы"""
    if value is None:
        return ""
    return html.escape(str(value).strip(), quote=True)


def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None
