import re

EMAIL_PATTERN = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"\+?\d(?:[\s.-]?\d){8,}")


def mask_email(email: str) -> str:
    """
    Mask an email address for safe logging.
    Example: 'user@example.com' -> 'u***r@example.com'
    """
    user_part, _, domain = email.partition("@")
    if not user_part or not domain:
        return "***@***.***"
    if len(user_part) <= 2:
        return f"{user_part[0]}***@{domain}"
    return f"{user_part[0]}***{user_part[-1]}@{domain}"


def mask_contacts(text: str) -> str:
    """
    Hide e-mail addresses and phone numbers in user-to-user text.
    Example: 'mail me at a@b.fr' -> 'mail me at [email hidden]'
    """
    text = EMAIL_PATTERN.sub("[email hidden]", text)
    return PHONE_PATTERN.sub("[phone hidden]", text)
