from loguru import logger

from app.core.config import settings
from app.db.schema import Role


def account_created_body(name: str, email: str, password: str, role: Role) -> str:
    return (
        f"Hello {name}, sign in at {settings.public_url} "
        f"with {email} / {password} ({role.value})."
    )


def send_account_created(name: str, email: str, password: str, role: Role) -> None:
    """
    Sends the login credentials of a freshly created account.
    Delivery is mocked: the message is written to the log, password masked.
    """
    subject = (
        "Your administrator account has been created"
        if role == Role.ADMINISTRATOR
        else "Your account has been created"
    )
    logger.info(
        f"EMAIL MOCK: from={settings.mail_from} to={email} subject='{subject}'")
    logger.debug(
        f"EMAIL MOCK BODY: {account_created_body(name, email, '********', role)}")
