"""Tests for the mocked account e-mail."""

import pytest
from loguru import logger

from app.core.mail import send_account_created, account_created_body
from app.db.schema import Role


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class TestAccountCreatedMail:

    def test_password_never_reaches_the_log(self, log_messages):
        send_account_created("Tom", "tom@acme.com", "s3cret-Pa55", Role.TECHNICIAN)

        assert any("tom@acme.com" in m for m in log_messages)
        assert not any("s3cret-Pa55" in m for m in log_messages)

    def test_body_carries_the_credentials(self):
        body = account_created_body("Tom", "tom@acme.com", "s3cret-Pa55", Role.VALIDATOR)
        assert "tom@acme.com / s3cret-Pa55 (validator)" in body
