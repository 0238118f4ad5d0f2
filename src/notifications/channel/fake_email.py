"""Fake email adapter — records sent emails for testing."""

from uuid import uuid4

from notifications.channel.email_port import EmailPort, failed_result


class FakeEmailAdapter(EmailPort):
    """Email adapter that records messages in memory for test assertions.

    ``fail_for`` makes delivery fail only for the listed recipients, so a
    test can break the customer confirmation while the owner alert goes
    through.
    """

    def __init__(self):
        self.reset()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        fail_for: list[str] | None = None,
        raise_error: bool = False,
    ):
        """Configure the fake adapter behavior for testing.

        ``raise_error`` makes a failing send raise instead of returning a
        failed result, as a broken relay connection would.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.fail_for = set(fail_for or [])
        self.raise_error = raise_error

    def _fails(self, to: str) -> bool:
        return not self.should_succeed or to in self.fail_for

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        if self._fails(to):
            if self.raise_error:
                raise ConnectionError(self.failure_reason)
            return failed_result(self.failure_reason)

        message_id = f"email-{uuid4().hex[:12]}"
        record = {
            "message_id": message_id,
            "to": to,
            "subject": subject,
            "body": body,
            "html_body": html_body,
        }
        self.sent_emails.append(record)

        return {"message_id": message_id, "status": "sent"}

    def sent_to(self, to: str) -> list[dict]:
        return [email for email in self.sent_emails if email["to"] == to]

    def reset(self):
        """Clear sent emails (useful between tests)."""
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.fail_for: set[str] = set()
        self.raise_error = False
