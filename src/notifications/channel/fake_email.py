"""Fake email adapter: records sent emails for testing."""

from uuid import uuid4

from notifications.channel.email_port import DeliveryReceipt, EmailPort


class FakeEmailAdapter(EmailPort):
    """Email adapter that keeps messages in memory for test assertions.

    ``configure(fail_times=n)`` makes the next ``n`` sends fail, which is how
    tests drive the dispatcher's retry path.
    """

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.attempts = 0
        self.should_succeed = True
        self.fail_times = 0
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, fail_times: int = 0, failure_reason: str = "Email delivery failed"):
        self.should_succeed = should_succeed
        self.fail_times = fail_times
        self.failure_reason = failure_reason

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> DeliveryReceipt:
        self.attempts += 1
        if not self.should_succeed or self.fail_times > 0:
            self.fail_times = max(0, self.fail_times - 1)
            return DeliveryReceipt(delivered=False, error=self.failure_reason)

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
            }
        )
        return DeliveryReceipt(delivered=True, message_id=message_id)

    def reset(self):
        self.sent_emails.clear()
        self.attempts = 0
        self.configure()
