"""Email port for the post-checkout mails.

Two messages go through it: the plain-text alert to the shop owner and the
customer's order confirmation, which also carries an HTML alternative.
Adapters report delivery problems in the result instead of raising, so a
broken relay never fails a checkout.
"""

from abc import ABC, abstractmethod


def failed_result(error: str) -> dict:
    """The result an adapter returns when a message was not delivered."""
    return {"message_id": None, "status": "failed", "error": error}


class EmailPort(ABC):
    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        """Deliver one message to ``to``.

        ``body`` is the plain-text part; ``html_body`` is added as an
        alternative when given (the owner alert has none).

        Returns ``{"message_id": ..., "status": "sent"}`` on delivery, or
        ``failed_result(error)``.
        """
        ...
