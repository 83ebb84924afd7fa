"""Constructor-based dependency injection with a single message capability.

MyApplication never builds its own MessageService: the caller picks a concrete
service and passes it to the constructor. Swapping EmailService for SMSService
changes how a message is delivered without touching MyApplication.
"""
import abc
import logging

from attr import define, field
from attr.validators import instance_of

LOG = logging.getLogger(__name__)


class MessageService(abc.ABC):
    """Capability to deliver a text message."""

    @abc.abstractmethod
    def send_message(self, message: str) -> None:
        ...


class EmailService(MessageService):
    def send_message(self, message: str) -> None:
        print(f"Sending email with message: {message}")


class SMSService(MessageService):
    def send_message(self, message: str) -> None:
        print(f"Sending SMS with message: {message}")


@define(frozen=True)
class MyApplication:
    """Forwards messages to the MessageService it was constructed with.

    The service is required at construction time and cannot be replaced
    afterwards, so process_message always has a service to delegate to.
    """

    message_service: MessageService = field(validator=instance_of(MessageService))

    def process_message(self, message: str) -> None:
        LOG.debug("forwarding message to %s", type(self.message_service).__name__)
        self.message_service.send_message(message)


def main() -> None:
    email_service = EmailService()
    app = MyApplication(email_service)
    LOG.debug("wired %s into %s", email_service, app)
    app.process_message("Hello, Dependency Injection!")

    # same consumer class, different dependency
    sms_service = SMSService()
    app_sms = MyApplication(sms_service)
    LOG.debug("wired %s into %s", sms_service, app_sms)
    app_sms.process_message("Hello, Dependency Injection via SMS!")


if __name__ == "__main__":
    main()
