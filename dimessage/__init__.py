"""
A small example of constructor-based dependency injection, with a grader.

MyApplication needs something that can deliver a message, but it does not
decide what that something is. The caller builds a concrete MessageService
and hands it to the constructor:

from dimessage import EmailService, MyApplication, SMSService

app = MyApplication(EmailService())
app.process_message("Hello, Dependency Injection!")

MyApplication(SMSService()).process_message("Hello, Dependency Injection via SMS!")

There is no container and no auto-wiring: the constructor call is the wiring.
The application holds onto its service for its whole lifetime and the service
cannot be swapped out afterwards; to change the delivery mechanism, build a
new application.

The grader module checks a submission's source file for the same structure
without running it:

from dimessage import grader
grader.grade("path/to/assignment.py")
"""

__version__ = "1.0.0"

from .assignment import EmailService, MessageService, MyApplication, SMSService, main
from .grader import Verdict, check_file, grade

__all__ = [
    "check_file",
    "EmailService",
    "grade",
    "main",
    "MessageService",
    "MyApplication",
    "SMSService",
    "Verdict",
]
