import ast
import textwrap
from pathlib import Path

import pytest

import dimessage.assignment
from dimessage import grader
from dimessage.config import GraderConfigWrapper
from dimessage.grader import (
    DependencyInjectionCheck,
    OutputCheck,
    SourceParseError,
    StructureCheck,
    Verdict,
    check_file,
    grade,
    parse_source,
)

ASSIGNMENT = Path(dimessage.assignment.__file__)

VALID_SOURCE = """
import abc


class MessageService(abc.ABC):
    @abc.abstractmethod
    def send_message(self, message):
        ...


class EmailService(MessageService):
    def send_message(self, message):
        print("Sending email with message: " + message)


class SMSService(MessageService):
    def send_message(self, message):
        print("Sending SMS with message: " + message)


class MyApplication:
    def __init__(self, message_service):
        self.message_service = message_service

    def process_message(self, message):
        self.message_service.send_message(message)


def main():
    MyApplication(EmailService()).process_message("Hello, Dependency Injection!")
    MyApplication(SMSService()).process_message("Hello, Dependency Injection via SMS!")


if __name__ == "__main__":
    main()
"""


def _check(source: str, config=None) -> Verdict:
    tree = parse_source(textwrap.dedent(source))
    return DependencyInjectionCheck(GraderConfigWrapper(config)).check(tree)


def test_shipped_assignment_passes() -> None:
    verdict = check_file(ASSIGNMENT)
    assert verdict.passed
    assert verdict.failure is None
    assert verdict.diagnostics[-1].startswith("Test passed")
    assert grade(ASSIGNMENT) is True


def test_valid_source_diagnostics() -> None:
    verdict = _check(VALID_SOURCE)
    assert verdict
    assert "Interface 'MessageService' found." in verdict.diagnostics
    assert "'EmailService' implements 'MessageService'." in verdict.diagnostics
    assert "'SMSService' implements 'MessageService'." in verdict.diagnostics
    assert "Class 'MyApplication' found." in verdict.diagnostics
    assert "Method 'process_message' is executed in the main method." in verdict.diagnostics


def test_missing_interface() -> None:
    source = VALID_SOURCE.replace("class MessageService(abc.ABC)", "class Sender(abc.ABC)")
    verdict = _check(source)
    assert not verdict
    assert verdict.failure == "Error: Interface 'MessageService' not found."


def test_missing_implementation() -> None:
    source = VALID_SOURCE.replace("class SMSService(", "class TextService(")
    verdict = _check(source)
    assert not verdict
    assert verdict.failure == "Error: Class 'EmailService' or 'SMSService' not found."


def test_missing_consumer() -> None:
    source = VALID_SOURCE.replace("class MyApplication:", "class App:")
    verdict = _check(source)
    assert not verdict
    assert verdict.failure == "Error: Class 'MyApplication' not found."


def test_implementation_link_missing() -> None:
    source = VALID_SOURCE.replace("class EmailService(MessageService)", "class EmailService")
    verdict = _check(source)
    assert not verdict
    assert verdict.failure == "Error: 'EmailService' does not implement 'MessageService'."


def test_second_implementation_link_missing() -> None:
    source = VALID_SOURCE.replace("class SMSService(MessageService)", "class SMSService(object)")
    verdict = _check(source)
    assert verdict.failure == "Error: 'SMSService' does not implement 'MessageService'."


def test_dotted_base_counts_as_implementation() -> None:
    source = VALID_SOURCE.replace(
        "class EmailService(MessageService)", "class EmailService(services.MessageService)"
    )
    assert _check(source)


def test_forwarding_call_missing_from_main() -> None:
    source = VALID_SOURCE.replace(".process_message(", ".send_message(")
    verdict = _check(source)
    assert not verdict
    assert verdict.failure == "Error: 'process_message' method not executed in the main method."


def test_forwarding_call_outside_main_does_not_count() -> None:
    source = VALID_SOURCE.replace("def main():", "def demo():")
    verdict = _check(source)
    assert not verdict
    assert "not executed in the main method" in verdict.failure


def test_forwarding_call_in_nested_block() -> None:
    source = """
    class MessageService: pass
    class EmailService(MessageService): pass
    class SMSService(MessageService): pass
    class MyApplication: pass

    def main():
        for app in [MyApplication()]:
            if app:
                app.process_message("x")
    """
    assert _check(source)


def test_first_failure_wins() -> None:
    verdict = _check("def main():\n    pass\n")
    assert verdict.failure == "Error: Interface 'MessageService' not found."


def test_configured_names() -> None:
    source = VALID_SOURCE.replace("process_message", "processMessage")
    assert not _check(source)
    assert _check(source, {"forwarding_call": "processMessage"})


def test_missing_file(tmp_path: Path) -> None:
    missing = tmp_path / "nope.py"
    verdict = check_file(missing)
    assert not verdict
    assert verdict.failure == f"File does not exist at path: {missing}"
    assert grade(missing) is False


def test_parse_error_propagates(tmp_path: Path) -> None:
    broken = tmp_path / "broken.py"
    broken.write_text("class MessageService(:\n")
    with pytest.raises(SourceParseError) as exc_info:
        check_file(broken)
    assert isinstance(exc_info.value.__cause__, SyntaxError)
    with pytest.raises(grader.GradingError):
        grade(broken)


def test_check_is_pluggable() -> None:
    class AlwaysPasses(StructureCheck):
        def check(self, tree: ast.Module) -> Verdict:
            return Verdict(True)

    assert AlwaysPasses().check(ast.parse("")).passed
    with pytest.raises(TypeError):
        StructureCheck()  # type: ignore[abstract]


def test_output_check_on_shipped_assignment() -> None:
    verdict = OutputCheck().run(ASSIGNMENT)
    assert verdict, verdict.diagnostics


def test_output_check_wrong_line(tmp_path: Path) -> None:
    source = tmp_path / "wrong.py"
    source.write_text(VALID_SOURCE.replace("Sending SMS", "Sending text"))
    verdict = OutputCheck().run(source)
    assert not verdict
    assert verdict.failure.startswith("Error: expected output line 2")


def test_output_check_line_count() -> None:
    verdict = OutputCheck().compare(
        ["Sending email with message: Hello, Dependency Injection!"]
    )
    assert verdict.failure == "Error: expected 2 output lines but got 1."


def test_output_check_missing_file(tmp_path: Path) -> None:
    assert not OutputCheck().run(tmp_path / "nope.py")


def test_cli_pass(capsys) -> None:
    assert grader.main([str(ASSIGNMENT), "--verify-output"]) == 0
    out = capsys.readouterr().out
    assert "Test passed" in out
    assert "Output matches the expected 2 lines." in out


def test_cli_fail(tmp_path: Path, capsys) -> None:
    source = tmp_path / "submission.py"
    source.write_text(VALID_SOURCE.replace("class MyApplication:", "class App:"))
    assert grader.main([str(source)]) == 1
    assert "Error: Class 'MyApplication' not found." in capsys.readouterr().out


def test_cli_parse_error(tmp_path: Path, capsys) -> None:
    source = tmp_path / "broken.py"
    source.write_text("def main(:\n")
    assert grader.main([str(source)]) == 2
    assert "Error parsing the file" in capsys.readouterr().out
