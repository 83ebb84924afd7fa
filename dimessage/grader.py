"""Static grading of a dependency injection submission.

The grader parses a Python source file and checks, without running it, that
the file declares the capability interface, the classes implementing it, the
consumer class, and that the entry point calls the forwarding method:

from dimessage import grader
grader.grade("dimessage/assignment.py")  # True

Every check is a lookup over the syntax tree and the verdict is the AND of all
of them. The first failing check is reported in Verdict.failure; all progress
messages are kept in Verdict.diagnostics.

Checking what the program actually prints is a separate, opt-in step handled
by OutputCheck, since it requires executing the submission.
"""
import abc
import argparse
import ast
import contextlib
import io
import logging
import runpy
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from attr import define, field

from .config import GraderConfigWrapper, GraderInitConfig

LOG = logging.getLogger(__name__)

PathLike = Union[str, Path]

_CLASS_SECTION = "------ Interface and Class Implementation Check ------"
_CALL_SECTION = "------ Method Execution Check in Main ------"
_PASSED = (
    "Test passed: Dependency Injection with interface and class methods "
    "are correctly implemented and accessed."
)


class GradingError(Exception):
    """Base class for errors raised while grading a submission."""


class SourceParseError(GradingError):
    """The submission could not be parsed as Python source."""


@define(frozen=True)
class Verdict:
    """Outcome of grading a submission."""

    passed: bool
    diagnostics: Tuple[str, ...] = field(default=(), converter=tuple)
    # message of the first check that failed, None when passed
    failure: Optional[str] = None

    def __bool__(self) -> bool:
        return self.passed


class _Report:
    """Accumulates diagnostics while a check runs."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    def note(self, message: str) -> None:
        LOG.debug("%s", message)
        self.lines.append(message)

    def fail(self, message: str) -> Verdict:
        LOG.info("%s", message)
        self.lines.append(message)
        return Verdict(False, self.lines, failure=message)

    def succeed(self, message: str) -> Verdict:
        LOG.info("%s", message)
        self.lines.append(message)
        return Verdict(True, self.lines)


class StructureCheck(abc.ABC):
    """A single pass over a parsed module producing a verdict."""

    @abc.abstractmethod
    def check(self, tree: ast.Module) -> Verdict:
        ...


def _base_name(node: ast.expr) -> Optional[str]:
    # MessageService, services.MessageService, or Generic-style MessageService[T]
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Subscript):
        return _base_name(node.value)
    return None


def _call_name(node: ast.Call) -> Optional[str]:
    func = node.func
    if isinstance(func, ast.Attribute):
        return func.attr
    if isinstance(func, ast.Name):
        return func.id
    return None


def _iter_functions(tree: ast.AST, name: str) -> Iterator[ast.AST]:
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == name:
            yield node


class DependencyInjectionCheck(StructureCheck):
    """Checks the interface, implementations, consumer and entry point call."""

    def __init__(self, config: Optional[GraderConfigWrapper] = None) -> None:
        self._config = config if config is not None else GraderConfigWrapper()

    @property
    def config(self) -> GraderConfigWrapper:
        return self._config

    def check(self, tree: ast.Module) -> Verdict:
        interface = self._config.interface
        implementations = self._config.implementations
        consumer = self._config.consumer
        report = _Report()

        interface_found = False
        consumer_found = False
        found = {name: False for name in implementations}
        implements = {name: False for name in implementations}

        report.note(_CLASS_SECTION)
        for node in ast.walk(tree):
            if not isinstance(node, ast.ClassDef):
                continue

            if node.name == interface:
                report.note(f"Interface '{interface}' found.")
                interface_found = True

            if node.name in found:
                report.note(f"Class '{node.name}' found.")
                found[node.name] = True
                if any(_base_name(base) == interface for base in node.bases):
                    implements[node.name] = True
                    report.note(f"'{node.name}' implements '{interface}'.")
                else:
                    report.note(f"Error: '{node.name}' does not implement '{interface}'.")

            if node.name == consumer:
                report.note(f"Class '{consumer}' found.")
                consumer_found = True

        if not interface_found:
            return report.fail(f"Error: Interface '{interface}' not found.")

        if not all(found.values()):
            names = " or ".join(f"'{name}'" for name in implementations)
            return report.fail(f"Error: Class {names} not found.")

        if not consumer_found:
            return report.fail(f"Error: Class '{consumer}' not found.")

        for name in implementations:
            if not implements[name]:
                return report.fail(f"Error: '{name}' does not implement '{interface}'.")

        report.note(_CALL_SECTION)
        if not self._calls_forwarding_method(tree, report):
            return report.fail(
                f"Error: '{self._config.forwarding_call}' method not executed "
                f"in the {self._config.entry_point} method."
            )

        return report.succeed(_PASSED)

    def _calls_forwarding_method(self, tree: ast.Module, report: _Report) -> bool:
        entry_point = self._config.entry_point
        forwarding_call = self._config.forwarding_call
        executed = False
        for function in _iter_functions(tree, entry_point):
            for node in ast.walk(function):
                if isinstance(node, ast.Call) and _call_name(node) == forwarding_call:
                    report.note(
                        f"Method '{forwarding_call}' is executed in the {entry_point} method."
                    )
                    executed = True
        return executed


class OutputCheck:
    """Runs a submission as __main__ and compares what it prints.

    Unlike DependencyInjectionCheck this executes the submission, so it is
    never part of grade() and must be requested explicitly. Exceptions raised
    by the submission propagate to the caller.
    """

    def __init__(self, config: Optional[GraderConfigWrapper] = None) -> None:
        self._config = config if config is not None else GraderConfigWrapper()

    def run(self, path: PathLike) -> Verdict:
        path = Path(path)
        if not path.is_file():
            return _missing_file(path)

        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            runpy.run_path(str(path), run_name="__main__")
        return self.compare(buffer.getvalue().splitlines())

    def compare(self, actual: Sequence[str]) -> Verdict:
        expected = self._config.expected_output
        report = _Report()
        report.note("------ Output Check ------")
        for lineno, (want, got) in enumerate(zip(expected, actual), 1):
            if want != got:
                return report.fail(
                    f"Error: expected output line {lineno} to be {want!r} but got {got!r}."
                )
            report.note(f"Output line {lineno} matches.")
        if len(expected) != len(actual):
            return report.fail(
                f"Error: expected {len(expected)} output lines but got {len(actual)}."
            )
        return report.succeed(f"Output matches the expected {len(expected)} lines.")


def _missing_file(path: Path) -> Verdict:
    message = f"File does not exist at path: {path}"
    LOG.warning("%s", message)
    return Verdict(False, (message,), failure=message)


def parse_source(source: Union[str, bytes], filename: str = "<unknown>") -> ast.Module:
    """Parse Python source into a module tree.

    Raises:
        SourceParseError: if the source is not valid Python.
    """
    try:
        return ast.parse(source, filename=filename)
    except (SyntaxError, ValueError) as exc:
        # ValueError covers undecodable bytes and null bytes on older Pythons
        LOG.error("Error parsing the file %s: %s", filename, exc)
        raise SourceParseError(f"failed to parse {filename}: {exc}") from exc


def check_file(path: PathLike, config: Optional[GraderInitConfig] = None) -> Verdict:
    """Statically check a submission file.

    Parameters:
        path: the Python source file to grade.
        config: optional overrides for the names the grader looks for.
    Returns:
        The verdict. A missing file yields a failing verdict, not an error.
    Raises:
        SourceParseError: if the file is not valid Python.
    """
    path = Path(path)
    LOG.info("starting dependency injection check on %s", path)
    if not path.is_file():
        return _missing_file(path)

    tree = parse_source(path.read_bytes(), filename=str(path))
    LOG.debug("parsed %s successfully", path)
    return DependencyInjectionCheck(GraderConfigWrapper(config)).check(tree)


def grade(path: PathLike, config: Optional[GraderInitConfig] = None) -> bool:
    """Return True if the submission at path passes every structural check."""
    return check_file(path, config).passed


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Statically grade a dependency injection submission."
    )
    parser.add_argument("path", help="Python source file to grade.")
    parser.add_argument(
        "--verify-output",
        action="store_true",
        help="Also run the submission and compare what it prints.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        verdict = check_file(args.path)
    except SourceParseError as exc:
        print(f"Error parsing the file: {exc}")
        return 2

    for line in verdict.diagnostics:
        print(line)

    if verdict and args.verify_output:
        verdict = OutputCheck().run(args.path)
        for line in verdict.diagnostics:
            print(line)

    return 0 if verdict else 1


if __name__ == "__main__":
    raise SystemExit(main())
