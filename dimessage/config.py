from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from typing_extensions import TypedDict

# Unbound, invariant type variable
T = TypeVar("T")


class GraderConfig(TypedDict, total=False):
    """Names and output the grader expects to find in a submission."""

    # Name of the abstract capability class.
    interface: str
    # Names of the classes that must list the interface among their bases.
    implementations: Sequence[str]
    # Name of the class that receives the capability through its constructor.
    consumer: str
    # Name of the function treated as the composition point.
    entry_point: str
    # Name of the call that must appear inside the entry point.
    forwarding_call: str
    # Exact stdout lines expected when the submission is run.
    expected_output: Sequence[str]


GraderInitConfig = Union[Mapping[str, Any], GraderConfig]


DEFAULT_CONFIG: GraderConfig = {
    "interface": "MessageService",
    "implementations": ("EmailService", "SMSService"),
    "consumer": "MyApplication",
    "entry_point": "main",
    "forwarding_call": "process_message",
    "expected_output": (
        "Sending email with message: Hello, Dependency Injection!",
        "Sending SMS with message: Hello, Dependency Injection via SMS!",
    ),
}


def _as_names(value: Any, key: str) -> Tuple[str, ...]:
    # a bare string is iterable too, but never what the caller meant
    if isinstance(value, str):
        raise TypeError(f"grader config {key!r} must be a sequence of strings, not {value!r}")
    return tuple(value)


class GraderConfigWrapper:
    """Manages the configuration of the grader."""

    def __init__(self, config: Optional[GraderInitConfig] = None):
        self._impl: Dict[str, Any] = dict(DEFAULT_CONFIG)
        if config is not None:
            self._from_dict(config)

    def _from_dict(self, config_dict: GraderInitConfig):
        """Configure the grader from a dictionary-like mapping.
        Keys present in the mapping replace the defaults, all other keys
        keep their default values.

        Parameters:
            config_dict: the configuration data to apply.
        """
        impl = dict(DEFAULT_CONFIG)
        impl.update(config_dict)
        # validate eagerly so a bad config fails where it is built
        _as_names(impl["implementations"], "implementations")
        _as_names(impl["expected_output"], "expected_output")
        self._impl = impl

    def __contains__(self, key: str):
        return key in self._impl

    def get(self, key: str, default: Optional[T] = None) -> T:
        return self._impl.get(key, default)

    def __getitem__(self, key: str) -> Any:
        item: Optional[Any] = self.get(key)
        if item is None:
            raise KeyError(key)
        return item

    @property
    def interface(self) -> str:
        return self["interface"]

    @property
    def implementations(self) -> Tuple[str, ...]:
        return _as_names(self["implementations"], "implementations")

    @property
    def consumer(self) -> str:
        return self["consumer"]

    @property
    def entry_point(self) -> str:
        return self["entry_point"]

    @property
    def forwarding_call(self) -> str:
        return self["forwarding_call"]

    @property
    def expected_output(self) -> Tuple[str, ...]:
        return _as_names(self["expected_output"], "expected_output")
