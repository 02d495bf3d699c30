"""
Kernel Functions - Prompt-based and native units of work

WHAT: Tagged-union function model with a uniform invoke/describe contract
WHERE: skernel/runtime/kernel/functions.py - function layer below plugins
WHO: Plugins registering functions; the kernel invoking them
TIME: Binding O(#params) per call; schema built once at registration

A KernelFunction is either PROMPT (a `{{var}}` template handed to the kernel's
chat service) or NATIVE (a Python callable whose parameters are bound from the
context bag). Native parameter schemas are computed once when the function is
created; invocation only walks the stored schema.

Invocation never raises: callable errors, coercion errors, and a missing chat
service all come back as failed FunctionResults.
"""

from __future__ import annotations

import inspect
import logging
import typing
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable, Literal, Mapping, Optional, Sequence

from .context import ContextVariables
from .errors import ChatServiceNotConfiguredError
from .models import FunctionMetadata, ParameterMetadata
from .prompting import extract_variables, load_template, render_template
from .results import FunctionResult

if TYPE_CHECKING:
    from .kernel import Kernel

logger = logging.getLogger(__name__)

TypeTag = Literal["str", "int", "float", "bool", "list", "any"]
Role = Literal["value", "context", "kernel"]

RESERVED_CONTEXT = "context"
RESERVED_KERNEL = "kernel"

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on", "y"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", "n", ""})
_SIMPLE_TYPES: Mapping[Any, TypeTag] = {
    str: "str",
    int: "int",
    float: "float",
    bool: "bool",
    list: "list",
    tuple: "list",
    set: "list",
}


class FunctionKind(str, Enum):
    PROMPT = "prompt"
    NATIVE = "native"


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """Declared parameter: name, type tag, required flag, default value."""

    name: str
    type: TypeTag = "any"
    required: bool = True
    default: Any = None
    description: str = ""
    role: Role = "value"

    def to_metadata(self) -> ParameterMetadata:
        return ParameterMetadata(
            name=self.name,
            type=self.type,
            required=self.required,
            default=None if self.required else self.default,
            description=self.description or f"Parameter: {self.name}",
        )


# ------------------ type coercion ------------------
def coerce_value(value: Any, type_tag: TypeTag) -> Any:
    """Coerce a context value to a declared primitive type.

    `None` passes through untouched. Unconvertible values raise ValueError.
    """

    if value is None or type_tag == "any":
        return value
    if type_tag == "str":
        return value if isinstance(value, str) else str(value)
    if type_tag == "bool":
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        return bool(value)
    if type_tag == "int":
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text)
            except ValueError:
                return int(float(text))
        return int(value)
    if type_tag == "float":
        return float(value.strip()) if isinstance(value, str) else float(value)
    if type_tag == "list":
        if isinstance(value, list):
            return value
        if isinstance(value, (tuple, set, frozenset)):
            return list(value)
        return [value]
    raise ValueError(f"Unknown parameter type '{type_tag}'")


def _annotation_tag(annotation: Any) -> TypeTag:
    if annotation is inspect.Parameter.empty:
        return "any"
    if isinstance(annotation, str):
        text = annotation.replace(" ", "")
        for suffix in ("|None", "None|"):
            text = text.replace(suffix, "")
        if text.startswith("Optional[") and text.endswith("]"):
            text = text[len("Optional["):-1]
        base = text.split("[", 1)[0]
        return {
            "str": "str",
            "int": "int",
            "float": "float",
            "bool": "bool",
            "list": "list",
            "List": "list",
            "tuple": "list",
            "Tuple": "list",
            "Sequence": "list",
        }.get(base, "any")
    if isinstance(annotation, type) and annotation in _SIMPLE_TYPES:
        return _SIMPLE_TYPES[annotation]
    origin = typing.get_origin(annotation)
    if origin in _SIMPLE_TYPES:
        return _SIMPLE_TYPES[origin]
    args = [a for a in typing.get_args(annotation) if a is not type(None)]
    if origin is not None and len(args) == 1 and origin not in (list, tuple, set):
        # Optional[X] / X | None
        return _annotation_tag(args[0])
    return "any"


def _annotation_role(name: str, annotation: Any) -> Role:
    if name == RESERVED_CONTEXT:
        return "context"
    if name == RESERVED_KERNEL:
        return "kernel"
    if annotation is ContextVariables or annotation == "ContextVariables":
        return "context"
    if annotation == "Kernel":
        return "kernel"
    if isinstance(annotation, type) and annotation.__name__ == "Kernel":
        from .kernel import Kernel

        if issubclass(annotation, Kernel):
            return "kernel"
    return "value"


def discover_parameters(
    fn: Callable[..., Any],
    declared: Iterable[ParameterSpec] | None = None,
) -> tuple[tuple[ParameterSpec, ...], frozenset[str]]:
    """Build the parameter schema for a native callable.

    Returns the ordered specs and the names that must be passed positionally.
    Explicitly declared specs override what the signature reports for the same
    name; when the signature cannot be read the declared list is used as-is.
    """

    overrides = {spec.name: spec for spec in (declared or ())}
    try:
        try:
            signature = inspect.signature(fn, eval_str=True)
        except Exception:
            # unresolvable string annotations; read them unevaluated
            signature = inspect.signature(fn)
    except (TypeError, ValueError):
        logger.debug(f"No signature available for {fn!r}; using declared parameters")
        return tuple(overrides.values()), frozenset()

    specs: list[ParameterSpec] = []
    positional_only: set[str] = set()
    for param in signature.parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            positional_only.add(param.name)
        role = _annotation_role(param.name, param.annotation)
        if role != "value":
            specs.append(ParameterSpec(name=param.name, type="any", required=False, role=role))
            continue
        if param.name in overrides:
            specs.append(overrides[param.name])
            continue
        has_default = param.default is not inspect.Parameter.empty
        specs.append(
            ParameterSpec(
                name=param.name,
                type=_annotation_tag(param.annotation),
                required=not has_default,
                default=param.default if has_default else None,
            )
        )
    return tuple(specs), frozenset(positional_only)


# ------------------ variant payloads ------------------
@dataclass(frozen=True, slots=True)
class PromptTemplate:
    template: str
    parameters: tuple[ParameterSpec, ...] = ()

    @classmethod
    def parse(cls, template: str, parameters: Iterable[ParameterSpec] | None = None) -> "PromptTemplate":
        declared = {spec.name: spec for spec in (parameters or ())}
        specs = [
            declared.pop(name, ParameterSpec(name=name, type="str", required=False, default=""))
            for name in extract_variables(template)
        ]
        specs.extend(declared.values())
        return cls(template=template, parameters=tuple(specs))

    def render(self, context: Mapping[str, Any]) -> str:
        return render_template(self.template, context)


@dataclass(frozen=True, slots=True)
class NativeBinding:
    fn: Callable[..., Any]
    parameters: tuple[ParameterSpec, ...] = ()
    positional_only: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def bind(cls, fn: Callable[..., Any], parameters: Iterable[ParameterSpec] | None = None) -> "NativeBinding":
        if not callable(fn):
            raise TypeError(f"Native function target must be callable, got {type(fn).__name__}")
        specs, positional_only = discover_parameters(fn, parameters)
        return cls(fn=fn, parameters=specs, positional_only=positional_only)

    def build_arguments(self, context: ContextVariables, kernel: Optional["Kernel"]) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for spec in self.parameters:
            if spec.role == "context":
                value: Any = context
            elif spec.role == "kernel":
                value = kernel
            else:
                value = context.get(spec.name)
                if value is None and not spec.required:
                    value = spec.default
                value = coerce_value(value, spec.type)
            if spec.name in self.positional_only:
                args.append(value)
            else:
                kwargs[spec.name] = value
        return args, kwargs

    def call(self, context: ContextVariables, kernel: Optional["Kernel"]) -> Any:
        args, kwargs = self.build_arguments(context, kernel)
        return self.fn(*args, **kwargs)


def _stringify_output(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


# ------------------ the function itself ------------------
@dataclass(frozen=True, slots=True)
class KernelFunction:
    """Named unit of work: a prompt template or a native callable."""

    name: str
    kind: FunctionKind
    payload: PromptTemplate | NativeBinding
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Function name must be non-empty")
        expected = PromptTemplate if self.kind is FunctionKind.PROMPT else NativeBinding
        if not isinstance(self.payload, expected):
            raise TypeError(f"{self.kind.value} function '{self.name}' requires a {expected.__name__} payload")

    # ------------------ factories ------------------
    @classmethod
    def from_prompt(
        cls,
        name: str,
        template: str,
        description: str = "",
        parameters: Sequence[ParameterSpec] | None = None,
    ) -> "KernelFunction":
        return cls(
            name=name,
            kind=FunctionKind.PROMPT,
            payload=PromptTemplate.parse(template, parameters),
            description=description,
        )

    @classmethod
    def from_prompt_file(cls, name: str, path: str | Path, description: str = "") -> "KernelFunction":
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Prompt file not found: {path}")
        return cls.from_prompt(name, load_template(path), description)

    @classmethod
    def from_native(
        cls,
        name: str,
        fn: Callable[..., Any],
        description: str = "",
        parameters: Sequence[ParameterSpec] | None = None,
    ) -> "KernelFunction":
        return cls(
            name=name,
            kind=FunctionKind.NATIVE,
            payload=NativeBinding.bind(fn, parameters),
            description=description,
        )

    # ------------------ introspection ------------------
    @property
    def is_prompt(self) -> bool:
        return self.kind is FunctionKind.PROMPT

    @property
    def is_native(self) -> bool:
        return self.kind is FunctionKind.NATIVE

    @property
    def parameters(self) -> tuple[ParameterSpec, ...]:
        return tuple(p for p in self.payload.parameters if p.role == "value")

    @property
    def template(self) -> str:
        return self.payload.template if isinstance(self.payload, PromptTemplate) else ""

    def describe(self) -> FunctionMetadata:
        return FunctionMetadata(
            name=self.name,
            description=self.description,
            type=self.kind.value,
            parameters=[p.to_metadata() for p in self.parameters],
            prompt_template=self.template if self.is_prompt else None,
        )

    # ------------------ invocation ------------------
    def invoke(self, context: ContextVariables, kernel: Optional["Kernel"] = None) -> FunctionResult:
        if self.kind is FunctionKind.PROMPT:
            return self._invoke_prompt(context, kernel)
        return self._invoke_native(context, kernel)

    def _failure(self, label: str, exc: BaseException) -> FunctionResult:
        return FunctionResult.failure(
            f"{label} function '{self.name}' failed: {exc}",
            metadata={
                "function_name": self.name,
                "function_type": self.kind.value,
                "error_type": type(exc).__name__,
            },
        )

    def _invoke_prompt(self, context: ContextVariables, kernel: Optional["Kernel"]) -> FunctionResult:
        payload = self.payload
        assert isinstance(payload, PromptTemplate)
        try:
            service = kernel.chat_service if kernel is not None else None
            if service is None:
                raise ChatServiceNotConfiguredError(
                    f"prompt function '{self.name}' requires a chat service but none is configured"
                )
            rendered = payload.render(context)
            response = service.generate_text(rendered, context)
        except Exception as exc:
            logger.warning(f"Prompt function {self.name} failed: {exc}")
            return self._failure("Prompt", exc)
        return FunctionResult.ok(
            _stringify_output(response),
            metadata={
                "function_name": self.name,
                "function_type": self.kind.value,
                "prompt_template": payload.template,
                "rendered_prompt": rendered,
            },
        )

    def _invoke_native(self, context: ContextVariables, kernel: Optional["Kernel"]) -> FunctionResult:
        payload = self.payload
        assert isinstance(payload, NativeBinding)
        try:
            output = payload.call(context, kernel)
        except Exception as exc:
            logger.warning(f"Native function {self.name} failed: {exc}")
            return self._failure("Native", exc)
        if isinstance(output, FunctionResult):
            return output
        return FunctionResult.ok(_stringify_output(output))


__all__ = [
    "FunctionKind",
    "ParameterSpec",
    "PromptTemplate",
    "NativeBinding",
    "KernelFunction",
    "coerce_value",
    "discover_parameters",
]
