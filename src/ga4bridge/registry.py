"""Global registry for output normalizers."""

import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel

from ga4bridge.params import Params
from ga4bridge.results import ResultBase
from ga4bridge.sanitize import sanitize

logger = logging.getLogger(__name__)

Assembler = Callable[[str, Any], ResultBase]
A = TypeVar("A", bound=Assembler)


@dataclass(frozen=True)
class NormalizerDescription:
    """A registered assembler and the models describing its input and output."""

    name: str
    assembler: Assembler
    params_model: type[Params]
    result_model: type[ResultBase]
    description: str = ""
    tags: list[str] = field(default_factory=list)

    def parse_params(self, params: BaseModel | dict[str, Any] | None) -> Params:
        """Validate raw parameters against the operation's params model."""
        if params is None:
            return self.params_model()
        if isinstance(params, self.params_model):
            return params
        if isinstance(params, BaseModel):
            params = params.model_dump()
        return self.params_model.model_validate(params)


class Registry:
    """Global registry of normalizers keyed by operation name."""

    def __init__(self):
        self._normalizers: dict[str, NormalizerDescription] = OrderedDict()

    def register(
        self,
        assembler: Assembler,
        name: str,
        params_model: type[Params],
        result_model: type[ResultBase],
        description: str = "",
        tags: list[str] | None = None,
    ) -> None:
        """Register an assembler under an operation name.

        Args:
            assembler: Function turning sanitized output and params into a result
            name: Operation name
            params_model: Pydantic model of the invocation parameters
            result_model: Result variant the assembler returns
            description: Operation description, defaults to the assembler docstring
            tags: List of tags for categorization
        """
        if name in self._normalizers:
            logger.debug(f"Normalizer {name} already registered, skipping")
            return

        doc = (assembler.__doc__ or "").strip().split("\n")[0]
        self._normalizers[name] = NormalizerDescription(
            name=name,
            assembler=assembler,
            params_model=params_model,
            result_model=result_model,
            description=description or doc,
            tags=tags or [],
        )
        logger.debug(f"Registered normalizer: {name}")

    @property
    def normalizers(self) -> list[NormalizerDescription]:
        """Get all registered normalizer descriptions."""
        return list(self._normalizers.values())

    @property
    def operations(self) -> list[str]:
        return list(self._normalizers)

    def get_description(self, name: str) -> NormalizerDescription | None:
        """Get a normalizer description by name."""
        return self._normalizers.get(name)

    def get_assembler(self, name: str) -> Assembler:
        """Get the raw assembler by name."""
        desc = self._normalizers.get(name)
        if desc is None:
            raise KeyError(f"Operation '{name}' not found")
        return desc.assembler

    def normalize(
        self, name: str, raw_text: str, params: BaseModel | dict[str, Any] | None = None
    ) -> ResultBase:
        """Sanitize raw output and run the operation's assembler on it.

        Args:
            name: Operation name
            raw_text: Captured CLI output
            params: Invocation parameters (model instance, dict or None)

        Returns:
            The operation's result variant

        Raises:
            KeyError: If the operation is not registered
            pydantic.ValidationError: If the params do not validate
        """
        desc = self._normalizers.get(name)
        if desc is None:
            raise KeyError(f"Operation '{name}' not found")
        parsed = desc.parse_params(params)
        return desc.assembler(sanitize(raw_text), parsed)


# Global registry instance
REGISTRY = Registry()


def register(
    *,
    name: str,
    params: type[Params],
    result: type[ResultBase],
    description: str = "",
    tags: list[str] | None = None,
) -> Callable[[A], A]:
    """
    Register an assembler as the normalizer of an operation.

    Usage:
        @register(name="report", params=ReportParams, result=ReportResult)
        def assemble_report(text: str, params: ReportParams) -> ReportResult: ...

    Args:
        name: Operation name
        params: Invocation parameters model
        result: Result variant model
        description: Operation description
        tags: List of tags for categorization
    """
    def decorator(assembler: A) -> A:
        REGISTRY.register(
            assembler,
            name=name,
            params_model=params,
            result_model=result,
            description=description,
            tags=tags,
        )
        return assembler

    return decorator


def normalize(
    operation: str, raw_text: str, params: BaseModel | dict[str, Any] | None = None
) -> ResultBase:
    """Normalize captured output of ``operation`` using the global registry."""
    return REGISTRY.normalize(operation, raw_text, params)
