"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the build pipeline."""

    CONFIGURATION = "E_CONFIGURATION"
    ACQUISITION = "E_ACQUISITION"
    PATCH = "E_PATCH"
    COMPOSITION = "E_COMPOSITION"
    BUILD_PROCESS = "E_BUILD_PROCESS"
    BUILD_TIMEOUT = "E_BUILD_TIMEOUT"
    ARTIFACT_MISSING = "E_ARTIFACT_MISSING"


class CoreCrossError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigurationError(CoreCrossError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIGURATION, hint=hint, context=context)


class AcquisitionError(CoreCrossError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.ACQUISITION, hint=hint, context=context)


class PatchError(CoreCrossError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PATCH, hint=hint, context=context)


class CompositionError(CoreCrossError):
    """Raised when a recipe cannot be turned into a build-tool invocation."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.COMPOSITION, hint=hint, context=context)


class BuildProcessError(CoreCrossError):
    """An external tool exited non-zero; ``context["stderr"]`` holds its tail."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        code: ErrorCode = ErrorCode.BUILD_PROCESS,
    ) -> None:
        super().__init__(message, code=code, hint=hint, context=context)


class BuildTimeoutError(BuildProcessError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, hint=hint, context=context, code=ErrorCode.BUILD_TIMEOUT)


class ArtifactMissingError(CoreCrossError):
    """The build tool exited zero but the declared artifact does not exist."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.ARTIFACT_MISSING, hint=hint, context=context)


__all__ = [
    "AcquisitionError",
    "ArtifactMissingError",
    "BuildProcessError",
    "BuildTimeoutError",
    "CompositionError",
    "ConfigurationError",
    "CoreCrossError",
    "ErrorCode",
    "PatchError",
]
