"""Typed build error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across CLI and report surfaces."""

    VALIDATION = "E_VALIDATION"
    TOOLCHAIN_NOT_FOUND = "E_TOOLCHAIN_NOT_FOUND"
    INTEGRITY = "E_INTEGRITY"
    NATIVE_BUILD = "E_NATIVE_BUILD"
    PACKAGING = "E_PACKAGING"
    POLICY = "E_POLICY"


class RocksBuildError(Exception):
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

    @property
    def message(self) -> str:
        return super().__str__()

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
            "message": self.message,
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ValidationError(RocksBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class ToolchainNotFoundError(RocksBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.TOOLCHAIN_NOT_FOUND, hint=hint, context=context
        )


class IntegrityError(RocksBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INTEGRITY, hint=hint, context=context)


class NativeBuildError(RocksBuildError):
    """A delegated configure/compile/archive step failed.

    ``log_tail`` holds the last lines of the underlying build output so the
    failure can be diagnosed without opening the full log.
    """

    log_tail: str

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        log_tail: str = "",
    ) -> None:
        super().__init__(message, code=ErrorCode.NATIVE_BUILD, hint=hint, context=context)
        self.log_tail = log_tail

    def __str__(self) -> str:
        rendered = super().__str__()
        if self.log_tail:
            rendered = f"{rendered}\n--- tail of build output ---\n{self.log_tail}"
        return rendered

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        if self.log_tail:
            payload["log_tail"] = self.log_tail
        return payload


class PackagingError(RocksBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PACKAGING, hint=hint, context=context)


class PolicyError(RocksBuildError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.POLICY, hint=hint, context=context)


__all__ = [
    "ErrorCode",
    "IntegrityError",
    "NativeBuildError",
    "PackagingError",
    "PolicyError",
    "RocksBuildError",
    "ToolchainNotFoundError",
    "ValidationError",
]
