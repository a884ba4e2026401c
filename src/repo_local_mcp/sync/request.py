"""Validation of ``repo_ensure_local`` arguments.

The argument set is closed: unknown fields are rejected rather than
ignored. Validation failures are reported through the error taxonomy so
the tool layer formats them like any other failure.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import (
    InvalidArgumentsError,
    InvalidReferenceError,
    UnsupportedUpdateModeError,
)
from .models import UpdateMode


class EnsureLocalRequest(BaseModel):
    """Arguments accepted by one ``ensure_local`` call.

    Attributes:
        repo: Repository reference (URL, SSH ref, or shorthand), trimmed.
        ref: Branch, tag, or commit to check out; empty means none.
        clone_root: Absolute directory overriding the configured root.
        depth: Shallow clone depth, used only when cloning.
        update_mode: Policy for an existing clone.
        allow_ssh: Accept SSH forms; ``None`` defers to configuration.
    """

    repo: str
    ref: str | None = None
    clone_root: str | None = None
    depth: int | None = Field(default=None, gt=0)
    update_mode: UpdateMode = UpdateMode.FF_ONLY
    allow_ssh: bool | None = None

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("repo")
    @classmethod
    def _trim_repo(cls, v: str) -> str:
        return v.strip()

    @field_validator("ref", "clone_root")
    @classmethod
    def _empty_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("ref")
    @classmethod
    def _reject_option_like_ref(cls, v: str | None) -> str | None:
        if v is not None and v.startswith("-"):
            raise ValueError("ref must not start with '-'")
        return v

    @field_validator("update_mode", mode="before")
    @classmethod
    def _trim_update_mode(cls, v: Any) -> Any:
        if v is None:
            return UpdateMode.FF_ONLY
        if isinstance(v, str):
            return v.strip() or UpdateMode.FF_ONLY
        return v

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any] | None) -> EnsureLocalRequest:
        """Validate raw tool arguments.

        Raises:
            InvalidReferenceError: If ``repo`` is missing or blank.
            UnsupportedUpdateModeError: If ``update_mode`` is not recognized.
            InvalidArgumentsError: For unknown fields or wrongly typed values.
        """
        args = dict(arguments or {})
        try:
            request = cls.model_validate(args)
        except ValidationError as e:
            raise _translate_validation_error(e, args) from None

        if not request.repo:
            raise InvalidReferenceError("Repository URL is required")
        return request


def _translate_validation_error(
    error: ValidationError, args: dict[str, Any]
) -> Exception:
    problems = error.errors()
    fields = {str(p["loc"][0]) for p in problems if p.get("loc")}

    if "update_mode" in fields:
        return UnsupportedUpdateModeError(
            f"Unsupported update_mode: {args.get('update_mode')}",
            hint="Use one of: ff-only, fetch-only, reset-clean.",
        )

    repo = args.get("repo")
    if "repo" in fields and (repo is None or repo == ""):
        return InvalidReferenceError("Repository URL is required")

    unknown = sorted(
        str(p["loc"][0])
        for p in problems
        if p.get("type") == "extra_forbidden" and p.get("loc")
    )
    if unknown:
        return InvalidArgumentsError(
            f"Unknown argument(s): {', '.join(unknown)}",
            hint=(
                "Allowed arguments: repo, ref, clone_root, depth, "
                "update_mode, allow_ssh."
            ),
        )

    details = "\n".join(
        f"{'.'.join(str(part) for part in p['loc'])}: {p['msg']}"
        for p in problems
    )
    return InvalidArgumentsError(
        "Invalid arguments for repo_ensure_local",
        details=details,
    )
