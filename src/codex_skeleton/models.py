from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator


class CaptureRole(StrEnum):
    FULL_DEFINITION = "full-definition"
    SIGNATURE_ONLY = "signature-only"
    NAME_ANCHOR = "name-anchor"
    BODY = "body"

    @property
    def keeps(self) -> bool:
        return self is not CaptureRole.BODY


class FallbackReason(StrEnum):
    DISABLED = "disabled"
    UNSUPPORTED_LANGUAGE = "unsupported-language"
    EMPTY_RULE_SET = "empty-rule-set"
    PARSE_FAILURE = "parse-failure"
    MALFORMED_QUERY = "malformed-query"
    INTERNAL_ERROR = "internal-error"
    CANCELLED = "cancelled"


class CaptureMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_byte: int
    end_byte: int
    role: CaptureRole
    priority: int
    node_kind: str

    @model_validator(mode="after")
    def _check_span(self) -> "CaptureMatch":
        if self.start_byte < 0 or self.end_byte < self.start_byte:
            raise ValueError(f"Invalid span [{self.start_byte}, {self.end_byte})")
        return self

    @property
    def width(self) -> int:
        return self.end_byte - self.start_byte


class ResolvedRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_byte: int
    end_byte: int
    keep: bool


class SourceFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    language: str | None = None


class CompressedOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: str


class CompressionOutcome(BaseModel):
    """Result of compressing one file, including why it fell back when it did."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    status: Literal["compressed", "unchanged"]
    reason: FallbackReason | None = None
    language: str | None = None

    @classmethod
    def compressed(cls, source: SourceFile, content: str, language: str) -> "CompressionOutcome":
        return cls(path=source.path, content=content, status="compressed", language=language)

    @classmethod
    def unchanged(
        cls, source: SourceFile, reason: FallbackReason, language: str | None = None
    ) -> "CompressionOutcome":
        return cls(path=source.path, content=source.content, status="unchanged", reason=reason, language=language)

    def to_output(self) -> CompressedOutput:
        return CompressedOutput(path=self.path, content=self.content)
