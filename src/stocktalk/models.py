"""Pydantic models for the classifier/extractor contracts and parsed commands."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PipelinePath(str, Enum):
    """Which branch of the pipeline produced a parsed command."""

    LLM = "llm"
    FALLBACK = "fallback"
    OVERRIDE = "override"
    PENDING = "pending"
    ERROR_FALLBACK = "error_fallback"
    EXHAUSTED = "exhausted"


class ClassificationResult(BaseModel):
    """Stage 1 output: which action the user wants."""

    action: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str | None = None


class ExtractionResult(BaseModel):
    """Stage 2 output: parameters for the classified action."""

    model_config = ConfigDict(populate_by_name=True)

    parameters: dict[str, Any] = Field(default_factory=dict)
    missing_required: list[str] = Field(default_factory=list, alias="missingRequired")
    confidence: float = Field(..., ge=0.0, le=1.0)


class ServiceResponse(BaseModel):
    """Envelope returned by the classify/extract endpoints."""

    success: bool
    data: dict[str, Any] | None = None
    message: str | None = None


class StageOneDebug(BaseModel):
    """Classifier view recorded for auditing."""

    action: str
    confidence: float
    reasoning: str | None = None


class StageTwoDebug(BaseModel):
    """Extractor view recorded for auditing."""

    parameters: dict[str, Any] = Field(default_factory=dict)
    confidence: float
    missing_required: list[str] = Field(default_factory=list)


class ParseDebug(BaseModel):
    """Intermediate results behind a ParsedCommand.

    stage1 and stage2 hold the classifier and extractor outputs when those
    stages ran. used_override and override_reason record a confidence-driven
    switch to a search action, and path names the pipeline branch that
    produced the final result.
    """

    stage1: StageOneDebug | None = None
    stage2: StageTwoDebug | None = None
    used_override: bool = False
    override_reason: str | None = None
    path: PipelinePath = PipelinePath.LLM


class ParsedCommand(BaseModel):
    """Structured, executable interpretation of a user command."""

    action: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str
    missing_required: list[str] | None = None
    clarification_needed: str | None = None
    debug: ParseDebug | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase shape used by API responses."""
        result: dict[str, Any] = {
            "action": self.action,
            "parameters": self.parameters,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }
        if self.missing_required is not None:
            result["missingRequired"] = self.missing_required
        if self.clarification_needed:
            result["clarificationNeeded"] = self.clarification_needed
        if self.debug is not None:
            debug: dict[str, Any] = {
                "usedOverride": self.debug.used_override,
                "path": self.debug.path.value,
            }
            if self.debug.stage1 is not None:
                debug["stage1"] = self.debug.stage1.model_dump()
            if self.debug.stage2 is not None:
                debug["stage2"] = {
                    "parameters": self.debug.stage2.parameters,
                    "confidence": self.debug.stage2.confidence,
                    "missingRequired": self.debug.stage2.missing_required,
                }
            if self.debug.override_reason:
                debug["overrideReason"] = self.debug.override_reason
            result["debug"] = debug
        return result
