from __future__ import annotations

import logging
from typing import Any, List, Optional, Union

from lsprotocol.types import Diagnostic, DiagnosticSeverity, Position, Range
from pydantic import BaseModel, ValidationError

from flyover.model import Annotation, Point

logger = logging.getLogger(__name__)


class PositionDTO(BaseModel):
    line: int
    character: int

    @classmethod
    def from_point(cls, point: Point) -> "PositionDTO":
        return cls(line=point.line, character=point.character)

    def to_point(self) -> Point:
        return Point(self.line, self.character)


class RangeDTO(BaseModel):
    start: PositionDTO
    end: PositionDTO


class DiagnosticDTO(BaseModel):
    range: RangeDTO
    message: str
    severity: Optional[int] = None
    source: Optional[str] = None
    code: Optional[Union[int, str]] = None

    def to_lsp(self) -> Diagnostic:
        severity = None
        if self.severity in {item.value for item in DiagnosticSeverity}:
            severity = DiagnosticSeverity(self.severity)
        return Diagnostic(
            range=Range(
                start=Position(line=self.range.start.line, character=self.range.start.character),
                end=Position(line=self.range.end.line, character=self.range.end.character),
            ),
            message=self.message,
            severity=severity,
            source=self.source,
            code=self.code,
        )


class DocumentRequest(BaseModel):
    uri: str


class PointRequest(BaseModel):
    uri: str
    line: int
    character: int

    def to_point(self) -> Point:
        return Point(self.line, self.character)


class ReportRequest(BaseModel):
    uri: str
    diagnostics: List[Any] = []


class AnnotationDTO(BaseModel):
    anchor_start: PositionDTO
    anchor_end: PositionDTO
    message: str
    content: str
    visible: bool

    @classmethod
    def from_annotation(cls, annotation: Annotation) -> "AnnotationDTO":
        return cls(
            anchor_start=PositionDTO.from_point(annotation.anchor_start),
            anchor_end=PositionDTO.from_point(annotation.anchor_end),
            message=annotation.message,
            content=annotation.display_content.plain,
            visible=annotation.visible,
        )


class AnnotationsResponse(BaseModel):
    uri: str
    active: bool
    annotations: List[AnnotationDTO] = []


class ToggleResponse(BaseModel):
    uri: str
    toggled: bool
    outcome: Optional[str] = None


class ReconcileResponse(BaseModel):
    uri: str
    created: int = 0
    updated: int = 0
    removed: int = 0


def parse_diagnostics(raw: List[Any] | None) -> list[Diagnostic]:
    """Validate diagnostics one by one, dropping the ones that do not parse."""
    diagnostics: list[Diagnostic] = []
    for item in raw or []:
        try:
            diagnostics.append(DiagnosticDTO.model_validate(item).to_lsp())
        except ValidationError as exc:
            logger.debug("dropping malformed diagnostic: %s", exc.errors())
    return diagnostics
