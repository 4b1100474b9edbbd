# puml_gen/diagnostics.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional

Severity = Literal["error", "warning"]


class DiagramGenError(Exception):
    """Base class for errors that abort a generation pass."""


class SceneParseError(DiagramGenError, ValueError):
    """Structurally invalid scene text. Fatal for the whole pass."""

    def __init__(self, message: str, path: str = "", line: int = 0, column: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.line = line
        self.column = column

    def __str__(self) -> str:
        where = self.path or "<scene>"
        return f"{where}:{self.line}:{self.column}: {self.message}"


class CyclicHierarchyError(DiagramGenError):
    """Containment edges form a cycle; the graph cannot be rendered."""

    def __init__(self, cycle: Iterable[str]) -> None:
        self.cycle = tuple(cycle)
        super().__init__("cyclic hierarchy: " + " -> ".join(self.cycle))


class GenerationCancelled(DiagramGenError):
    """The caller's cancellation token was set during the pass."""


@dataclass(frozen=True)
class Diagnostic:
    """Structured non-fatal issue reported back to the caller."""

    severity: Severity
    code: str
    message: str
    path: str = ""
    hint: Optional[str] = None

    def format(self) -> str:
        where = f"{self.path}: " if self.path else ""
        out = f"{where}{self.message}"
        if self.hint:
            out = f"{out} (hint: {self.hint})"
        return out


@dataclass
class DiagnosticSink:
    """Collects diagnostics for one pass.

    Rule controls:
      - codes in `ignore` are dropped
      - warnings whose code is in `escalate` are reported as errors
    """

    ignore: frozenset[str] = frozenset()
    escalate: frozenset[str] = frozenset()
    items: list[Diagnostic] = field(default_factory=list)

    def emit(
        self,
        severity: Severity,
        code: str,
        message: str,
        path: str = "",
        hint: Optional[str] = None,
    ) -> None:
        if code in self.ignore:
            return
        final_severity: Severity = (
            "error" if (severity == "warning" and code in self.escalate) else severity
        )
        self.items.append(
            Diagnostic(
                severity=final_severity,
                code=code,
                message=message,
                path=path,
                hint=hint,
            )
        )

    def warn(self, code: str, message: str, path: str = "", hint: Optional[str] = None) -> None:
        self.emit("warning", code, message, path=path, hint=hint)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diag in diagnostics:
            self.emit(diag.severity, diag.code, diag.message, path=diag.path, hint=diag.hint)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity == "error"]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity == "warning"]

    def codes(self) -> list[str]:
        return [d.code for d in self.items]
