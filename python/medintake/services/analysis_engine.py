"""Analysis engine contract.

An engine turns a stored Document into an AnalysisDraft. Engines:
- Do no DB access (the pipeline persists results)
- Raise AnalysisEngineError for any failure they want recorded on the document

The deployed engine is configured by import path (ANALYSIS_ENGINE="pkg.mod:attr").
The attribute may be an engine instance or a zero-argument class/factory.
"""

import importlib
from typing import Protocol, runtime_checkable

from medintake.db.models import Document
from medintake.errors import ApiErrorCode, UnavailableError
from medintake.schemas.analysis import AnalysisDraft


class AnalysisEngineError(Exception):
    """Engine failure; the message is stored on the failed document."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@runtime_checkable
class AnalysisEngine(Protocol):
    def analyze(self, document: Document) -> AnalysisDraft: ...


def load_analysis_engine(path: str | None) -> AnalysisEngine:
    """Resolve and instantiate the engine at path ("module:attr").

    Raises:
        UnavailableError: If no engine is configured.
        ValueError: If path is malformed or does not resolve to an engine.
    """
    if not path:
        raise UnavailableError(ApiErrorCode.E_UNAVAILABLE, "Analysis engine is not configured")

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"ANALYSIS_ENGINE must look like 'module:attr', got {path!r}")

    target = getattr(importlib.import_module(module_name), attr)
    engine = target
    if isinstance(target, type) or (callable(target) and not hasattr(target, "analyze")):
        engine = target()

    if not isinstance(engine, AnalysisEngine):
        raise ValueError(f"{path!r} does not provide an analyze(document) method")
    return engine
