from __future__ import annotations

from typing import Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

NO_EXPLANATION = "No explanation available."


class Explainer(Protocol):
    """Produces a human-readable caption for a CLI error that has already been decided."""

    def explain(self, command: str, error: str) -> str:
        ...


class NullExplainer:
    def explain(self, command: str, error: str) -> str:
        return NO_EXPLANATION


def explain_safely(explainer: Optional[Explainer], command: str, error: str) -> Optional[str]:
    """Ask `explainer` for a caption. Any failure degrades to NO_EXPLANATION."""
    if explainer is None:
        return None
    try:
        text = explainer.explain(command, error)
    except Exception as e:
        logger.warning("explainer_failed", command=command, error=error, exc_info=e)
        return NO_EXPLANATION
    if not isinstance(text, str) or not text.strip():
        return NO_EXPLANATION
    return text.strip()
