"""
Page action contract - the only boundary to the browser/LLM engine
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

COOKIE_OBSERVE_INSTRUCTION = (
    "Click the 'Accept All', 'Alle akzeptieren', 'Akzeptieren', or 'Cookies annehmen' button"
)
COOKIE_ACT_INSTRUCTION = "Click the 'Accept All' button or 'Alle akzeptieren' button"


class PageActionError(Exception):
    """Base class for failures of a single page operation."""


class NavigationError(PageActionError):
    """goto failed or timed out."""


class ActionError(PageActionError):
    """An instruction could not be grounded to a page element, or the click failed."""


class ExtractionError(PageActionError):
    """extract failed, timed out, or returned an unusable shape."""


@dataclass
class ActionCandidate:
    """A concrete page action proposed by observe()"""

    selector: str
    description: str = ""
    method: str = "click"
    arguments: List[Any] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.method} {self.selector} ({self.description})"


class PageActionProvider(ABC):
    """
    Navigate / observe / act / extract on a single page.

    observe, act and extract are backed by a nondeterministic engine: callers
    must treat every call as fallible and never rely on identical results.
    """

    @abstractmethod
    def goto(self, url: str, timeout_ms: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def url(self) -> str:
        ...

    @abstractmethod
    def hrefs(self) -> List[str]:
        """Absolute hrefs of every anchor on the current page, in document order."""

    @abstractmethod
    def observe(self, instruction: str) -> List[ActionCandidate]:
        ...

    @abstractmethod
    def act(self, action: Union[ActionCandidate, str]) -> None:
        ...

    @abstractmethod
    def extract(self, instruction: str, schema: Type[SchemaT]) -> SchemaT:
        ...

    @abstractmethod
    def wait_for_timeout(self, ms: int) -> None:
        ...

    @abstractmethod
    def wait_for_load_state(self, state: str = "load", timeout_ms: Optional[int] = None) -> None:
        ...


def dismiss_cookie_banner(provider: PageActionProvider, wait_ms: int = 1000) -> bool:
    """Best-effort click on a cookie consent button. Returns True if a click went through."""
    provider.wait_for_timeout(wait_ms)
    clicked = False
    try:
        actions = provider.observe(COOKIE_OBSERVE_INSTRUCTION)
        if actions:
            logger.debug("Cookie banner action found: %s", actions[0])
            provider.act(actions[0])
        else:
            logger.debug("No cookie action observed, trying direct act")
            provider.act(COOKIE_ACT_INSTRUCTION)
        clicked = True
    except PageActionError as exc:
        logger.debug("Cookie banner dismissal skipped: %s", exc)
    provider.wait_for_timeout(wait_ms)
    return clicked
