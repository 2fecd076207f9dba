"""Callback handler for the identity-provider redirect.

The handler is an explicit state machine::

    IDLE -> EXTRACTING -> ERRORING                  (provider reported error)
                       -> FAILED                    (code/state missing)
                       -> EXCHANGING -> SUCCEEDED
                                     -> FAILED

Once a handler has entered ``EXCHANGING`` it is latched: any further call to
:meth:`CallbackHandler.handle` is a no-op and returns ``None``.  Browsers and
proxies occasionally deliver the same redirect twice; the latch guarantees a
single token exchange per delivery.

:class:`~image_gallery.auth.errors.AuthFlowError` subclasses are caught here
and turned into a terminal :class:`CallbackOutcome`.  Any other exception
from the exchanger is logged and reported as a generic failure; nothing
escapes to the caller.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Mapping, Protocol
from urllib.parse import unquote

from image_gallery.auth.errors import (
    AuthFlowError,
    MissingParameterError,
    ProviderReportedError,
)
from image_gallery.auth.models import AuthenticatedUser

_LOG = logging.getLogger("image-gallery.auth.callback")

UNEXPECTED_FAILURE_MESSAGE = "Failed to complete authentication"


class CallbackState(str, enum.Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    ERRORING = "erroring"
    EXCHANGING = "exchanging"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {CallbackState.ERRORING, CallbackState.SUCCEEDED, CallbackState.FAILED}
)


class CodeExchanger(Protocol):
    def exchange_code(self, *, code: str, state: str) -> AuthenticatedUser: ...


@dataclass(frozen=True, slots=True)
class CallbackOutcome:
    """Terminal result of one callback delivery."""

    state: CallbackState
    user: AuthenticatedUser | None = None
    error: AuthFlowError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is CallbackState.SUCCEEDED

    @property
    def message(self) -> str | None:
        """User-visible error message, ``None`` on success."""
        return self.error.message if self.error is not None else None


@dataclass(frozen=True, slots=True)
class CallbackParams:
    code: str | None
    state: str | None
    error: str | None
    error_description: str | None

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "CallbackParams":
        return cls(
            code=params.get("code") or None,
            state=params.get("state") or None,
            error=params.get("error") or None,
            error_description=params.get("error_description") or None,
        )


class CallbackHandler:
    """One-shot processor for a single redirect delivery."""

    def __init__(self, exchanger: CodeExchanger) -> None:
        self.exchanger = exchanger
        self.state: CallbackState = CallbackState.IDLE
        self.outcome: CallbackOutcome | None = None
        self._latched = False
        # handlers may be driven from worker threads of an ASGI server
        self._lock = threading.Lock()

    @property
    def latched(self) -> bool:
        return self._latched

    def _finish(
        self,
        state: CallbackState,
        *,
        user: AuthenticatedUser | None = None,
        error: AuthFlowError | None = None,
    ) -> CallbackOutcome:
        self.state = state
        self.outcome = CallbackOutcome(state=state, user=user, error=error)
        if error is not None:
            _LOG.info("Callback %s: %s", state.value, error.error_code)
        return self.outcome

    def handle(self, query: Mapping[str, str]) -> CallbackOutcome | None:
        """Process the redirect query parameters.

        Returns the terminal outcome, or ``None`` when the handler is already
        latched and the call was ignored.
        """
        with self._lock:
            if self._latched:
                _LOG.debug("Ignoring repeated callback trigger (state=%s)", self.state.value)
                return None

            self.state = CallbackState.EXTRACTING
            params = CallbackParams.from_query(query)

            if params.error:
                description = (
                    unquote(params.error_description) if params.error_description else None
                )
                return self._finish(
                    CallbackState.ERRORING,
                    error=ProviderReportedError(params.error, description),
                )

            if not params.code or not params.state:
                return self._finish(CallbackState.FAILED, error=MissingParameterError())

            self._latched = True
            self.state = CallbackState.EXCHANGING

        try:
            user = self.exchanger.exchange_code(code=params.code, state=params.state)
        except AuthFlowError as exc:
            return self._finish(CallbackState.FAILED, error=exc)
        except Exception:
            # a latched handler must still reach a terminal state
            _LOG.exception("Unexpected failure during code exchange")
            return self._finish(
                CallbackState.FAILED, error=AuthFlowError(UNEXPECTED_FAILURE_MESSAGE)
            )
        return self._finish(CallbackState.SUCCEEDED, user=user)
