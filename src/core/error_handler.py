"""
Error handler

Turns failures at the quoting boundaries into:
- a recovery decision for the caller (retry, fall back, skip, abort)
- a pt-BR message the operator can act on
- an in-memory record for the session error summary
"""

import functools
import logging
import traceback
import time
from collections import Counter
from typing import Callable, Optional, Type, Any, Dict, List, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime

from .exceptions import (
    PrintShopError,
    ValidationError,
    NoCustomerSelectedError,
    DuplicateSubmissionError,
    SerializationError,
    GeminiAPIError,
    SupabaseError,
    EstimationError,
    QuoteTimeoutError,
)


class RecoveryAction(Enum):
    """What the caller should do next"""
    RETRY = "retry"
    SKIP = "skip"
    FALLBACK = "fallback"
    ABORT = "abort"
    LOG_AND_CONTINUE = "log_and_continue"


# Operator-facing messages (pt-BR, shown as-is by the UI)
USER_MESSAGES: Dict[Type[Exception], str] = {
    NoCustomerSelectedError: "Selecione um cliente antes de salvar o orçamento.",
    DuplicateSubmissionError: "O orçamento já está sendo salvo. Aguarde.",
    QuoteTimeoutError: "O servidor demorou demais para responder. Verifique sua conexão e tente novamente.",
    SerializationError: "Dados inválidos em um item do carrinho. Remova e adicione o item novamente.",
    EstimationError: "Não foi possível estimar as medidas do veículo. Tente novamente ou informe as medidas manualmente.",
    ValidationError: "Dados inválidos. Revise os campos destacados.",
    SupabaseError: "Falha ao salvar no servidor. Tente novamente.",
    GeminiAPIError: "Serviço de IA indisponível no momento.",
}

DEFAULT_USER_MESSAGE = "Erro inesperado. Tente novamente."

# Gemini status codes worth another attempt
RETRYABLE_GEMINI_STATUS = (429, 503)


@dataclass
class ErrorRecord:
    """One handled error"""
    error_code: str
    message: str
    timestamp: str
    traceback: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    recovery_action: Optional[RecoveryAction] = None


Decision = Union[RecoveryAction, Callable[[Exception, Dict[str, Any]], RecoveryAction]]


class ErrorHandler:
    """Records, logs and classifies errors for one session"""

    def __init__(self, logger: logging.Logger = None, max_retries: int = 3):
        self.logger = logger or logging.getLogger(__name__)
        self.max_retries = max_retries
        self.error_history: List[ErrorRecord] = []

        # First isinstance match wins, so subclasses come before their bases
        self._decisions: Tuple[Tuple[Type[Exception], Decision], ...] = (
            (QuoteTimeoutError, self._timeout_decision),
            (GeminiAPIError, self._gemini_decision),
            (EstimationError, RecoveryAction.FALLBACK),
            (SerializationError, RecoveryAction.ABORT),
            (DuplicateSubmissionError, RecoveryAction.SKIP),
            (ValidationError, RecoveryAction.SKIP),
            (PrintShopError, RecoveryAction.LOG_AND_CONTINUE),
        )

    def handle(self, error: Exception, context: Dict[str, Any] = None) -> RecoveryAction:
        """
        Record and log an error, then decide how to recover.

        Args:
            error: the raised exception
            context: extra fields for the record (retry_count, quote_id, ...)

        Returns:
            RecoveryAction
        """
        context = context or {}
        action = self._decide(error, context)

        known = isinstance(error, PrintShopError)
        self.error_history.append(ErrorRecord(
            error_code=error.error_code if known else "UNKNOWN",
            message=str(error),
            timestamp=datetime.now().isoformat(),
            traceback="".join(traceback.format_exception(type(error), error, error.__traceback__)),
            details={**(error.details if known else {}), **context},
            recovery_action=action,
        ))
        self._log(error, context, action)
        return action

    def user_message(self, error: Exception) -> str:
        """Message to show the operator for this error"""
        return next(
            (message for error_type, message in USER_MESSAGES.items() if isinstance(error, error_type)),
            DEFAULT_USER_MESSAGE,
        )

    def _decide(self, error: Exception, context: Dict[str, Any]) -> RecoveryAction:
        for error_type, decision in self._decisions:
            if isinstance(error, error_type):
                return decision(error, context) if callable(decision) else decision
        return RecoveryAction.ABORT

    def _timeout_decision(self, error: QuoteTimeoutError, context: Dict[str, Any]) -> RecoveryAction:
        if context.get("retry_count", 0) < self.max_retries:
            return RecoveryAction.RETRY
        return RecoveryAction.ABORT

    def _gemini_decision(self, error: GeminiAPIError, context: Dict[str, Any]) -> RecoveryAction:
        if error.status_code in RETRYABLE_GEMINI_STATUS:
            return RecoveryAction.RETRY
        if error.status_code == 401:
            return RecoveryAction.ABORT
        return RecoveryAction.FALLBACK

    def _log(self, error: Exception, context: Dict[str, Any], action: RecoveryAction):
        if not isinstance(error, PrintShopError):
            self.logger.error(f"Unhandled error: {error}", extra={"context": context}, exc_info=error)
            return

        extra = {"context": {**error.details, **context, "recovery": action.value}}
        # Input gating is expected traffic
        level = logging.WARNING if isinstance(error, ValidationError) else logging.ERROR
        self.logger.log(level, f"[{error.error_code}] {error.message} -> {action.value}", extra=extra)

    def get_error_summary(self) -> Dict[str, Any]:
        """Counts per error code plus the last five errors"""
        if not self.error_history:
            return {"total_errors": 0, "by_code": {}}

        return {
            "total_errors": len(self.error_history),
            "by_code": dict(Counter(r.error_code for r in self.error_history)),
            "recent_errors": [
                {"code": r.error_code, "message": r.message, "time": r.timestamp}
                for r in self.error_history[-5:]
            ],
        }

    def clear_history(self):
        self.error_history.clear()


def _action_for(error: Exception, recovery_actions: Optional[Dict[Type[Exception], RecoveryAction]]) -> RecoveryAction:
    for exc_type, action in (recovery_actions or {}).items():
        if isinstance(error, exc_type):
            return action
    return RecoveryAction.ABORT


def error_handler(
    fallback_value: Any = None,
    reraise: bool = False,
    log_level: str = "error",
    recovery_actions: Dict[Type[Exception], RecoveryAction] = None,
    max_retries: int = 3
):
    """
    Decorator for best-effort calls (cache reads/writes, optional lookups).

    Usage:
        @error_handler(fallback_value=None, log_level="warning")
        def read_cache(...):
            ...

    Args:
        fallback_value: returned when the call fails and is not re-raised
        reraise: re-raise errors whose action is ABORT
        log_level: logger method used to report the failure
        recovery_actions: exception type -> RecoveryAction (default ABORT)
        max_retries: attempts allowed for RETRY, with 2^n second backoff
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__)
            attempt = 0

            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    action = _action_for(e, recovery_actions)
                    getattr(logger, log_level)(
                        f"{func.__name__} failed ({action.value}): {e}",
                        extra={"context": {"attempt": attempt}},
                    )

                    if action == RecoveryAction.RETRY and attempt < max_retries:
                        attempt += 1
                        time.sleep(2 ** attempt)
                        continue
                    if action == RecoveryAction.ABORT and reraise:
                        raise
                    return fallback_value

        return wrapper
    return decorator
