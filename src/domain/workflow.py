"""
workflow.py - Quote status workflow (v1.2)

Status changes are free-form: an operator may set any status from any
status, backward moves included. NEXT_STATUSES only describes the usual
forward path (for hints and the production board) and is never enforced.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple, Union

from .models import Quote, QuoteStatus
from ..core.exceptions import ValidationError
from ..core.logging import setup_logger

logger = setup_logger(__name__)


S = QuoteStatus

# Usual forward path (display only)
NEXT_STATUSES: Dict[QuoteStatus, Tuple[QuoteStatus, ...]] = {
    S.DRAFT: (S.SENT, S.REJECTED),
    S.SENT: (S.NEGOTIATING, S.CONFIRMED, S.REJECTED),
    S.NEGOTIATING: (S.CONFIRMED, S.REJECTED),
    S.CONFIRMED: (S.PRE_PRINT, S.PRODUCTION),
    S.PRODUCTION: (S.PRINTING_CUT_ELECTRONIC, S.PRINTING_CUT_MANUAL),
    S.PRE_PRINT: (S.PRINTING_CUT_ELECTRONIC, S.PRINTING_CUT_MANUAL),
    S.PRINTING_CUT_ELECTRONIC: (S.PRINTING_LAMINATION,),
    S.PRINTING_CUT_MANUAL: (S.PRINTING_LAMINATION,),
    S.PRINTING_LAMINATION: (S.PRINTING_FINISHING,),
    S.PRINTING_FINISHING: (S.FINISHED,),
    S.FINISHED: (S.DELIVERED,),
    S.DELIVERED: (),
    S.REJECTED: (),
}

# Production board columns, left to right
BOARD_COLUMNS: Tuple[QuoteStatus, ...] = (
    S.PRODUCTION,
    S.PRE_PRINT,
    S.PRINTING_CUT_ELECTRONIC,
    S.PRINTING_CUT_MANUAL,
    S.PRINTING_LAMINATION,
    S.PRINTING_FINISHING,
    S.FINISHED,
    S.DELIVERED,
)

STATUS_LABELS: Dict[QuoteStatus, str] = {
    S.DRAFT: "Rascunho",
    S.SENT: "Enviado",
    S.NEGOTIATING: "Em negociação",
    S.CONFIRMED: "Confirmado",
    S.REJECTED: "Recusado",
    S.PRE_PRINT: "Pré-impressão",
    S.PRODUCTION: "Produção",
    S.PRINTING_CUT_ELECTRONIC: "Impressão / Corte eletrônico",
    S.PRINTING_CUT_MANUAL: "Impressão / Corte manual",
    S.PRINTING_LAMINATION: "Laminação",
    S.PRINTING_FINISHING: "Acabamento",
    S.FINISHED: "Finalizado",
    S.DELIVERED: "Entregue",
}


def parse_status(value: Union[str, QuoteStatus]) -> QuoteStatus:
    if isinstance(value, QuoteStatus):
        return value
    try:
        return QuoteStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown quote status: {value}", field="status", value=value)


def is_forward(current: QuoteStatus, new: QuoteStatus) -> bool:
    return new in NEXT_STATUSES.get(current, ())


def change_status(quote: Quote, new_status: Union[str, QuoteStatus]) -> Quote:
    """Set the quote status. Any known status is accepted."""
    status = parse_status(new_status)
    if not is_forward(quote.status, status) and status != quote.status:
        logger.info(f"Quote {quote.id}: off-path status change {quote.status.value} -> {status.value}")
    quote.status = status
    return quote


def group_by_status(quotes: Iterable[Quote]) -> "OrderedDict[QuoteStatus, List[Quote]]":
    """Production board: quotes per column, in column order (empty columns kept)"""
    board: "OrderedDict[QuoteStatus, List[Quote]]" = OrderedDict((s, []) for s in BOARD_COLUMNS)
    for quote in quotes:
        if quote.status in board:
            board[quote.status].append(quote)
    return board
