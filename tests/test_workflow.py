"""Quote status workflow tests"""

import logging

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.domain.models import Quote, QuoteStatus
from src.domain.workflow import (
    BOARD_COLUMNS,
    STATUS_LABELS,
    change_status,
    group_by_status,
    is_forward,
    parse_status,
)
from src.core.exceptions import ValidationError


def make_quote(qid: str, status: QuoteStatus = QuoteStatus.DRAFT) -> Quote:
    return Quote(id=qid, date="2026-01-10", customer_id="c1", items=[], total_amount=0, down_payment=0, status=status)


class TestStatusChanges:
    """Free-form status changes"""

    def test_forward_move(self):
        quote = change_status(make_quote("q1"), QuoteStatus.SENT)
        assert quote.status == QuoteStatus.SENT

    def test_backward_move_allowed(self):
        """delivered -> draft is accepted"""
        quote = change_status(make_quote("q1", QuoteStatus.DELIVERED), "draft")
        assert quote.status == QuoteStatus.DRAFT

    def test_off_path_move_is_logged(self, caplog):
        with caplog.at_level(logging.INFO):
            change_status(make_quote("q1"), QuoteStatus.FINISHED)
        assert "off-path" in caplog.text

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            change_status(make_quote("q1"), "archived")
        assert exc.value.field == "status"

    def test_parse_status(self):
        assert parse_status("printing_lamination") == QuoteStatus.PRINTING_LAMINATION
        assert parse_status(QuoteStatus.SENT) is QuoteStatus.SENT

    def test_is_forward(self):
        assert is_forward(QuoteStatus.CONFIRMED, QuoteStatus.PRODUCTION)
        assert not is_forward(QuoteStatus.FINISHED, QuoteStatus.DRAFT)

    def test_every_status_has_label(self):
        assert set(STATUS_LABELS) == set(QuoteStatus)


class TestProductionBoard:
    """Grouping by board column"""

    def test_columns_in_order_and_kept_when_empty(self):
        board = group_by_status([])
        assert list(board) == list(BOARD_COLUMNS)
        assert all(quotes == [] for quotes in board.values())

    def test_grouping(self):
        quotes = [
            make_quote("a", QuoteStatus.PRODUCTION),
            make_quote("b", QuoteStatus.FINISHED),
            make_quote("c", QuoteStatus.PRODUCTION),
            make_quote("d", QuoteStatus.DRAFT),
        ]
        board = group_by_status(quotes)
        assert [q.id for q in board[QuoteStatus.PRODUCTION]] == ["a", "c"]
        assert [q.id for q in board[QuoteStatus.FINISHED]] == ["b"]
        assert QuoteStatus.DRAFT not in board
