"""
Card payment gateway emulation.

EasyPark has no real card acquirer. Online advances are charged through
this emulated gateway, which always approves and hands back a transaction
reference in the ``txn_<timestamp>_<random>`` format used by the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
import secrets
import time

from django.utils import timezone  # type: ignore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChargeResult:
    success: bool
    transaction_id: str
    processed_at: datetime


def generate_transaction_id() -> str:
    return f"txn_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class MockCardGateway:
    """Approves every charge immediately."""

    provider = "MOCK_CARD_GATEWAY"

    def charge(self, amount: Decimal, currency: str, reference: str = "") -> ChargeResult:
        transaction_id = generate_transaction_id()
        logger.info(
            f"Mock gateway charged {amount} {currency} "
            f"(reference {reference or '-'}, transaction {transaction_id})"
        )
        return ChargeResult(success=True, transaction_id=transaction_id, processed_at=timezone.now())


card_gateway = MockCardGateway()
