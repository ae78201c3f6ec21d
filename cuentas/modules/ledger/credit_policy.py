"""
Política de crédito

Evalúa si un fiado propuesto haría superar el límite del cliente. Es sólo
una advertencia: la decisión de registrarlo igual queda en manos del
operador, y registrar un fiado nunca consulta esta política.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from cuentas.common.money import positive_amount
from cuentas.modules.clients.models import Client
from cuentas.modules.ledger.balance import BalanceService, ZERO


@dataclass(frozen=True)
class CreditEvaluation:
    proposed_amount: Decimal
    current_balance: Decimal
    new_balance: Decimal
    credit_limit: Optional[Decimal]
    exceeds_limit: bool
    excess: Decimal


def evaluate_credit(
    current_balance: Decimal,
    credit_limit: Optional[Decimal],
    proposed_amount: Decimal
) -> CreditEvaluation:
    new_balance = current_balance + proposed_amount

    # Sin límite nunca se excede; el límite exacto tampoco cuenta como exceso
    exceeds = credit_limit is not None and new_balance > credit_limit
    excess = new_balance - credit_limit if exceeds else ZERO

    return CreditEvaluation(
        proposed_amount=proposed_amount,
        current_balance=current_balance,
        new_balance=new_balance,
        credit_limit=credit_limit,
        exceeds_limit=exceeds,
        excess=excess
    )


class CreditPolicy:

    def __init__(self, db: Session):
        self.db = db
        self.balances = BalanceService(db)

    def evaluate(self, client: Client, proposed_amount: Decimal) -> CreditEvaluation:
        # Mismo redondeo que al registrar el fiado
        proposed_amount = positive_amount(proposed_amount)

        current = self.balances.current_balance(client.id, client.owner_id)
        return evaluate_credit(current, client.credit_limit, proposed_amount)
