"""
qm_engines.auto_status -- QMHQ auto status resolver.

Responsibility:
    Map a QMHQ line's route and child-record flags to one of the nine
    AutoStatus values ``{item|expense|po}_{pending|processing|done}``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Priority is always done > processing > pending.
    - The result is a read-side projection only.  No business rule in this
      codebase branches on it (execution, cancel, unlock never read it).

Failure modes:
    - Missing money figures on the expense/po routes never yield "done";
      the resolver falls through to processing/pending.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from qm_kernel.domain.values import AutoStatus, RouteType, StockOutLineStatus

# Line statuses that no longer need execution when judging "all executed"
_SETTLED_WITHOUT_EXECUTION = frozenset(
    {StockOutLineStatus.REJECTED, StockOutLineStatus.CANCELLED}
)


@dataclass(frozen=True)
class AutoStatusFlags:
    """
    Child-record state of one QMHQ line.

    Only the fields of the line's own route are consulted.
    """

    route: RouteType

    # item route
    has_any_approval: bool = False
    all_line_items_executed: bool = False

    # expense and po routes
    has_money_in: bool = False
    yet_to_receive_eusd: Decimal | None = None

    # po route
    has_open_po: bool = False
    balance_in_hand_eusd: Decimal | None = None


def all_line_items_executed(statuses: Iterable[StockOutLineStatus | str]) -> bool:
    """
    True when every line still in play is executed.

    Rejected and cancelled lines are out of play.  A QMHQ with no line in
    play is not "all executed": there is nothing to have executed.
    """
    in_play = [
        StockOutLineStatus(s)
        for s in statuses
        if StockOutLineStatus(s) not in _SETTLED_WITHOUT_EXECUTION
    ]
    return bool(in_play) and all(s == StockOutLineStatus.EXECUTED for s in in_play)


def resolve_auto_status(flags: AutoStatusFlags) -> AutoStatus:
    """
    Compute the auto status of a QMHQ line.

    item:    done if all line items executed; processing if any L1/L2
             approval exists; else pending.
    expense: done if yet_to_receive <= 0; processing if any non-voided
             money-in exists; else pending.
    po:      done if yet_to_receive <= 0 and balance_in_hand <= 0;
             processing if any non-cancelled PO exists; else pending.
    """
    route = RouteType(flags.route)

    if route == RouteType.ITEM:
        if flags.all_line_items_executed:
            return AutoStatus.ITEM_DONE
        if flags.has_any_approval:
            return AutoStatus.ITEM_PROCESSING
        return AutoStatus.ITEM_PENDING

    if route == RouteType.EXPENSE:
        if flags.yet_to_receive_eusd is not None and flags.yet_to_receive_eusd <= 0:
            return AutoStatus.EXPENSE_DONE
        if flags.has_money_in:
            return AutoStatus.EXPENSE_PROCESSING
        return AutoStatus.EXPENSE_PENDING

    if (
        flags.yet_to_receive_eusd is not None
        and flags.yet_to_receive_eusd <= 0
        and flags.balance_in_hand_eusd is not None
        and flags.balance_in_hand_eusd <= 0
    ):
        return AutoStatus.PO_DONE
    if flags.has_open_po:
        return AutoStatus.PO_PROCESSING
    return AutoStatus.PO_PENDING
