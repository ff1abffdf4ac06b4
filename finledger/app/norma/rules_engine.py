from __future__ import annotations

from typing import Iterable, List, Optional, Sequence


def rule_matches(rule, txn) -> bool:
    """
    Session-scoped deterministic rule predicate.

    Matching is exact: type must be equal, description and IBAN are compared
    case-sensitively with no substring or wildcard semantics.
    """
    if (rule.type or "") != (txn.type or ""):
        return False
    if (rule.description or "") != (txn.description or ""):
        return False
    rule_iban = rule.iban or ""
    txn_iban = getattr(txn, "external_iban", None) or ""
    return rule_iban == txn_iban


def winning_rule(rules: Sequence, txn):
    """
    Conflict policy: rules are evaluated in creation order and the last match wins.
    """
    winner = None
    for rule in rules:
        if rule_matches(rule, txn):
            winner = rule
    return winner


def matching_transactions(rule, txns: Iterable) -> List:
    return [t for t in txns if rule_matches(rule, t)]


def category_for(rules: Sequence, txn) -> Optional[int]:
    winner = winning_rule(rules, txn)
    return winner.category_id if winner is not None else None
