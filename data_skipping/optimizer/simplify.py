"""Boolean composition with constant propagation."""

from typing import Iterable, List

from ..plan.expressions import (
    FALSE,
    TRUE,
    Expression,
    Logical,
    LogicalKind,
    is_false,
    is_true,
)


def _flatten(kind: LogicalKind, parts: Iterable[Expression]) -> List[Expression]:
    flat: List[Expression] = []
    for part in parts:
        if isinstance(part, Logical) and part.kind == kind:
            flat.extend(part.children)
        else:
            flat.append(part)
    return flat


def conjoin(parts: Iterable[Expression]) -> Expression:
    """AND of ``parts``: FALSE wins, TRUE is absorbed, no parts is TRUE."""
    kept: List[Expression] = []
    for part in _flatten(LogicalKind.AND, parts):
        if is_false(part):
            return FALSE
        if is_true(part) or part in kept:
            continue
        kept.append(part)
    if not kept:
        return TRUE
    if len(kept) == 1:
        return kept[0]
    return Logical(LogicalKind.AND, kept)


def disjoin(parts: Iterable[Expression]) -> Expression:
    """OR of ``parts``: TRUE wins, FALSE is absorbed, no parts is FALSE."""
    kept: List[Expression] = []
    for part in _flatten(LogicalKind.OR, parts):
        if is_true(part):
            return TRUE
        if is_false(part) or part in kept:
            continue
        kept.append(part)
    if not kept:
        return FALSE
    if len(kept) == 1:
        return kept[0]
    return Logical(LogicalKind.OR, kept)


def negate(part: Expression) -> Expression:
    """NOT of ``part``, folding constants and double negation."""
    if is_true(part):
        return FALSE
    if is_false(part):
        return TRUE
    if isinstance(part, Logical) and part.kind == LogicalKind.NOT:
        return part.operand
    return Logical(LogicalKind.NOT, (part,))
