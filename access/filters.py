"""
Apply a ScopeDecision to a SQLAlchemy query.
"""
from sqlalchemy import false
from sqlalchemy.orm import Query

from .models import ScopeDecision, Visibility


def apply_scope(query: Query, model, decision: ScopeDecision) -> Query:
    """
    Restrict a query on `model` to the rows a decision admits.

    A denied or empty decision matches no rows at all.
    """
    if not decision.allowed or decision.is_empty:
        return query.filter(false())

    if decision.visible_ids is not Visibility.ALL:
        column = getattr(model, decision.scope_field)
        query = query.filter(column.in_(sorted(decision.visible_ids)))

    for name, values in decision.constraints.items():
        query = query.filter(getattr(model, name).in_(sorted(values)))
    return query
