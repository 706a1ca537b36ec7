"""
Repository errors.
"""

from sqlalchemy.exc import NoResultFound


class EntityNotFoundError(NoResultFound):
    """A lookup that requires a matching entity found none."""

    def __init__(self, model, criteria=None):
        self.model = model
        self.criteria = criteria
        name = getattr(model, "__name__", str(model))
        if criteria is None:
            message = f"No {name} matched the query"
        else:
            message = f"No {name} matched {criteria}"
        super().__init__(message)
