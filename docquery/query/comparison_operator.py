from enum import StrEnum

from ..utilities.query_error import InvalidOperator


class ComparisonOperator(StrEnum):
    """ The comparison operators accepted by where() and or_where(). """
    EQ = "="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    NE = "!="

    @classmethod
    def parse(cls, operator: str) -> 'ComparisonOperator':
        """ Raises InvalidOperator for anything we don't know how to translate. """
        try:
            return cls(operator)
        except ValueError:
            raise InvalidOperator(f"Unsupported operator: {operator!r}. Expected one of {', '.join(repr(o.value) for o in cls)}.") from None

    @property
    def mongo_operator(self) -> str | None:
        """ The MongoDB query operator. Equality has none, it is expressed as a literal match. """
        return _MONGO_OPERATORS[self]


_MONGO_OPERATORS: dict[ComparisonOperator, str | None] = {
    ComparisonOperator.EQ: None,
    ComparisonOperator.GT: "$gt",
    ComparisonOperator.LT: "$lt",
    ComparisonOperator.GTE: "$gte",
    ComparisonOperator.LTE: "$lte",
    ComparisonOperator.NE: "$ne",
}
