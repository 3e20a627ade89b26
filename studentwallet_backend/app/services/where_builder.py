import logging
from typing import Any, Mapping

from sqlalchemy import ColumnElement, false

from models.student import Student, Transaction, TransactionType

logger = logging.getLogger("studentwallet.where")

# Recognized search parameter names; "art" filters on the transaction type.
SEARCH_PARAMETER_NAMES = (
    "id",
    "matriculationNumber",
    "firstName",
    "lastName",
    "email",
    "semester",
)
TRANSACTION_TYPE_PARAMETER = "art"

# Range of the Integer columns; a value outside it parses but no row can hold it.
INTEGER_MIN = -(2**31)
INTEGER_MAX = 2**31 - 1

_CONTAINS_COLUMNS = {
    "matriculationNumber": Student.matriculation_number,
    "firstName": Student.first_name,
    "lastName": Student.last_name,
    "email": Student.email,
}


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _equals(column, value: int) -> ColumnElement[bool]:
    if not INTEGER_MIN <= value <= INTEGER_MAX:
        logger.debug("build: %s=%d out of range, matches nothing", column.key, value)
        return false()
    return column == value


def _to_transaction_type(value: Any) -> TransactionType | None:
    if value is None:
        return None
    try:
        return TransactionType(value)
    except ValueError:
        return None


class WhereBuilder:
    """Turns search parameters into a list of WHERE conditions for ``Student``.

    The result is always a list; an empty list matches every row.
    """

    def build(self, params: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
        params = params or {}
        logger.debug("build: params=%s", dict(params))
        where: list[ColumnElement[bool]] = []

        student_id = _to_int(params.get("id"))
        if student_id is not None:
            where.append(_equals(Student.id, student_id))

        for name, column in _CONTAINS_COLUMNS.items():
            value = params.get(name)
            if value is not None:
                where.append(column.icontains(str(value), autoescape=True))

        semester = _to_int(params.get("semester"))
        if semester is not None:
            where.append(_equals(Student.semester, semester))

        art = _to_transaction_type(params.get(TRANSACTION_TYPE_PARAMETER))
        if art is not None:
            where.append(Student.transactions.any(Transaction.type == art))

        logger.debug("build: %d condition(s)", len(where))
        return where
