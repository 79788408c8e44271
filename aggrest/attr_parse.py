import datetime
import decimal
import aggrest
import sqlalchemy

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def parse_value(column, value):
    """
    Parse the supplied `value` so it can be compared with or saved in the SQLAlchemy `column`.
    Request arguments are strings and cursor values travel as ISO 8601 strings,
    so everything is coerced to the column's python type.

    :param column: SQLAlchemy column
    :param value: request or payload value
    :return: processed value
    :raises ValueError: when the value can't be converted
    """
    if value is None:
        return value

    try:
        python_type = column.type.python_type
    except NotImplementedError as exc:
        """
        This happens when a custom type has been implemented, in which case the user/dev should know how to handle it:
        simply return the value for user-defined types
        """
        aggrest.log.debug(exc)
        return value

    # skip type coercion on JSON columns, since they could be anything
    if isinstance(column.type, sqlalchemy.types.JSON):
        return value

    if isinstance(value, python_type):
        return value

    # Parse datetime and date values for some common representations
    # If another format is used, the user should create a custom column type
    if python_type == datetime.datetime:
        return parse_datetime(str(value))
    if python_type == datetime.date:
        return parse_datetime(str(value)).date()
    if python_type == datetime.time:
        return datetime.time.fromisoformat(str(value))
    if python_type == bool:
        lowered = str(value).lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f'Invalid boolean "{value}"')
    if python_type == decimal.Decimal:
        try:
            return decimal.Decimal(str(value))
        except decimal.InvalidOperation:
            raise ValueError(f'Invalid decimal "{value}"')
    return python_type(value)


def parse_datetime(date_str: str) -> datetime.datetime:
    """
    :param date_str: ISO 8601 string, or the str(datetime) representation
    :return: datetime
    """
    try:
        return datetime.datetime.fromisoformat(date_str)
    except ValueError:
        pass
    if "." in date_str:
        # str(datetime.datetime.now()) => "%Y-%m-%d %H:%M:%S.%f"
        return datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S.%f")
    # JS datepicker format
    return datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S")


def is_numeric(value) -> bool:
    """
    :param value: filter value
    :return: True if the value is a number or a string that holds one
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, decimal.Decimal)):
        return True
    try:
        float(str(value))
    except ValueError:
        return False
    return True
