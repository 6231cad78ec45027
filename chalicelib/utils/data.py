import json
from decimal import Decimal

from chalicelib.utils.exceptions import ValidationException

# upper bound for a single UI number, products of two bounded values stay within 38 digits
MAX_NUMBER = Decimal('1000000000')


def replace_dict_key(item, orig_key, new_key):
    if orig_key in item:
        if new_key not in item:
            item[new_key] = item[orig_key]
        del item[orig_key]


def substitute_keys(dict_to_process: dict, base_keys: dict):
    """
    Renames keys in place, a key mapped to None is dropped
    """
    for key, val in base_keys.items():
        if val:
            replace_dict_key(dict_to_process, key, val)
        else:
            dict_to_process.pop(key, None)


def parse_raw_body(chalice_request):
    request_raw_body = chalice_request.raw_body
    if not request_raw_body:
        return {}
    try:
        body = json.loads(request_raw_body, parse_float=Decimal)
    except ValueError:
        raise ValidationException('Request body is not a valid JSON document')
    if not isinstance(body, dict):
        raise ValidationException('Request body must be a JSON object')
    # null means "not sent"
    return cleanup_dict(body, [None])


def cleanup_dict(item: dict, list_of_values: list):
    """ Drops keys whose value is one of list_of_values, nested dicts are cleaned one level deep """

    def sub_clean(sub_item):
        return {
            key: value
            for key, value in sub_item.items()
            if value not in list_of_values
        }

    clean = {}
    for k, v in item.items():
        if isinstance(v, dict):
            nested = sub_clean(v)
            if len(nested.keys()) > 0:
                clean[k] = nested
        elif v not in list_of_values:
            clean[k] = v
    return clean


def to_decimal(value, field: str) -> Decimal:
    """
    Converts a numeric UI value to Decimal, bool and non numeric values are rejected
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise ValidationException(f'Field {field} must be a number')
    try:
        result = Decimal(str(value))
    except ArithmeticError:
        raise ValidationException(f'Field {field} must be a number')
    if not result.is_finite():
        raise ValidationException(f'Field {field} must be a number')
    if abs(result) > MAX_NUMBER:
        raise ValidationException(f'Field {field} is out of range')
    return result
