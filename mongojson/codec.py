""" Documents are stored as JSON text in a single column.

    Encoding is compact and keeps non-ASCII characters and forward slashes verbatim:
    whatever the user puts into a document is what the database stores.
"""

import json


def json_encode(value) -> str:
    """ Encode a value to canonical JSON text

    :raises TypeError: the value is not JSON-serializable
    """
    return json.dumps(value, ensure_ascii=False, separators=(',', ':'))


def json_decode(data):
    """ Decode JSON text into native dicts, lists, and scalars

    Some DBAPI drivers decode JSON columns on their own; values that are not text are passed through.
    """
    if isinstance(data, (bytes, bytearray)):
        data = data.decode('utf-8')
    if isinstance(data, str):
        return json.loads(data)
    return data


def is_array(value):
    return isinstance(value, (list, tuple, set, frozenset))


def is_scalar(value):
    return value is None or isinstance(value, (str, int, float, bool))
