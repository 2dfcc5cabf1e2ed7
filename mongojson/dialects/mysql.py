""" MySQL 8.0+

    Uses the JSON column type, the `->` / `->>` shorthand operators, and virtual generated columns
    for the `_id`, `_created`, `_modified` fields.

    MariaDB is not supported: it has no JSON shorthand operators.
"""

import re

from sqlalchemy import String, Text, TIMESTAMP, JSON, Column, Computed, MetaData, Table
from sqlalchemy.sql import case, column, literal, literal_column, text, func

from .base import DialectGrammar
from ..codec import json_encode, is_array


# Object keys that don't have to be quoted in a JSON path
_PLAIN_KEY = re.compile(r'^[A-Za-z_$][A-Za-z0-9_$]*$')


class MysqlGrammar(DialectGrammar):
    """ MySQL JSON grammar

        Comparisons are made between JSON values (`->`) and plain SQL literals, which MySQL converts to JSON:
        numbers are compared as numbers, strings as strings.
    """

    names = ('mysql',)
    drivername = 'mysql+pymysql'
    default_port = 3306
    min_server_version = (8, 0, 0)
    LIMIT_SENTINEL = 18446744073709551615  # max BIGINT UNSIGNED

    #: Virtual column: `_id` of the document
    ID_VIRTUAL_COLUMN = '_id_virtual'

    @classmethod
    def connect_query(cls, settings) -> dict:
        return {'charset': settings['charset']} if settings.get('charset') else {}

    def path_expression(self, field_name: str) -> str:
        """ 'a.b.0' -> '$.a.b[0]' """
        path = '$'
        for key in field_name.split('.'):
            if key.isdigit():
                path += '[{}]'.format(key)
            elif _PLAIN_KEY.match(key):
                path += '.' + key
            else:
                path += '."{}"'.format(key.replace('\\', '\\\\').replace('"', '\\"'))
        return path

    def quote_string(self, value: str) -> str:
        # Backslashes are escape characters in MySQL string literals
        return super(MysqlGrammar, self).quote_string(value.replace('\\', '\\\\'))

    def json_value(self, document, field_name: str):
        return document.op('->')(self.path(field_name))

    def json_text(self, document, field_name: str):
        return document.op('->>', return_type=Text)(self.path(field_name))

    def json_nullable(self, document, field_name: str):
        return func.NULLIF(self.json_value(document, field_name), self._json_constant('null'))

    def comparable(self, document, field_name: str, value):
        # MySQL can't compare JSON values with IN(): use text
        if is_array(value):
            return self.json_text(document, field_name), [self._quote_text(v) for v in value]
        return self.json_value(document, field_name), self.quote_literal(value)

    def _quote_scalar(self, value):
        # Numbers go unquoted; booleans and null have to be JSON to compare with JSON
        if isinstance(value, bool):
            return self._json_constant('true' if value else 'false')
        if value is None:
            return self._json_constant('null')
        if isinstance(value, (int, float)):
            return literal(value)
        if isinstance(value, str):
            return literal(value, String)
        return literal(self._stringify(value), String)

    def _quote_text(self, value):
        """ Quote a value to be compared with `->>` text """
        if isinstance(value, bool) or value is None:
            return literal(json_encode(value), String)
        return self._quote_scalar(value)

    @staticmethod
    def _json_constant(name: str):
        return literal_column("CAST('{}' AS JSON)".format(name))

    def json_constructor(self, value):
        if isinstance(value, dict):
            args = []
            for k, v in value.items():
                args.append(literal(str(k), String))
                args.append(self.json_constructor(v))
            return func.JSON_OBJECT(*args)
        if is_array(value):
            return func.JSON_ARRAY(*[self.json_constructor(v) for v in value])
        return self._quote_scalar(value)

    def contains(self, document, field_name: str, value):
        return func.JSON_CONTAINS(self.json_value(document, field_name),
                                  literal(json_encode(value), String))

    def contains_all(self, document, field_name: str, values):
        return func.JSON_CONTAINS(self.json_value(document, field_name),
                                  literal(json_encode(list(values)), String))

    def array_length(self, document, field_name: str):
        # JSON_LENGTH() counts scalars and object keys as well
        value = self.json_value(document, field_name)
        return case(
            (func.JSON_TYPE(value) == 'ARRAY', func.JSON_LENGTH(value)),
        )

    def collection_table(self, table_name: str):
        tbl = super(MysqlGrammar, self).collection_table(table_name)
        tbl.append_column(column(self.ID_VIRTUAL_COLUMN, String))
        return tbl

    def document_type(self):
        return JSON()

    def define_table(self, table_name: str, metadata: MetaData = None) -> Table:
        tbl = super(MysqlGrammar, self).define_table(table_name, metadata)
        document = self.quote_identifier(self.DOCUMENT_COLUMN)

        tbl.append_column(Column(
            self.ID_VIRTUAL_COLUMN, String(24),
            Computed("{} ->> '$._id'".format(document)),
            nullable=False, unique=True, comment='Id'))
        tbl.append_column(Column(
            '_created_virtual', TIMESTAMP,
            Computed("FROM_UNIXTIME({} ->> '$._created')".format(document)),
            nullable=True, index=True, comment='Created at'))
        tbl.append_column(Column(
            '_modified_virtual', TIMESTAMP,
            Computed("FROM_UNIXTIME({} ->> '$._modified')".format(document)),
            nullable=True, index=True, comment='Modified at'))
        return tbl

    def identity_equals(self, tbl, doc_id: str):
        return tbl.c[self.ID_VIRTUAL_COLUMN] == literal(doc_id, String)

    def exists_check_sql(self, table_name: str):
        # LIKE pattern: escape the wildcards
        pattern = re.sub(r'([\\_%])', r'\\\1', table_name)
        return text('SHOW TABLES LIKE :table_name').bindparams(table_name=pattern)

    def rename_table_sql(self, table_name: str, new_table_name: str):
        return text('RENAME TABLE {} TO {}'.format(
            self.quote_identifier(table_name),
            self.quote_identifier(new_table_name)))
