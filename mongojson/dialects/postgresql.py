""" PostgreSQL 9.4+

    Uses the JSONB column type, the `#>` / `#>>` path operators, and a unique expression index on `_id`.
"""

import re
import hashlib

from sqlalchemy import Text, Numeric, Boolean, Index, MetaData, Table
from sqlalchemy.sql import literal, cast, case, func, null, text
from sqlalchemy.dialects import postgresql as pg

from .base import DialectGrammar
from ..codec import json_encode, is_array


# Path segments that have to be double-quoted inside a text[] literal
_NEEDS_QUOTING = re.compile(r'[\s,{}"\\]')

# Max identifier length
_MAX_IDENTIFIER = 63


class PostgresqlGrammar(DialectGrammar):
    """ PostgreSQL JSONB grammar

        Extracted text is compared against text literals.
        Numbers are special: they are compared numerically, but only where the value actually is a number,
        because casting arbitrary text to NUMERIC fails.
    """

    names = ('pgsql', 'postgresql', 'postgres')
    drivername = 'postgresql+psycopg2'
    default_port = 5432
    min_server_version = (9, 4)
    LIMIT_SENTINEL = 9223372036854775807  # max BIGINT

    def path_expression(self, field_name: str) -> str:
        """ 'a.b.0' -> '{a,b,0}' """
        return '{' + ','.join(self._path_segment(key) for key in field_name.split('.')) + '}'

    @staticmethod
    def _path_segment(key: str) -> str:
        if key == '' or key.upper() == 'NULL' or _NEEDS_QUOTING.search(key):
            return '"{}"'.format(key.replace('\\', '\\\\').replace('"', '\\"'))
        return key

    def json_value(self, document, field_name: str):
        return document.op('#>')(self.path(field_name))

    def json_text(self, document, field_name: str):
        return document.op('#>>', return_type=Text)(self.path(field_name))

    def json_nullable(self, document, field_name: str):
        # `#>>` gives NULL for a JSON null
        return self.json_text(document, field_name)

    def comparable(self, document, field_name: str, value):
        if self._is_numeric(value):
            col = case(
                (func.jsonb_typeof(self.json_value(document, field_name)) == 'number',
                 cast(self.json_text(document, field_name), Numeric)),
            )
            if is_array(value):
                return col, [literal(v) for v in value]
            return col, literal(value)
        return self.json_text(document, field_name), self.quote_literal(value)

    @staticmethod
    def _is_number(value) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def _is_numeric(self, value) -> bool:
        """ Is the value a number, or a non-empty list of numbers? """
        if is_array(value):
            return len(value) > 0 and all(self._is_number(v) for v in value)
        return self._is_number(value)

    def _quote_scalar(self, value):
        # Everything is compared as text: the way `#>>` renders it
        if value is None:
            return null()
        if isinstance(value, bool):
            return literal('true' if value else 'false', Text)
        if isinstance(value, (int, float)):
            return literal(json_encode(value), Text)
        if isinstance(value, str):
            return literal(value, Text)
        return literal(self._stringify(value), Text)

    def json_constructor(self, value):
        if isinstance(value, dict):
            args = []
            for k, v in value.items():
                args.append(cast(literal(str(k), Text), Text))
                args.append(self.json_constructor(v))
            return func.jsonb_build_object(*args)
        if is_array(value):
            return func.jsonb_build_array(*[self.json_constructor(v) for v in value])
        if value is None:
            return null()
        if isinstance(value, bool):
            return literal(value, Boolean)
        if self._is_number(value):
            return literal(value)
        if not isinstance(value, str):
            value = self._stringify(value)
        return cast(literal(value, Text), Text)

    def _jsonb(self, value):
        return cast(literal(json_encode(value), Text), pg.JSONB)

    def contains(self, document, field_name: str, value):
        # `?` tests strings only: elements of an array, or keys of an object
        if isinstance(value, str):
            return self.json_value(document, field_name).op('?')(literal(value, Text))
        return self.json_value(document, field_name).op('@>')(self._jsonb([value]))

    def contains_all(self, document, field_name: str, values):
        values = list(values)
        if values and all(isinstance(v, str) for v in values):
            return self.json_value(document, field_name).op('?&')(
                pg.array([literal(v, Text) for v in values]))
        return self.json_value(document, field_name).op('@>')(self._jsonb(values))

    def array_length(self, document, field_name: str):
        # jsonb_array_length() fails on non-arrays
        value = self.json_value(document, field_name)
        return case(
            (func.jsonb_typeof(value) == 'array', func.jsonb_array_length(value)),
        )

    def document_type(self):
        return pg.JSONB()

    def document_text(self, document):
        # psycopg2 would decode JSONB itself
        return cast(document, Text)

    def document_value(self, data: str):
        return cast(literal(data, Text), pg.JSONB)

    def define_table(self, table_name: str, metadata: MetaData = None) -> Table:
        tbl = super(PostgresqlGrammar, self).define_table(table_name, metadata)
        Index(self._index_name(table_name, '_id'),
              self.json_text(tbl.c[self.DOCUMENT_COLUMN], '_id'),
              unique=True)
        return tbl

    @staticmethod
    def _index_name(table_name: str, field_name: str) -> str:
        name = 'ix_{}_{}'.format(table_name, field_name)
        if len(name) <= _MAX_IDENTIFIER:
            return name
        digest = hashlib.md5(name.encode()).hexdigest()[:8]
        return '{}_{}'.format(name[:_MAX_IDENTIFIER - len(digest) - 1], digest)

    def identity_equals(self, tbl, doc_id: str):
        return self.json_text(tbl.c[self.DOCUMENT_COLUMN], '_id') == literal(doc_id, Text)

    def exists_check_sql(self, table_name: str):
        return text('SELECT to_regclass(:table_name)').bindparams(
            table_name=self.quote_identifier(table_name))

    def rename_table_sql(self, table_name: str, new_table_name: str):
        return text('ALTER TABLE {} RENAME TO {}'.format(
            self.quote_identifier(table_name),
            self.quote_identifier(new_table_name)))
